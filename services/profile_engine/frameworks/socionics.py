from typing import Dict, List, Tuple

from services.profile_engine.confidence import calculate_confidence, mean
from services.profile_engine.frameworks.base import TieredTraits
from services.profile_engine.frameworks.mbti import STACK_ROLES, calculate_mbti
from services.profile_engine.models import InformationElement, SocionicsResult
from services.profile_engine.vector import TraitVector

STACK_CONFIDENCE_SCALE = 1.0
_FLIPS = {"E": "I", "I": "E", "N": "S", "S": "N", "T": "F", "F": "T"}

_ELEMENTS = {
    "Ne": {
        "primary": ["Intuitive", "Dynamic", "Varied"],
        "secondary": ["Optimistic", "Extrinsic", "Social"],
        "description": "Explores external possibilities and connections",
    },
    "Se": {
        "primary": ["Physical", "Assertive", "Dynamic"],
        "secondary": ["Direct", "Pragmatic", "Extrinsic"],
        "description": "Direct impact on the physical environment",
    },
    "Te": {
        "primary": ["Analytical", "Pragmatic", "Direct"],
        "secondary": ["Assertive", "Extrinsic", "Structured"],
        "description": "Efficient external organization",
    },
    "Fe": {
        "primary": ["Social", "Diplomatic", "Responsive"],
        "secondary": ["Communal Navigate", "Extrinsic", "Dynamic"],
        "description": "External emotional atmosphere",
    },
    "Ni": {
        "primary": ["Intuitive", "Universal", "Self-Aware"],
        "secondary": ["Self-Mastery", "Intrinsic", "Static"],
        "description": "Internal vision and convergent insights",
    },
    "Si": {
        "primary": ["Physical", "Structured", "Static"],
        "secondary": ["Pessimistic", "Intrinsic", "Self-Aware"],
        "description": "Internal sensory experience and memory",
    },
    "Ti": {
        "primary": ["Analytical", "Independent", "Stoic"],
        "secondary": ["Intrinsic", "Self-Mastery", "Universal"],
        "description": "Internal logical consistency",
    },
    "Fi": {
        "primary": ["Self-Aware", "Self-Principled", "Intrinsic"],
        "secondary": ["Independent Navigate", "Intuitive", "Turbulent"],
        "description": "Internal value system and authenticity",
    },
}

ELEMENTS: Dict[str, TieredTraits] = {name: TieredTraits.model_validate(config) for name, config in _ELEMENTS.items()}

MBTI_TO_SOCIONICS: Dict[str, str] = {
    "INTJ": "INTp", "INTP": "INTj", "ENTJ": "ENTj", "ENTP": "ENTp",
    "INFJ": "INFp", "INFP": "INFj", "ENFJ": "ENFj", "ENFP": "ENFp",
    "ISTJ": "ISTp", "ISFJ": "ISFp", "ESTJ": "ESTj", "ESFJ": "ESFj",
    "ISTP": "ISTj", "ISFP": "ISFj", "ESTP": "ESTp", "ESFP": "ESFp",
}

SOCIONICS_TYPES: Dict[str, Tuple[str, Tuple[str, str, str, str]]] = {
    "INTp": ("ILI", ("Ni", "Te", "Fi", "Se")),
    "INTj": ("LII", ("Ti", "Ne", "Si", "Fe")),
    "ENTj": ("LIE", ("Te", "Ni", "Se", "Fi")),
    "ENTp": ("ILE", ("Ne", "Ti", "Fe", "Si")),
    "INFp": ("IEI", ("Ni", "Fe", "Ti", "Se")),
    "INFj": ("EII", ("Fi", "Ne", "Si", "Te")),
    "ENFj": ("EIE", ("Fe", "Ni", "Se", "Ti")),
    "ENFp": ("IEE", ("Ne", "Fi", "Te", "Si")),
    "ISTp": ("SLI", ("Si", "Te", "Fi", "Ne")),
    "ISFp": ("SEI", ("Si", "Fe", "Ti", "Ne")),
    "ESTj": ("LSE", ("Te", "Si", "Ne", "Fi")),
    "ESFj": ("ESE", ("Fe", "Si", "Ne", "Ti")),
    "ISTj": ("LSI", ("Ti", "Se", "Ni", "Fe")),
    "ISFj": ("ESI", ("Fi", "Se", "Ni", "Te")),
    "ESTp": ("SLE", ("Se", "Ti", "Fe", "Ni")),
    "ESFp": ("SEE", ("Se", "Fi", "Te", "Ni")),
}


def display_name(code: str) -> str:
    return f"{code} ({SOCIONICS_TYPES[code][0]})"


def dual_of(code: str) -> str:
    """The dual flips all three dichotomy letters and keeps the j/p suffix."""
    return "".join(_FLIPS[letter] for letter in code[:3]) + code[3]


def information_elements(code: str, vector: TraitVector) -> List[InformationElement]:
    _, stack = SOCIONICS_TYPES[code]
    return [
        InformationElement(
            role=role,
            element=element,
            strength=ELEMENTS[element].blended_score(vector),
            description=ELEMENTS[element].description,
        )
        for role, element in zip(STACK_ROLES, stack)
    ]


def calculate_socionics(vector: TraitVector) -> SocionicsResult:
    """Keyed by the MBTI type computed from the same vector."""
    mbti = calculate_mbti(vector)
    code = MBTI_TO_SOCIONICS[mbti.label]
    elements = information_elements(code, vector)

    valued = mean(e.strength for e in elements[:2])
    unvalued = mean(e.strength for e in elements[2:])
    stack_confidence = calculate_confidence(valued - unvalued, STACK_CONFIDENCE_SCALE)

    return SocionicsResult(
        label=display_name(code),
        confidence=mean([mbti.confidence, stack_confidence]),
        sub_scores={e.element: e.strength for e in elements},
        mbti_type=mbti.label,
        dual_type=display_name(dual_of(code)),
        elements=elements,
    )
