import logging
from typing import Dict, List, Tuple

from pydantic import BaseModel

from services.profile_engine.confidence import calculate_confidence, mean, trait_mean
from services.profile_engine.frameworks.base import STRONG_WEIGHT, MODERATE_WEIGHT, IndicatorSet
from services.profile_engine.models import CognitiveFunction, MBTIAxis, MBTIResult
from services.profile_engine.taxonomy import Trait
from services.profile_engine.vector import TraitVector

logger = logging.getLogger(__name__)

AXIS_CONFIDENCE_SCALE = 1.0
STACK_ROLES = ("dominant", "auxiliary", "tertiary", "inferior")


class AxisConfig(BaseModel):
    key: str
    positive_letter: str
    negative_letter: str
    positive: IndicatorSet
    negative: IndicatorSet


class FunctionConfig(BaseModel):
    traits: List[Trait]
    description: str


_AXES = [
    {
        "key": "EI", "positive_letter": "E", "negative_letter": "I",
        "positive": {
            "strong": ["Communal Navigate", "Dynamic", "Assertive", "Direct", "Extrinsic"],
            "moderate": ["Mixed Navigate", "Modular", "Diplomatic", "Social"],
            "description": "Preference for external engagement and social stimulation",
        },
        "negative": {
            "strong": ["Independent Navigate", "Static", "Passive", "Passive Communication", "Intrinsic"],
            "moderate": ["Mixed Navigate", "Static", "Mixed Communication"],
            "description": "Preference for solitude and internal processing",
        },
    },
    {
        "key": "SN", "positive_letter": "N", "negative_letter": "S",
        "positive": {
            "strong": ["Intuitive", "Universal", "Self-Aware", "Dynamic", "Self-Principled"],
            "moderate": ["Varied", "Mixed Navigate", "Responsive"],
            "description": "Focus on patterns, possibilities, and abstract concepts",
        },
        "negative": {
            "strong": ["Physical", "Structured", "Analytical", "Pragmatic", "Realistic"],
            "moderate": ["Lawful", "Static", "Pessimistic"],
            "description": "Focus on concrete, tangible, observable information",
        },
    },
    {
        "key": "TF", "positive_letter": "T", "negative_letter": "F",
        "positive": {
            "strong": ["Analytical", "Stoic", "Direct", "Pragmatic", "Physical"],
            "moderate": ["Realistic", "Assertive", "Independent"],
            "description": "Logical, objective decision-making",
        },
        "negative": {
            "strong": ["Diplomatic", "Turbulent", "Social", "Passive", "Self-Aware"],
            "moderate": ["Mixed Communication", "Responsive", "Varied"],
            "description": "Value-based, empathetic decision-making",
        },
    },
    {
        "key": "JP", "positive_letter": "J", "negative_letter": "P",
        "positive": {
            "strong": ["Structured", "Lawful", "Self-Mastery", "Assertive", "Direct"],
            "moderate": ["Pragmatic", "Realistic", "Stoic"],
            "description": "Preference for closure, planning, and organization",
        },
        "negative": {
            "strong": ["Ambivalent", "Independent", "Self-Principled", "Varied", "Dynamic"],
            "moderate": ["Responsive", "Mixed Navigate", "Modular"],
            "description": "Preference for flexibility and spontaneity",
        },
    },
]

_FUNCTIONS = {
    "Fe": {"traits": ["Diplomatic", "Social", "Responsive", "Communal Navigate"], "description": "Extraverted Feeling"},
    "Te": {"traits": ["Assertive", "Direct", "Pragmatic", "Extrinsic"], "description": "Extraverted Thinking"},
    "Fi": {"traits": ["Self-Aware", "Self-Principled", "Independent Navigate", "Intrinsic"], "description": "Introverted Feeling"},
    "Ti": {"traits": ["Analytical", "Independent", "Stoic", "Physical"], "description": "Introverted Thinking"},
    "Se": {"traits": ["Physical", "Dynamic", "Assertive", "Self-Indulgent"], "description": "Extraverted Sensing"},
    "Si": {"traits": ["Physical", "Structured", "Static", "Pessimistic"], "description": "Introverted Sensing"},
    "Ne": {"traits": ["Intuitive", "Dynamic", "Varied", "Optimistic"], "description": "Extraverted Intuition"},
    "Ni": {"traits": ["Intuitive", "Universal", "Self-Aware", "Self-Mastery"], "description": "Introverted Intuition"},
}

TYPE_COGNITIVE_STACKS: Dict[str, Tuple[str, str, str, str]] = {
    "INTJ": ("Ni", "Te", "Fi", "Se"),
    "INTP": ("Ti", "Ne", "Si", "Fe"),
    "ENTJ": ("Te", "Ni", "Se", "Fi"),
    "ENTP": ("Ne", "Ti", "Fe", "Si"),
    "INFJ": ("Ni", "Fe", "Ti", "Se"),
    "INFP": ("Fi", "Ne", "Si", "Te"),
    "ENFJ": ("Fe", "Ni", "Se", "Ti"),
    "ENFP": ("Ne", "Fi", "Te", "Si"),
    "ISTJ": ("Si", "Te", "Fi", "Ne"),
    "ISFJ": ("Si", "Fe", "Ti", "Ne"),
    "ESTJ": ("Te", "Si", "Ne", "Fi"),
    "ESFJ": ("Fe", "Si", "Ne", "Ti"),
    "ISTP": ("Ti", "Se", "Ni", "Fe"),
    "ISFP": ("Fi", "Se", "Ni", "Te"),
    "ESTP": ("Se", "Ti", "Fe", "Ni"),
    "ESFP": ("Se", "Fi", "Te", "Ni"),
}

AXES: List[AxisConfig] = [AxisConfig.model_validate(axis) for axis in _AXES]
COGNITIVE_FUNCTIONS: Dict[str, FunctionConfig] = {
    name: FunctionConfig.model_validate(config) for name, config in _FUNCTIONS.items()
}


def score_axis(vector: TraitVector, axis: AxisConfig) -> MBTIAxis:
    """
    Signed axis score: strong and moderate pole means are added for the
    positive pole and subtracted for the negative one, then normalised by
    the total weight. Zero resolves to the negative pole.
    """
    total = 0.0
    weight_sum = 0.0
    for sign, pole in ((1.0, axis.positive), (-1.0, axis.negative)):
        for traits, weight in ((pole.strong, STRONG_WEIGHT), (pole.moderate, MODERATE_WEIGHT)):
            if not traits:
                continue
            total += sign * trait_mean(vector, traits) * weight
            weight_sum += weight
    score = total / weight_sum if weight_sum else 0.0
    letter = axis.positive_letter if score > 0 else axis.negative_letter
    return MBTIAxis(
        axis=axis.key,
        letter=letter,
        score=score,
        strength=abs(score),
        confidence=calculate_confidence(abs(score), AXIS_CONFIDENCE_SCALE),
    )


def cognitive_stack(type_code: str, vector: TraitVector) -> List[CognitiveFunction]:
    stack = TYPE_COGNITIVE_STACKS.get(type_code)
    if stack is None:
        logger.warning(f"No cognitive function stack for type '{type_code}'")
        return []
    return [
        CognitiveFunction(
            role=role,
            function=name,
            strength=trait_mean(vector, COGNITIVE_FUNCTIONS[name].traits),
            description=COGNITIVE_FUNCTIONS[name].description,
        )
        for role, name in zip(STACK_ROLES, stack)
    ]


def calculate_mbti(vector: TraitVector) -> MBTIResult:
    axes = [score_axis(vector, axis) for axis in AXES]
    type_code = "".join(axis.letter for axis in axes)
    return MBTIResult(
        label=type_code,
        confidence=mean(axis.confidence for axis in axes),
        sub_scores={axis.axis: axis.score for axis in axes},
        axes=axes,
        cognitive_functions=cognitive_stack(type_code, vector),
    )
