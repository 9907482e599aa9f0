from typing import Dict, List

from services.profile_engine.confidence import calculate_confidence
from services.profile_engine.frameworks.base import TieredTraits, rank_candidates
from services.profile_engine.models import HollandResult
from services.profile_engine.vector import TraitVector

CODE_THRESHOLD = 6.0
CODE_LENGTH = 3
CONFIDENCE_SCALE = 0.5


class HollandType(TieredTraits):
    name: str
    careers: Dict[str, List[str]]
    work_environment: str


_TYPES = {
    "R": {
        "name": "Realistic",
        "primary": ["Physical", "Pragmatic", "Independent Navigate", "Stoic"],
        "secondary": ["Structured", "Analytical", "Static", "Self-Mastery"],
        "description": "Prefers concrete tasks, tools, and measurable outcomes",
        "careers": {
            "technical": ["Engineering", "IT Systems", "Architecture"],
            "manual": ["Construction", "Mechanics", "Agriculture"],
            "scientific": ["Laboratory Work", "Field Research", "Quality Control"],
        },
        "work_environment": "Structured environments with clear procedures and tangible results",
    },
    "I": {
        "name": "Investigative",
        "primary": ["Analytical", "Intrinsic", "Independent", "Universal"],
        "secondary": ["Self-Aware", "Intuitive", "Stoic", "Self-Mastery"],
        "description": "Prefers intellectual challenges and autonomous work",
        "careers": {
            "research": ["Scientific Research", "Data Science", "Academic Research"],
            "analytical": ["Financial Analysis", "Strategic Planning", "Market Research"],
            "technical": ["Software Development", "Medical Research", "Engineering Design"],
        },
        "work_environment": "Autonomous environments that encourage intellectual exploration",
    },
    "A": {
        "name": "Artistic",
        "primary": ["Intuitive", "Self-Aware", "Self-Principled", "Dynamic"],
        "secondary": ["Turbulent", "Universal", "Independent", "Varied"],
        "description": "Prefers creative expression and unstructured environments",
        "careers": {
            "creative": ["Fine Arts", "Graphic Design", "Music", "Writing"],
            "performance": ["Acting", "Dance", "Public Speaking"],
            "design": ["Interior Design", "Fashion", "Product Design"],
        },
        "work_environment": "Flexible, creative environments with freedom of expression",
    },
    "S": {
        "name": "Social",
        "primary": ["Communal Navigate", "Social", "Diplomatic", "Responsive"],
        "secondary": ["Optimistic", "Dynamic", "Passive", "Mixed Communication"],
        "description": "Prefers helping others and collaborative settings",
        "careers": {
            "helping": ["Counseling", "Social Work", "Nursing", "Teaching"],
            "community": ["Community Organization", "Human Resources", "Public Relations"],
            "healthcare": ["Psychology", "Therapy", "Patient Care"],
        },
        "work_environment": "Collaborative environments focused on human development",
    },
    "E": {
        "name": "Enterprising",
        "primary": ["Assertive", "Extrinsic", "Direct", "Optimistic"],
        "secondary": ["Dynamic", "Pragmatic", "Social", "Varied"],
        "description": "Prefers leadership roles and competitive environments",
        "careers": {
            "leadership": ["Executive Management", "Entrepreneurship", "Politics"],
            "sales": ["Sales Management", "Real Estate", "Marketing"],
            "influence": ["Law", "Consulting", "Public Speaking"],
        },
        "work_environment": "Dynamic, competitive environments with leadership opportunities",
    },
    "C": {
        "name": "Conventional",
        "primary": ["Structured", "Lawful", "Passive", "Realistic"],
        "secondary": ["Analytical", "Static", "Physical", "Stoic"],
        "description": "Prefers structured tasks and clear procedures",
        "careers": {
            "administrative": ["Accounting", "Office Management", "Data Entry"],
            "organizational": ["Project Coordination", "Operations", "Logistics"],
            "regulatory": ["Compliance", "Quality Assurance", "Auditing"],
        },
        "work_environment": "Organized environments with established procedures",
    },
}

HOLLAND_TYPES: Dict[str, HollandType] = {
    letter: HollandType.model_validate(config) for letter, config in _TYPES.items()
}


def calculate_holland(vector: TraitVector) -> HollandResult:
    type_scores = {letter: config.blended_score(vector) for letter, config in HOLLAND_TYPES.items()}
    ranked = rank_candidates(type_scores)
    primary, top = ranked[0]

    code = "".join(letter for letter, score in ranked[:CODE_LENGTH] if score > CODE_THRESHOLD) or primary
    config = HOLLAND_TYPES[primary]
    return HollandResult(
        label=code,
        confidence=calculate_confidence(top - ranked[1][1], CONFIDENCE_SCALE),
        sub_scores=type_scores,
        code=code,
        primary_type=config.name,
        description=config.description,
        careers=config.careers,
        work_environment=config.work_environment,
    )
