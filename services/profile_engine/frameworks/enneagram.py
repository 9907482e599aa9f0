from typing import Dict, List

from pydantic import BaseModel

from services.profile_engine.confidence import calculate_confidence, trait_mean
from services.profile_engine.frameworks.base import TieredTraits, rank_candidates
from services.profile_engine.models import EnneagramResult
from services.profile_engine.taxonomy import Trait
from services.profile_engine.vector import TraitVector

CONFIDENCE_SCALE = 0.5
CENTERS = {"heart": (2, 3, 4), "head": (5, 6, 7), "gut": (8, 9, 1)}


class EnneagramType(BaseModel):
    name: str
    core_traits: TieredTraits
    instinctual_variants: Dict[str, List[Trait]]
    health_levels: Dict[str, List[Trait]]


_TYPES = {
    1: {
        "name": "Reformer",
        "core_traits": {
            "primary": ["Self-Mastery", "Lawful", "Structured"],
            "secondary": ["Analytical", "Stoic", "Direct"],
            "tertiary": ["Realistic", "Physical"],
        },
        "instinctual_variants": {
            "self-preservation": ["Structured", "Physical", "Pessimistic"],
            "social": ["Lawful", "Social", "Diplomatic"],
            "sexual": ["Self-Mastery", "Direct", "Assertive"],
        },
        "health_levels": {
            "healthy": ["Self-Mastery", "Diplomatic", "Responsive"],
            "average": ["Lawful", "Structured", "Stoic"],
            "unhealthy": ["Pessimistic", "Direct", "Turbulent"],
        },
    },
    2: {
        "name": "Helper",
        "core_traits": {
            "primary": ["Communal Navigate", "Diplomatic", "Responsive"],
            "secondary": ["Social", "Passive", "Extrinsic"],
            "tertiary": ["Optimistic", "Dynamic"],
        },
        "instinctual_variants": {
            "self-preservation": ["Passive", "Social", "Structured"],
            "social": ["Communal Navigate", "Diplomatic", "Extrinsic"],
            "sexual": ["Assertive", "Dynamic", "Direct"],
        },
        "health_levels": {
            "healthy": ["Diplomatic", "Responsive", "Optimistic"],
            "average": ["Communal Navigate", "Social", "Passive"],
            "unhealthy": ["Passive", "Pessimistic", "Turbulent"],
        },
    },
    3: {
        "name": "Achiever",
        "core_traits": {
            "primary": ["Extrinsic", "Assertive", "Pragmatic"],
            "secondary": ["Dynamic", "Optimistic", "Social"],
            "tertiary": ["Varied", "Responsive"],
        },
        "instinctual_variants": {
            "self-preservation": ["Pragmatic", "Self-Mastery", "Structured"],
            "social": ["Social", "Extrinsic", "Dynamic"],
            "sexual": ["Assertive", "Dynamic", "Direct"],
        },
        "health_levels": {
            "healthy": ["Optimistic", "Dynamic", "Responsive"],
            "average": ["Assertive", "Pragmatic", "Extrinsic"],
            "unhealthy": ["Self-Indulgent", "Pessimistic", "Turbulent"],
        },
    },
    4: {
        "name": "Individualist",
        "core_traits": {
            "primary": ["Self-Aware", "Intuitive", "Turbulent"],
            "secondary": ["Self-Principled", "Universal", "Independent"],
            "tertiary": ["Pessimistic", "Dynamic"],
        },
        "instinctual_variants": {
            "self-preservation": ["Self-Aware", "Pessimistic", "Physical"],
            "social": ["Social", "Turbulent", "Responsive"],
            "sexual": ["Dynamic", "Assertive", "Self-Principled"],
        },
        "health_levels": {
            "healthy": ["Self-Aware", "Intuitive", "Universal"],
            "average": ["Self-Principled", "Independent", "Turbulent"],
            "unhealthy": ["Pessimistic", "Self-Indulgent", "Passive"],
        },
    },
    5: {
        "name": "Investigator",
        "core_traits": {
            "primary": ["Analytical", "Independent Navigate", "Intrinsic"],
            "secondary": ["Stoic", "Physical", "Independent"],
            "tertiary": ["Universal", "Self-Mastery"],
        },
        "instinctual_variants": {
            "self-preservation": ["Physical", "Structured", "Pessimistic"],
            "social": ["Social", "Analytical", "Universal"],
            "sexual": ["Assertive", "Self-Principled", "Direct"],
        },
        "health_levels": {
            "healthy": ["Analytical", "Universal", "Self-Mastery"],
            "average": ["Independent Navigate", "Stoic", "Intrinsic"],
            "unhealthy": ["Pessimistic", "Passive", "Static"],
        },
    },
    6: {
        "name": "Loyalist",
        "core_traits": {
            "primary": ["Ambivalent", "Pessimistic", "Lawful"],
            "secondary": ["Responsive Regulation", "Mixed Navigate", "Social"],
            "tertiary": ["Structured", "Analytical"],
        },
        "instinctual_variants": {
            "self-preservation": ["Structured", "Pessimistic", "Physical"],
            "social": ["Social", "Lawful", "Responsive Regulation"],
            "sexual": ["Assertive", "Direct", "Dynamic"],
        },
        "health_levels": {
            "healthy": ["Lawful", "Social", "Responsive Regulation"],
            "average": ["Ambivalent", "Pessimistic", "Structured"],
            "unhealthy": ["Pessimistic", "Passive", "Turbulent"],
        },
    },
    7: {
        "name": "Enthusiast",
        "core_traits": {
            "primary": ["Dynamic", "Optimistic", "Self-Indulgent"],
            "secondary": ["Varied", "Independent", "Intuitive"],
            "tertiary": ["Extrinsic", "Social"],
        },
        "instinctual_variants": {
            "self-preservation": ["Self-Indulgent", "Physical", "Pragmatic"],
            "social": ["Social", "Optimistic", "Dynamic"],
            "sexual": ["Dynamic", "Assertive", "Self-Principled"],
        },
        "health_levels": {
            "healthy": ["Optimistic", "Dynamic", "Varied"],
            "average": ["Self-Indulgent", "Independent", "Intuitive"],
            "unhealthy": ["Self-Indulgent", "Turbulent", "Pessimistic"],
        },
    },
    8: {
        "name": "Challenger",
        "core_traits": {
            "primary": ["Assertive", "Direct", "Independent"],
            "secondary": ["Physical", "Self-Principled", "Stoic"],
            "tertiary": ["Pragmatic", "Dynamic"],
        },
        "instinctual_variants": {
            "self-preservation": ["Physical", "Pragmatic", "Structured"],
            "social": ["Social", "Assertive", "Direct"],
            "sexual": ["Assertive", "Direct", "Dynamic"],
        },
        "health_levels": {
            "healthy": ["Assertive", "Self-Principled", "Stoic"],
            "average": ["Direct", "Independent", "Physical"],
            "unhealthy": ["Turbulent", "Pessimistic", "Self-Indulgent"],
        },
    },
    9: {
        "name": "Peacemaker",
        "core_traits": {
            "primary": ["Passive", "Ambivalent", "Optimistic"],
            "secondary": ["Mixed Navigate", "Responsive", "Social"],
            "tertiary": ["Modular", "Diplomatic"],
        },
        "instinctual_variants": {
            "self-preservation": ["Passive", "Physical", "Static"],
            "social": ["Social", "Diplomatic", "Mixed Navigate"],
            "sexual": ["Responsive", "Dynamic", "Optimistic"],
        },
        "health_levels": {
            "healthy": ["Optimistic", "Diplomatic", "Responsive"],
            "average": ["Passive", "Ambivalent", "Mixed Navigate"],
            "unhealthy": ["Passive", "Pessimistic", "Static"],
        },
    },
}

ENNEAGRAM_TYPES: Dict[int, EnneagramType] = {
    number: EnneagramType.model_validate(config) for number, config in _TYPES.items()
}


def _wing(primary: int, type_scores: Dict[int, float]) -> int:
    left = 9 if primary == 1 else primary - 1
    right = 1 if primary == 9 else primary + 1
    return right if type_scores[right] > type_scores[left] else left


def _tritype(primary: int, type_scores: Dict[int, float]) -> str:
    tops = []
    for members in CENTERS.values():
        if primary in members:
            continue
        best = members[0]
        for number in members[1:]:
            if type_scores[number] > type_scores[best]:
                best = number
        tops.append(best)
    tops.sort(key=lambda number: -type_scores[number])
    return "".join(str(number) for number in [primary] + tops)


def _top_subtable(vector: TraitVector, table: Dict[str, List[Trait]]) -> List[str]:
    scores = {name: trait_mean(vector, traits) for name, traits in table.items()}
    return [name for name, _ in rank_candidates(scores)]


def calculate_enneagram(vector: TraitVector) -> EnneagramResult:
    type_scores = {
        number: config.core_traits.weighted_score(vector) for number, config in ENNEAGRAM_TYPES.items()
    }
    ranked = rank_candidates(type_scores)
    primary, top = ranked[0]
    separation = top - ranked[1][1]
    wing = _wing(primary, type_scores)
    config = ENNEAGRAM_TYPES[primary]
    instincts = _top_subtable(vector, config.instinctual_variants)
    health = _top_subtable(vector, config.health_levels)[0]

    return EnneagramResult(
        label=f"{primary}w{wing}",
        confidence=calculate_confidence(separation, CONFIDENCE_SCALE),
        sub_scores={str(number): score for number, score in type_scores.items()},
        type_number=primary,
        wing=wing,
        wing_influence=type_scores[wing] / top if top else 0.0,
        tritype=_tritype(primary, type_scores),
        primary_instinct=instincts[0],
        secondary_instinct=instincts[1],
        health_level=health,
    )
