from typing import Dict, List

from pydantic import BaseModel

from services.profile_engine.confidence import calculate_confidence, mean, trait_mean
from services.profile_engine.models import BigFiveDimension, BigFiveResult
from services.profile_engine.taxonomy import MAX_SCORE, NEUTRAL_SCORE, Trait
from services.profile_engine.vector import TraitVector

MODERATE_BAND = 1.0
CONFIDENCE_SCALE = 1.5


class FacetConfig(BaseModel):
    high: List[Trait]
    low: List[Trait]


_DIMENSIONS = {
    "Openness": {
        "imagination": {
            "high": ["Intuitive", "Universal", "Self-Aware", "Dynamic"],
            "low": ["Physical", "Structured", "Realistic", "Static"],
        },
        "artistic_interests": {
            "high": ["Intuitive", "Self-Principled", "Turbulent", "Universal"],
            "low": ["Pragmatic", "Physical", "Stoic", "Lawful"],
        },
        "emotionality": {
            "high": ["Turbulent", "Self-Aware", "Responsive", "Social"],
            "low": ["Stoic", "Physical", "Independent Navigate", "Analytical"],
        },
        "adventurousness": {
            "high": ["Dynamic", "Independent", "Varied", "Optimistic"],
            "low": ["Static", "Structured", "Lawful", "Pessimistic"],
        },
        "intellect": {
            "high": ["Analytical", "Universal", "Intrinsic", "Self-Aware"],
            "low": ["Self-Indulgent", "Physical", "Passive", "Static"],
        },
        "liberalism": {
            "high": ["Self-Principled", "Independent", "Varied", "Dynamic"],
            "low": ["Lawful", "Structured", "Static", "Passive"],
        },
    },
    "Conscientiousness": {
        "self_efficacy": {
            "high": ["Self-Mastery", "Assertive", "Optimistic", "Direct"],
            "low": ["Self-Indulgent", "Passive", "Pessimistic", "Turbulent"],
        },
        "orderliness": {
            "high": ["Structured", "Lawful", "Analytical", "Self-Mastery"],
            "low": ["Ambivalent", "Self-Indulgent", "Dynamic", "Varied"],
        },
        "dutifulness": {
            "high": ["Lawful", "Diplomatic", "Structured", "Social"],
            "low": ["Self-Principled", "Independent", "Self-Indulgent", "Dynamic"],
        },
        "achievement_striving": {
            "high": ["Self-Mastery", "Extrinsic", "Assertive", "Optimistic"],
            "low": ["Self-Indulgent", "Passive", "Pessimistic", "Static"],
        },
        "self_discipline": {
            "high": ["Self-Mastery", "Structured", "Stoic", "Analytical"],
            "low": ["Self-Indulgent", "Turbulent", "Dynamic", "Ambivalent"],
        },
        "cautiousness": {
            "high": ["Pessimistic", "Structured", "Analytical", "Lawful"],
            "low": ["Optimistic", "Dynamic", "Self-Indulgent", "Varied"],
        },
    },
    "Extraversion": {
        "friendliness": {
            "high": ["Social", "Diplomatic", "Optimistic", "Communal Navigate"],
            "low": ["Independent Navigate", "Stoic", "Pessimistic", "Physical"],
        },
        "gregariousness": {
            "high": ["Communal Navigate", "Social", "Dynamic", "Extrinsic"],
            "low": ["Independent Navigate", "Intrinsic", "Static", "Passive"],
        },
        "assertiveness": {
            "high": ["Assertive", "Direct", "Self-Mastery", "Dynamic"],
            "low": ["Passive", "Diplomatic", "Ambivalent", "Mixed Communication"],
        },
        "activity_level": {
            "high": ["Dynamic", "Assertive", "Optimistic", "Extrinsic"],
            "low": ["Static", "Passive", "Pessimistic", "Intrinsic"],
        },
        "excitement_seeking": {
            "high": ["Dynamic", "Self-Indulgent", "Varied", "Optimistic"],
            "low": ["Static", "Structured", "Lawful", "Pessimistic"],
        },
        "cheerfulness": {
            "high": ["Optimistic", "Social", "Dynamic", "Responsive"],
            "low": ["Pessimistic", "Stoic", "Independent Navigate", "Static"],
        },
    },
    "Agreeableness": {
        "trust": {
            "high": ["Optimistic", "Social", "Communal Navigate", "Responsive"],
            "low": ["Pessimistic", "Independent Navigate", "Stoic", "Direct"],
        },
        "morality": {
            "high": ["Lawful", "Self-Principled", "Diplomatic", "Social"],
            "low": ["Self-Indulgent", "Pragmatic", "Independent", "Direct"],
        },
        "altruism": {
            "high": ["Communal Navigate", "Diplomatic", "Social", "Responsive"],
            "low": ["Independent Navigate", "Self-Indulgent", "Assertive", "Extrinsic"],
        },
        "cooperation": {
            "high": ["Diplomatic", "Passive", "Social", "Mixed Navigate"],
            "low": ["Assertive", "Independent", "Direct", "Self-Principled"],
        },
        "modesty": {
            "high": ["Passive", "Intrinsic", "Diplomatic", "Mixed Communication"],
            "low": ["Assertive", "Extrinsic", "Direct", "Self-Indulgent"],
        },
        "sympathy": {
            "high": ["Responsive", "Social", "Turbulent", "Diplomatic"],
            "low": ["Stoic", "Independent Navigate", "Analytical", "Physical"],
        },
    },
    "Neuroticism": {
        "anxiety": {
            "high": ["Turbulent", "Pessimistic", "Ambivalent", "Responsive Regulation"],
            "low": ["Stoic", "Optimistic", "Self-Mastery", "Static"],
        },
        "anger": {
            "high": ["Turbulent", "Assertive", "Direct", "Independent"],
            "low": ["Passive", "Diplomatic", "Stoic", "Social"],
        },
        "depression": {
            "high": ["Pessimistic", "Turbulent", "Passive", "Intrinsic"],
            "low": ["Optimistic", "Dynamic", "Extrinsic", "Social"],
        },
        "self_consciousness": {
            "high": ["Self-Aware", "Turbulent", "Ambivalent", "Intrinsic"],
            "low": ["Assertive", "Stoic", "Extrinsic", "Direct"],
        },
        "immoderation": {
            "high": ["Self-Indulgent", "Dynamic", "Varied", "Turbulent"],
            "low": ["Self-Mastery", "Structured", "Stoic", "Lawful"],
        },
        "vulnerability": {
            "high": ["Passive", "Pessimistic", "Turbulent", "Ambivalent"],
            "low": ["Assertive", "Stoic", "Self-Mastery", "Independent"],
        },
    },
}

DIMENSIONS: Dict[str, Dict[str, FacetConfig]] = {
    dimension: {facet: FacetConfig.model_validate(config) for facet, config in facets.items()}
    for dimension, facets in _DIMENSIONS.items()
}


def facet_score(vector: TraitVector, facet: FacetConfig) -> float:
    """High-pole mean and the inverted low-pole mean, averaged."""
    return (trait_mean(vector, facet.high) + (MAX_SCORE - trait_mean(vector, facet.low))) / 2


def _level(score: float) -> str:
    if score >= NEUTRAL_SCORE + MODERATE_BAND:
        return "high"
    if score <= NEUTRAL_SCORE - MODERATE_BAND:
        return "low"
    return "moderate"


def calculate_big_five(vector: TraitVector) -> BigFiveResult:
    dimensions = []
    for name, facets in DIMENSIONS.items():
        facet_scores = {facet: facet_score(vector, config) for facet, config in facets.items()}
        score = mean(facet_scores.values())
        dimensions.append(
            BigFiveDimension(
                name=name,
                score=score,
                level=_level(score),
                confidence=calculate_confidence(abs(score - NEUTRAL_SCORE), CONFIDENCE_SCALE),
                facets=facet_scores,
            )
        )

    signs = {"high": "+", "moderate": "=", "low": "-"}
    label = "".join(f"{d.name[0]}{signs[d.level]}" for d in dimensions)
    return BigFiveResult(
        label=label,
        confidence=mean(d.confidence for d in dimensions),
        sub_scores={d.name: d.score for d in dimensions},
        dimensions=dimensions,
    )
