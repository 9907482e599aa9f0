from typing import Dict

from pydantic import BaseModel

from services.profile_engine.confidence import calculate_confidence, mean
from services.profile_engine.frameworks.base import IndicatorSet, select_category
from services.profile_engine.models import AlignmentAxis, AlignmentResult
from services.profile_engine.vector import TraitVector

MIN_SEPARATION = 1.0
CONFIDENCE_SCALE = 1.5
NEUTRAL = "Neutral"


class AxisPoles(BaseModel):
    """Three positions on one axis, declared positive, neutral, negative."""
    positions: Dict[str, IndicatorSet]


_ETHICAL = {
    "Lawful": {
        "strong": ["Lawful", "Structured", "Self-Mastery"],
        "moderate": ["Diplomatic", "Analytical", "Stoic"],
        "description": "Values order, tradition, and established systems",
    },
    NEUTRAL: {
        "moderate": ["Pragmatic", "Ambivalent", "Responsive", "Varied"],
        "description": "Balances rules with practical considerations",
    },
    "Chaotic": {
        "strong": ["Self-Principled", "Independent", "Dynamic"],
        "moderate": ["Intuitive", "Varied", "Self-Indulgent"],
        "description": "Values freedom, creativity, and individual choice",
    },
}

_MORAL = {
    "Good": {
        "strong": ["Communal Navigate", "Diplomatic", "Optimistic"],
        "moderate": ["Responsive", "Social", "Passive"],
        "description": "Prioritizes helping others and collective wellbeing",
    },
    NEUTRAL: {
        "moderate": ["Realistic", "Mixed Navigate", "Pragmatic", "Stoic"],
        "description": "Balances self-interest with consideration for others",
    },
    "Evil": {
        "strong": ["Self-Indulgent", "Assertive", "Independent Navigate"],
        "moderate": ["Pessimistic", "Direct", "Physical"],
        "description": "Prioritizes self-interest and personal power",
    },
}

ETHICAL_AXIS = AxisPoles.model_validate({"positions": _ETHICAL})
MORAL_AXIS = AxisPoles.model_validate({"positions": _MORAL})


def score_alignment_axis(vector: TraitVector, name: str, poles: AxisPoles) -> AlignmentAxis:
    """
    A pole is chosen only when it beats both other positions by more than
    MIN_SEPARATION; anything closer stays Neutral.
    """
    scores = {position: indicators.score(vector) for position, indicators in poles.positions.items()}
    selection = select_category(scores, MIN_SEPARATION, neutral=NEUTRAL)
    return AlignmentAxis(
        axis=name,
        position=selection.winner,
        score=selection.score,
        margin=selection.margin,
        confidence=calculate_confidence(selection.margin, CONFIDENCE_SCALE),
        description=poles.positions[selection.winner].description,
    )


def calculate_alignment(vector: TraitVector) -> AlignmentResult:
    ethical = score_alignment_axis(vector, "ethical", ETHICAL_AXIS)
    moral = score_alignment_axis(vector, "moral", MORAL_AXIS)

    if ethical.position == NEUTRAL and moral.position == NEUTRAL:
        label = "True Neutral"
    else:
        label = f"{ethical.position} {moral.position}"

    return AlignmentResult(
        label=label,
        confidence=mean([ethical.confidence, moral.confidence]),
        sub_scores={"ethical": ethical.score, "moral": moral.score},
        ethical=ethical,
        moral=moral,
    )
