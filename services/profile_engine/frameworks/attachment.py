from typing import Dict, List

from services.profile_engine.confidence import calculate_confidence
from services.profile_engine.frameworks.base import TieredTraits, select_category
from services.profile_engine.models import AttachmentResult
from services.profile_engine.vector import TraitVector

CONFIDENCE_SCALE = 0.5


class AttachmentStyle(TieredTraits):
    characteristics: List[str]


_STYLES = {
    "secure": {
        "primary": ["Mixed Navigate", "Responsive", "Diplomatic", "Optimistic"],
        "secondary": ["Self-Aware", "Realistic", "Modular"],
        "description": "Comfortable with intimacy and independence",
        "characteristics": [
            "Comfortable with closeness and autonomy",
            "Effective communication in relationships",
            "Positive view of self and others",
            "Able to seek and provide support",
            "Handles conflict constructively",
        ],
    },
    "anxious-preoccupied": {
        "primary": ["Communal Navigate", "Turbulent", "Passive", "Social"],
        "secondary": ["Pessimistic", "Extrinsic", "Responsive"],
        "description": "High need for connection, fear of abandonment",
        "characteristics": [
            "Seeks high levels of intimacy and approval",
            "Worries about being alone or unloved",
            "Can be overly dependent on relationships",
            "Sensitive to partner mood changes",
            "May use protest behaviors when distressed",
        ],
    },
    "dismissive-avoidant": {
        "primary": ["Independent Navigate", "Stoic", "Self-Mastery", "Physical"],
        "secondary": ["Assertive", "Analytical", "Static"],
        "description": "Values independence, uncomfortable with closeness",
        "characteristics": [
            "Prefers self-sufficiency over relationships",
            "Uncomfortable with emotional expression",
            "May suppress or ignore attachment needs",
            "Values achievement over relationships",
            "Tends to minimize the importance of close relationships",
        ],
    },
    "fearful-avoidant": {
        "primary": ["Independent Navigate", "Turbulent", "Pessimistic", "Ambivalent"],
        "secondary": ["Self-Aware", "Passive", "Universal"],
        "description": "Desires closeness but fears vulnerability",
        "characteristics": [
            "Wants close relationships but fears getting hurt",
            "Mixed feelings about depending on others",
            "May have difficulty trusting partners",
            "Can be emotionally volatile in relationships",
            "Struggles between approach and avoidance",
        ],
    },
}

ATTACHMENT_STYLES: Dict[str, AttachmentStyle] = {
    name: AttachmentStyle.model_validate(config) for name, config in _STYLES.items()
}


def calculate_attachment(vector: TraitVector) -> AttachmentResult:
    scores = {name: style.blended_score(vector) for name, style in ATTACHMENT_STYLES.items()}
    selection = select_category(scores)
    style = ATTACHMENT_STYLES[selection.winner]
    return AttachmentResult(
        label=selection.winner,
        confidence=calculate_confidence(selection.margin, CONFIDENCE_SCALE),
        sub_scores=scores,
        style=selection.winner,
        description=style.description,
        characteristics=style.characteristics,
    )
