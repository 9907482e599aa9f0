import math
from typing import Dict, List, Optional, Sequence, Tuple

from services.profile_engine.confidence import calculate_confidence
from services.profile_engine.frameworks.base import IndicatorSet, rank_candidates
from services.profile_engine.models import IntegralLevelSummary, IntegralResult
from services.profile_engine.taxonomy import MAX_SCORE, NEUTRAL_SCORE, Trait
from services.profile_engine.vector import TraitVector

CONFIDENCE_SCALE = 1.0
COMPLEXITY_MODIFIER_RATE = 0.5
KEYWORD_MATCH_RATIO = 0.3
KEYWORD_NUDGE = 0.5


class IntegralLevel(IndicatorSet):
    number: int
    color: str
    name: str
    cognitive_stage: str
    worldview: str
    thinking_pattern: str
    complexity: float
    characteristics: List[str]
    growth_edge: List[str]
    typical_concerns: List[str]
    clarification_questions: List[str]
    keywords: List[str]


_LEVELS = {
    "red": {
        "number": 2,
        "color": "Red",
        "name": "Power/Control",
        "cognitive_stage": "Preoperational to early Concrete",
        "worldview": "Egocentric, focused on immediate gratification",
        "thinking_pattern": "Impulsive, power-based, here-and-now",
        "complexity": 2,
        "characteristics": [
            "Immediate gratification focus",
            "Power and dominance oriented",
            "Concrete, literal thinking",
            "Self-centered perspective",
        ],
        "growth_edge": [
            "Develop impulse control",
            "Learn rule-following",
            "Consider others' needs",
            "Build basic structure",
        ],
        "typical_concerns": ["Survival", "Power", "Respect", "Freedom from constraint"],
        "strong": ["Self-Indulgent", "Assertive", "Physical", "Dynamic"],
        "moderate": ["Direct", "Independent", "Turbulent"],
        "clarification_questions": [
            "When you want something, how important is it to get it right away versus waiting?",
            "How do you typically handle situations where someone tells you what to do?",
            "When making decisions, how much do you consider the long-term consequences?",
        ],
        "keywords": ["power", "control", "immediate", "want", "strong", "force"],
    },
    "amber": {
        "number": 3,
        "color": "Amber",
        "name": "Order/Belong",
        "cognitive_stage": "Concrete Operational",
        "worldview": "Ethnocentric, rule-based order",
        "thinking_pattern": "Rule-based, hierarchical, conformist",
        "complexity": 3,
        "characteristics": [
            "Strong adherence to rules and authority",
            "Traditional values and customs",
            "Clear hierarchy and order",
            "Group conformity important",
        ],
        "growth_edge": [
            "Question rigid rules when appropriate",
            "Develop critical thinking",
            "Consider multiple perspectives",
            "Balance tradition with innovation",
        ],
        "typical_concerns": ["Order", "Tradition", "Belonging", "Moral righteousness"],
        "strong": ["Lawful", "Structured", "Passive", "Pessimistic"],
        "moderate": ["Communal Navigate", "Stoic", "Responsive"],
        "clarification_questions": [
            "How important are rules and traditions in guiding your decisions?",
            "When there's a conflict between personal preference and group expectations, which do you typically choose?",
            "How do you feel about questioning established authorities or procedures?",
        ],
        "keywords": ["rules", "tradition", "should", "proper", "authority", "order"],
    },
    "orange": {
        "number": 4,
        "color": "Orange",
        "name": "Achieve",
        "cognitive_stage": "Early Formal Operational",
        "worldview": "Rational and achievement-focused",
        "thinking_pattern": "Strategic, analytical, goal-oriented",
        "complexity": 5,
        "characteristics": [
            "Rational, scientific thinking",
            "Achievement and success oriented",
            "Strategic planning abilities",
            "Material progress focused",
        ],
        "growth_edge": [
            "Integrate emotional intelligence",
            "Consider community impact",
            "Balance competition with cooperation",
            "Develop systems thinking",
        ],
        "typical_concerns": ["Success", "Achievement", "Rational progress", "Individual excellence"],
        "strong": ["Analytical", "Extrinsic", "Pragmatic", "Realistic"],
        "moderate": ["Assertive", "Self-Mastery", "Direct", "Independent"],
        "clarification_questions": [
            "How do you approach achieving your goals - through systematic planning or intuitive action?",
            "When evaluating ideas, how much weight do you give to scientific evidence versus other factors?",
            "How important is personal success and achievement compared to other values?",
        ],
        "keywords": ["achieve", "success", "logical", "efficient", "rational", "goal"],
    },
    "green": {
        "number": 5,
        "color": "Green",
        "name": "Understand",
        "cognitive_stage": "Formal Operational",
        "worldview": "Pluralistic and community-focused",
        "thinking_pattern": "Relativistic, consensus-seeking, inclusive",
        "complexity": 6,
        "characteristics": [
            "Egalitarian and inclusive values",
            "Consensus and community focus",
            "Cultural sensitivity and diversity",
            "Environmental and social consciousness",
        ],
        "growth_edge": [
            "Integrate healthy hierarchy",
            "Develop discernment skills",
            "Balance relativism with truth",
            "Move beyond group-think",
        ],
        "typical_concerns": ["Equality", "Community", "Relationships", "Cultural sensitivity"],
        "strong": ["Social", "Diplomatic", "Responsive", "Mixed Navigate"],
        "moderate": ["Communal Navigate", "Mixed Communication", "Optimistic"],
        "clarification_questions": [
            "How do you balance individual needs with community wellbeing in your decisions?",
            "When there are cultural differences, how do you navigate finding common ground?",
            "How comfortable are you with the idea that different perspectives can be equally valid?",
        ],
        "keywords": ["community", "together", "feelings", "inclusive", "caring", "harmony"],
    },
    "teal": {
        "number": 6,
        "color": "Teal",
        "name": "Harmonize",
        "cognitive_stage": "Post-Formal/Integral",
        "worldview": "Integral, systemic, holistic",
        "thinking_pattern": "Integrative, systemic, paradox-comfortable",
        "complexity": 8,
        "characteristics": [
            "Integrates multiple perspectives",
            "Systems and complexity thinking",
            "Comfortable with paradox",
            "Natural hierarchy and holarchy",
        ],
        "growth_edge": [
            "Deepen spiritual understanding",
            "Expand cosmic perspective",
            "Integrate body-mind-spirit",
            "Develop global consciousness",
        ],
        "typical_concerns": ["Integration", "Systems health", "Global sustainability", "Evolutionary development"],
        "strong": ["Universal", "Self-Aware", "Varied", "Intrinsic"],
        "moderate": ["Self-Principled", "Intuitive", "Ambivalent"],
        "clarification_questions": [
            "How do you handle situations where you need to integrate seemingly contradictory viewpoints?",
            "When solving complex problems, how do you account for multiple systems and levels of influence?",
            "How do you balance rational analysis with intuitive understanding in your decision-making?",
        ],
        "keywords": ["integrate", "systems", "complex", "balance", "paradox", "holistic"],
    },
    "turquoise": {
        "number": 7,
        "color": "Turquoise",
        "name": "Sanctify",
        "cognitive_stage": "Meta-Systemic/Transpersonal",
        "worldview": "Holistic and transpersonal",
        "thinking_pattern": "Holistic, transpersonal, cosmic",
        "complexity": 10,
        "characteristics": [
            "Cosmic and transpersonal perspective",
            "Holistic, non-linear thinking",
            "Spiritual and mystical integration",
            "Global and ecological consciousness",
        ],
        "growth_edge": [
            "Deepen cosmic consciousness",
            "Integrate higher spiritual states",
            "Expand trans-rational awareness",
            "Embody universal compassion",
        ],
        "typical_concerns": ["Cosmic harmony", "Universal consciousness", "Ecological wholeness", "Transpersonal evolution"],
        "strong": ["Universal", "Self-Mastery", "Intuitive", "Stoic"],
        "moderate": ["Self-Aware", "Intrinsic", "Independent Navigate"],
        "clarification_questions": [
            "How do you experience your connection to larger patterns or cosmic processes?",
            "In what ways do you integrate spiritual or transcendent perspectives into practical decisions?",
            "How do you hold both local concerns and universal wellbeing in your awareness?",
        ],
        "keywords": ["cosmic", "universal", "transcendent", "spiritual", "consciousness", "unity"],
    },
}

INTEGRAL_LEVELS: Dict[str, IntegralLevel] = {key: IntegralLevel.model_validate(config) for key, config in _LEVELS.items()}

# Each reality sub-domain: the level pair it draws on and its trait blend.
REALITY_SUBDOMAINS: Dict[str, Tuple[Tuple[str, str], Dict[Trait, float]]] = {
    "physical": (
        ("red", "amber"),
        {Trait.PHYSICAL: 0.40, Trait.STRUCTURED: 0.20, Trait.LAWFUL: 0.20, Trait.SELF_INDULGENT: 0.10, Trait.DIRECT: 0.10},
    ),
    "social": (
        ("orange", "green"),
        {Trait.SOCIAL: 0.40, Trait.DIPLOMATIC: 0.20, Trait.ANALYTICAL: 0.15, Trait.COMMUNAL_NAVIGATE: 0.15, Trait.RESPONSIVE: 0.10},
    ),
    "universal": (
        ("teal", "turquoise"),
        {Trait.UNIVERSAL: 0.40, Trait.INTUITIVE: 0.20, Trait.SELF_AWARE: 0.15, Trait.VARIED: 0.15, Trait.INTRINSIC: 0.10},
    ),
}

COMPLEXITY_MODIFIERS: Dict[Trait, float] = {
    Trait.VARIED: 0.20,
    Trait.INTUITIVE: 0.20,
    Trait.SELF_AWARE: 0.15,
    Trait.ANALYTICAL: 0.15,
    Trait.UNIVERSAL: 0.15,
    Trait.AMBIVALENT: 0.15,
}

FALLBACK_QUESTIONS = (
    "When making important decisions, what matters most to you: following proven methods, "
    "achieving results, considering everyone's needs, or finding innovative solutions?",
    "Imagine you're leading a team through a crisis. Describe your approach and what you'd prioritize.",
    "How do you typically handle conflicting viewpoints in your personal or professional life?",
)


def _blend(vector: TraitVector, weights: Dict[Trait, float]) -> float:
    return sum(vector[trait] * weight for trait, weight in weights.items())


def level_scores(vector: TraitVector) -> Dict[str, float]:
    return {key: level.score(vector) for key, level in INTEGRAL_LEVELS.items()}


def reality_mapping(vector: TraitVector, scores: Optional[Dict[str, float]] = None) -> Dict[str, float]:
    """Each sub-domain: best score of its level pair, scaled by its trait blend."""
    scores = scores or level_scores(vector)
    return {
        name: max(scores[a], scores[b]) * (_blend(vector, weights) / MAX_SCORE)
        for name, ((a, b), weights) in REALITY_SUBDOMAINS.items()
    }


def cognitive_complexity(vector: TraitVector, level: IntegralLevel) -> float:
    modifiers = _blend(vector, COMPLEXITY_MODIFIERS)
    return min(MAX_SCORE, max(0.0, level.complexity + (modifiers - NEUTRAL_SCORE) * COMPLEXITY_MODIFIER_RATE))


def developmental_edge(primary: IntegralLevel, secondary: Optional[IntegralLevel]) -> str:
    if secondary is None:
        return f"Focus on integrating: {primary.growth_edge[0]}"
    if secondary.number > primary.number:
        return f"Developing toward {secondary.name}: {secondary.growth_edge[0]}"
    return f"Strengthening the current level while preparing for the next: {primary.growth_edge[0]}"


def _summary(key: str, score: float) -> IntegralLevelSummary:
    level = INTEGRAL_LEVELS[key]
    return IntegralLevelSummary(
        key=key,
        number=level.number,
        color=level.color,
        name=level.name,
        score=score,
        cognitive_stage=level.cognitive_stage,
        worldview=level.worldview,
        thinking_pattern=level.thinking_pattern,
        characteristics=level.characteristics,
        growth_edge=level.growth_edge,
        typical_concerns=level.typical_concerns,
    )


def calculate_integral(vector: TraitVector) -> IntegralResult:
    scores = level_scores(vector)
    ranked = rank_candidates(scores)
    primary_key, primary_score = ranked[0]
    secondary_key, secondary_score = ranked[1]
    primary = INTEGRAL_LEVELS[primary_key]
    secondary = INTEGRAL_LEVELS[secondary_key]

    return IntegralResult(
        label=primary.color,
        confidence=calculate_confidence(primary_score - secondary_score, CONFIDENCE_SCALE),
        sub_scores=scores,
        primary_level=_summary(primary_key, primary_score),
        secondary_level=_summary(secondary_key, secondary_score),
        reality_mapping=reality_mapping(vector, scores),
        cognitive_complexity=cognitive_complexity(vector, primary),
        developmental_edge=developmental_edge(primary, secondary),
    )


def clarification_questions(level_key: str) -> List[str]:
    level = INTEGRAL_LEVELS.get(level_key)
    return list(level.clarification_questions) if level else list(FALLBACK_QUESTIONS)


def validate_level_responses(responses: Sequence[str], level_key: str) -> bool:
    """True when the free-text answers mention enough of the level's keywords."""
    text = " ".join(responses).lower()
    keywords = INTEGRAL_LEVELS[level_key].keywords
    matches = sum(1 for keyword in keywords if keyword in text)
    return matches >= math.ceil(len(keywords) * KEYWORD_MATCH_RATIO)


def keyword_level_adjustments(
    response: str,
    level_keys: Sequence[str],
    traits: Sequence[Trait],
    bound: float,
) -> Dict[Trait, float]:
    """
    Keyword reading of an answer to a developmental-level question, used when
    no usable adjustments come back from the text generator.

    Only when exactly one of the competing levels is recognised do its own
    indicator traits (those not shared with the other levels) move up.
    """
    deltas = {trait: 0.0 for trait in traits}
    matched = [key for key in level_keys if key in INTEGRAL_LEVELS and validate_level_responses([response], key)]
    if len(matched) != 1:
        return deltas
    shared = set(level_traits(*(key for key in level_keys if key != matched[0] and key in INTEGRAL_LEVELS)))
    nudge = min(KEYWORD_NUDGE, bound)
    for trait in INTEGRAL_LEVELS[matched[0]].traits:
        if trait in deltas and trait not in shared:
            deltas[trait] = nudge
    return deltas


def level_traits(*level_keys: str) -> List[Trait]:
    traits: List[Trait] = []
    for key in level_keys:
        traits.extend(INTEGRAL_LEVELS[key].traits)
    return list(dict.fromkeys(traits))


def subdomain_traits(*names: str) -> List[Trait]:
    traits: List[Trait] = []
    for name in names:
        traits.extend(REALITY_SUBDOMAINS[name][1])
    return list(dict.fromkeys(traits))
