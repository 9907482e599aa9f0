import logging
from enum import Enum
from typing import Dict, Iterable, List, Tuple

from pydantic import BaseModel, ConfigDict

from services.profile_engine.errors import TaxonomyError

logger = logging.getLogger(__name__)

TRIAD_SIZE = 3
NEUTRAL_SCORE = 5.0
MIN_SCORE = 0.0
MAX_SCORE = 10.0


class Domain(str, Enum):
    EXTERNAL = "External"
    INTERNAL = "Internal"
    INTERPERSONAL = "Interpersonal"
    PROCESSING = "Processing"


class Trait(str, Enum):
    # External
    STRUCTURED = "Structured"
    AMBIVALENT = "Ambivalent"
    INDEPENDENT = "Independent"
    PASSIVE = "Passive"
    DIPLOMATIC = "Diplomatic"
    ASSERTIVE = "Assertive"
    LAWFUL = "Lawful"
    PRAGMATIC = "Pragmatic"
    SELF_PRINCIPLED = "Self-Principled"
    # Internal
    SELF_INDULGENT = "Self-Indulgent"
    SELF_AWARE = "Self-Aware"
    SELF_MASTERY = "Self-Mastery"
    INTRINSIC = "Intrinsic"
    RESPONSIVE = "Responsive"
    EXTRINSIC = "Extrinsic"
    PESSIMISTIC = "Pessimistic"
    REALISTIC = "Realistic"
    OPTIMISTIC = "Optimistic"
    # Interpersonal
    INDEPENDENT_NAVIGATE = "Independent Navigate"
    MIXED_NAVIGATE = "Mixed Navigate"
    COMMUNAL_NAVIGATE = "Communal Navigate"
    DIRECT = "Direct"
    MIXED_COMMUNICATION = "Mixed Communication"
    PASSIVE_COMMUNICATION = "Passive Communication"
    DYNAMIC = "Dynamic"
    MODULAR = "Modular"
    STATIC = "Static"
    # Processing
    ANALYTICAL = "Analytical"
    VARIED = "Varied"
    INTUITIVE = "Intuitive"
    TURBULENT = "Turbulent"
    RESPONSIVE_REGULATION = "Responsive Regulation"
    STOIC = "Stoic"
    PHYSICAL = "Physical"
    SOCIAL = "Social"
    UNIVERSAL = "Universal"


class Triad(BaseModel):
    model_config = ConfigDict(frozen=True)

    domain: Domain
    name: str
    traits: Tuple[Trait, ...]

    @property
    def key(self) -> str:
        return f"{self.domain.value}-{self.name}"

    @property
    def label(self) -> str:
        return f"{self.domain.value} - {self.name}"


T = Trait

TRIADS: Tuple[Triad, ...] = (
    Triad(domain=Domain.EXTERNAL, name="Control", traits=(T.STRUCTURED, T.AMBIVALENT, T.INDEPENDENT)),
    Triad(domain=Domain.EXTERNAL, name="Will", traits=(T.PASSIVE, T.DIPLOMATIC, T.ASSERTIVE)),
    Triad(domain=Domain.EXTERNAL, name="Design", traits=(T.LAWFUL, T.PRAGMATIC, T.SELF_PRINCIPLED)),
    Triad(domain=Domain.INTERNAL, name="Self-Focus", traits=(T.SELF_INDULGENT, T.SELF_AWARE, T.SELF_MASTERY)),
    Triad(domain=Domain.INTERNAL, name="Motivation", traits=(T.INTRINSIC, T.RESPONSIVE, T.EXTRINSIC)),
    Triad(domain=Domain.INTERNAL, name="Behavior", traits=(T.PESSIMISTIC, T.REALISTIC, T.OPTIMISTIC)),
    Triad(domain=Domain.INTERPERSONAL, name="Navigate", traits=(T.INDEPENDENT_NAVIGATE, T.MIXED_NAVIGATE, T.COMMUNAL_NAVIGATE)),
    Triad(domain=Domain.INTERPERSONAL, name="Communication", traits=(T.DIRECT, T.MIXED_COMMUNICATION, T.PASSIVE_COMMUNICATION)),
    Triad(domain=Domain.INTERPERSONAL, name="Stimulation", traits=(T.DYNAMIC, T.MODULAR, T.STATIC)),
    Triad(domain=Domain.PROCESSING, name="Cognitive", traits=(T.ANALYTICAL, T.VARIED, T.INTUITIVE)),
    Triad(domain=Domain.PROCESSING, name="Regulation", traits=(T.TURBULENT, T.RESPONSIVE_REGULATION, T.STOIC)),
    Triad(domain=Domain.PROCESSING, name="Reality", traits=(T.PHYSICAL, T.SOCIAL, T.UNIVERSAL)),
)

TRAIT_DESCRIPTIONS: Dict[Trait, str] = {
    T.STRUCTURED: "Prefers organization, plans, and systematic approaches",
    T.AMBIVALENT: "Holds mixed feelings and keeps options open when deciding",
    T.INDEPENDENT: "Prefers autonomy and self-reliance",
    T.PASSIVE: "Avoids confrontation and prefers harmony",
    T.DIPLOMATIC: "Skilled at managing relationships and finding compromises",
    T.ASSERTIVE: "Direct in communication and confident in actions",
    T.LAWFUL: "Follows rules, traditions, and established procedures",
    T.PRAGMATIC: "Focuses on practical solutions and realistic outcomes",
    T.SELF_PRINCIPLED: "Guided by an internal moral compass and personal values",
    T.SELF_INDULGENT: "Seeks pleasure and immediate gratification",
    T.SELF_AWARE: "Has deep understanding of own thoughts and feelings",
    T.SELF_MASTERY: "Focuses on self-discipline and personal control",
    T.INTRINSIC: "Motivated by internal satisfaction and personal meaning",
    T.RESPONSIVE: "Reacts to other people's emotions and needs sensitively",
    T.EXTRINSIC: "Motivated by external rewards and recognition",
    T.PESSIMISTIC: "Anticipates problems and focuses on potential negatives",
    T.REALISTIC: "Practical and grounded in concrete reality",
    T.OPTIMISTIC: "Maintains a positive outlook and expects good outcomes",
    T.INDEPENDENT_NAVIGATE: "Prefers to handle challenges alone",
    T.MIXED_NAVIGATE: "Uses both social and independent approaches situationally",
    T.COMMUNAL_NAVIGATE: "Builds and relies on social connections to get through things",
    T.DIRECT: "Communicates clearly and straightforwardly",
    T.MIXED_COMMUNICATION: "Adapts communication style to the situation",
    T.PASSIVE_COMMUNICATION: "Holds back opinions and lets others lead conversations",
    T.DYNAMIC: "High energy, seeks stimulation and change",
    T.MODULAR: "Alternates between stimulation and calm as needed",
    T.STATIC: "Prefers steady, predictable surroundings",
    T.ANALYTICAL: "Thinks logically and examines details systematically",
    T.VARIED: "Switches between analytical and intuitive thinking",
    T.INTUITIVE: "Relies on instincts and holistic understanding",
    T.TURBULENT: "Experiences emotional volatility and stress",
    T.RESPONSIVE_REGULATION: "Adjusts emotional responses to the situation",
    T.STOIC: "Emotionally steady and unaffected by external pressures",
    T.PHYSICAL: "Focused on tangible, concrete experiences",
    T.SOCIAL: "Attuned to social dynamics and group processes",
    T.UNIVERSAL: "Thinks in broad, abstract, and philosophical terms",
}


def validate_taxonomy(triads: Iterable[Triad], canonical: Iterable[Trait] = Trait) -> None:
    """
    Checks that every triad has exactly three traits, no trait appears twice,
    and the triads together cover the canonical trait set.

    Raises:
        TaxonomyError: on the first violation found.
    """
    seen: Dict[Trait, str] = {}
    keys = set()
    for triad in triads:
        if triad.key in keys:
            raise TaxonomyError(f"Duplicate triad '{triad.key}'")
        keys.add(triad.key)
        if len(triad.traits) != TRIAD_SIZE:
            raise TaxonomyError(
                f"Triad '{triad.key}' has {len(triad.traits)} traits, expected {TRIAD_SIZE}"
            )
        for trait in triad.traits:
            if trait in seen:
                raise TaxonomyError(
                    f"Trait '{trait.value}' appears in both '{seen[trait]}' and '{triad.key}'"
                )
            seen[trait] = triad.key

    missing = [trait.value for trait in canonical if trait not in seen]
    if missing:
        raise TaxonomyError(f"Traits not covered by any triad: {', '.join(missing)}")


validate_taxonomy(TRIADS)

TRIADS_BY_KEY: Dict[str, Triad] = {triad.key: triad for triad in TRIADS}
TRAIT_TO_TRIAD: Dict[Trait, Triad] = {trait: triad for triad in TRIADS for trait in triad.traits}


def domain_traits(domain: Domain) -> List[Trait]:
    return [trait for triad in TRIADS if triad.domain == domain for trait in triad.traits]


def get_triad(key: str) -> Triad:
    try:
        return TRIADS_BY_KEY[key]
    except KeyError:
        raise TaxonomyError(f"Unknown triad '{key}'") from None
