from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from services.profile_engine.taxonomy import Domain, Trait
from services.profile_engine.vector import TraitVector


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class FrameworkName(str, Enum):
    MBTI = "mbti"
    ENNEAGRAM = "enneagram"
    BIG_FIVE = "big_five"
    HOLLAND = "holland"
    ALIGNMENT = "alignment"
    ATTACHMENT = "attachment"
    SOCIONICS = "socionics"
    INTEGRAL = "integral"


# --- Framework results ---

class FrameworkResult(BaseModel):
    label: str
    confidence: float = Field(..., ge=0.0, le=100.0)
    sub_scores: Dict[str, float] = Field(default_factory=dict)


class MBTIAxis(BaseModel):
    axis: str
    letter: str
    score: float
    strength: float
    confidence: float


class CognitiveFunction(BaseModel):
    role: str
    function: str
    strength: float
    description: str


class MBTIResult(FrameworkResult):
    framework: Literal["mbti"] = "mbti"
    axes: List[MBTIAxis]
    cognitive_functions: List[CognitiveFunction] = Field(default_factory=list)


class EnneagramResult(FrameworkResult):
    framework: Literal["enneagram"] = "enneagram"
    type_number: int
    wing: int
    wing_influence: float
    tritype: str
    primary_instinct: str
    secondary_instinct: str
    health_level: str


class BigFiveDimension(BaseModel):
    name: str
    score: float
    level: Literal["high", "moderate", "low"]
    confidence: float
    facets: Dict[str, float]


class BigFiveResult(FrameworkResult):
    framework: Literal["big_five"] = "big_five"
    dimensions: List[BigFiveDimension]


class HollandResult(FrameworkResult):
    framework: Literal["holland"] = "holland"
    code: str
    primary_type: str
    description: str
    careers: Dict[str, List[str]] = Field(default_factory=dict)
    work_environment: str = ""


class AlignmentAxis(BaseModel):
    axis: str
    position: str
    score: float
    margin: float
    confidence: float
    description: str


class AlignmentResult(FrameworkResult):
    framework: Literal["alignment"] = "alignment"
    ethical: AlignmentAxis
    moral: AlignmentAxis


class AttachmentResult(FrameworkResult):
    framework: Literal["attachment"] = "attachment"
    style: str
    description: str
    characteristics: List[str] = Field(default_factory=list)


class InformationElement(BaseModel):
    role: str
    element: str
    strength: float
    description: str


class SocionicsResult(FrameworkResult):
    framework: Literal["socionics"] = "socionics"
    mbti_type: str
    dual_type: str
    elements: List[InformationElement]


class IntegralLevelSummary(BaseModel):
    key: str
    number: int
    color: str
    name: str
    score: float
    cognitive_stage: str
    worldview: str
    thinking_pattern: str
    characteristics: List[str] = Field(default_factory=list)
    growth_edge: List[str] = Field(default_factory=list)
    typical_concerns: List[str] = Field(default_factory=list)


class IntegralResult(FrameworkResult):
    framework: Literal["integral"] = "integral"
    primary_level: IntegralLevelSummary
    secondary_level: Optional[IntegralLevelSummary] = None
    reality_mapping: Dict[str, float]
    cognitive_complexity: float
    developmental_edge: str


AnyFrameworkResult = Annotated[
    Union[
        MBTIResult,
        EnneagramResult,
        BigFiveResult,
        HollandResult,
        AlignmentResult,
        AttachmentResult,
        SocionicsResult,
        IntegralResult,
    ],
    Field(discriminator="framework"),
]


class CalculationTraceEntry(BaseModel):
    framework: FrameworkName
    success: bool
    detail: Optional[str] = None
    error: Optional[str] = None


class PersonalityProfile(BaseModel):
    """Immutable snapshot of a trait vector and everything derived from it."""
    model_config = ConfigDict(frozen=True)

    trait_vector: TraitVector
    dominant_traits: Dict[str, Trait]
    domain_scores: Dict[Domain, float]
    frameworks: Dict[FrameworkName, Optional[AnyFrameworkResult]]
    calculation_trace: List[CalculationTraceEntry] = Field(default_factory=list)
    fingerprint: str
    generated_at: datetime = Field(default_factory=utc_now)

    def result(self, framework: FrameworkName) -> Optional[FrameworkResult]:
        return self.frameworks.get(framework)

    @property
    def failed_frameworks(self) -> List[FrameworkName]:
        return [entry.framework for entry in self.calculation_trace if not entry.success]


# --- Cusps ---

class CuspKind(str, Enum):
    TRIAD = "triad"
    DEVELOPMENTAL_LEVEL = "developmental_level"
    REALITY_DOMAIN = "reality_domain"


class CuspCandidate(BaseModel):
    name: str
    score: float


class CuspRecord(BaseModel):
    cusp_id: str
    kind: CuspKind
    label: str
    candidates: List[CuspCandidate]
    traits: List[Trait]
    importance: float = Field(..., ge=0.0)
    max_delta: float
    questions: List[str] = Field(default_factory=list)

    @property
    def question(self) -> Optional[str]:
        return self.questions[0] if self.questions else None


# --- Refinement sessions ---

class SessionStatus(str, Enum):
    CREATED = "created"
    AWAITING_RESPONSE = "awaiting_response"
    ADJUSTING = "adjusting"
    COMPLETE = "complete"
    PAUSED = "paused"


class ConversationTurn(BaseModel):
    cusp_id: str
    question: Optional[str]
    response: Optional[str] = None
    adjustments: Dict[Trait, float] = Field(default_factory=dict)
    skipped: bool = False
    fallback: bool = False
    timestamp: datetime = Field(default_factory=utc_now)


class RefinementSessionState(BaseModel):
    session_id: str
    user_id: str
    status: SessionStatus = SessionStatus.CREATED
    cusps: List[CuspRecord]
    cursor: int = 0
    turns: List[ConversationTurn] = Field(default_factory=list)
    initial_vector: TraitVector
    current_vector: TraitVector
    final_profile: Optional[PersonalityProfile] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
