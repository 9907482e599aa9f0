from typing import Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

from services.profile_engine.cusps import ConfidenceReport
from services.profile_engine.models import (
    ConversationTurn,
    CuspRecord,
    PersonalityProfile,
    SessionStatus,
)
from services.profile_engine.refinement import RefinementSession


class ProfileRequest(BaseModel):
    responses: List[float]  # one Likert answer per question, in order


class ProfileResponse(BaseModel):
    profile: PersonalityProfile
    cusps: List[CuspRecord]
    confidence_report: ConfidenceReport


class ImpactRequest(BaseModel):
    responses: List[float]
    question: int = Field(..., description="1-based question number")


class SessionCreateRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    responses: Optional[List[float]] = None
    trait_scores: Optional[Dict[str, float]] = None

    @model_validator(mode="after")
    def _one_source(self) -> "SessionCreateRequest":
        if (self.responses is None) == (self.trait_scores is None):
            raise ValueError("Provide exactly one of 'responses' or 'trait_scores'")
        return self


class ResponseSubmission(BaseModel):
    response: str = Field(..., min_length=1)


class SessionResponse(BaseModel):
    session_id: str
    user_id: str
    status: SessionStatus
    cursor: int
    total_cusps: int
    current_cusp: Optional[CuspRecord] = None
    current_question: Optional[str] = None
    turns: List[ConversationTurn] = Field(default_factory=list)
    final_profile: Optional[PersonalityProfile] = None
    persisted: Optional[bool] = None

    @classmethod
    def from_session(cls, session: RefinementSession, persisted: Optional[bool] = None) -> "SessionResponse":
        state = session.state
        awaiting = state.status == SessionStatus.AWAITING_RESPONSE
        cusp = session.current_cusp if awaiting else None
        return cls(
            session_id=state.session_id,
            user_id=state.user_id,
            status=state.status,
            cursor=state.cursor,
            total_cusps=len(state.cusps),
            current_cusp=cusp,
            current_question=cusp.question if cusp else None,
            turns=state.turns,
            final_profile=state.final_profile,
            persisted=persisted,
        )
