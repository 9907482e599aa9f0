"""
Refinement session: walks the detected cusps one at a time, asking a
clarification question, turning the free-text answer into bounded trait
adjustments and finally recomputing the profile from the adjusted vector.

    created -> awaiting_response -> adjusting -> awaiting_response | complete
    skip:  awaiting_response -> next cusp, no adjustment
    save:  created | awaiting_response -> paused -> (resume) awaiting_response
    failed or cancelled step: rolled back to the state it started from

The state object is plain pydantic data so it can be persisted after every
transition and restored later.
"""
import logging
import uuid
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Protocol

from services.profile_engine.clarification import ClarificationService
from services.profile_engine.cusps import attach_questions
from services.profile_engine.errors import PersistenceError, SessionStateError
from services.profile_engine.models import (
    ConversationTurn,
    CuspRecord,
    PersonalityProfile,
    RefinementSessionState,
    SessionStatus,
    utc_now,
)
from services.profile_engine.taxonomy import Trait
from services.profile_engine.vector import TraitVector

logger = logging.getLogger(__name__)

Recompute = Callable[[TraitVector], Awaitable[PersonalityProfile]]


class SessionStore(Protocol):
    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        ...

    async def put(self, key: str, value: Dict[str, Any]) -> None:
        ...


def session_key(session_id: str) -> str:
    return f"session:{session_id}"


def bounded_deltas(deltas: Mapping[Trait, float], traits: Iterable[Trait], bound: float) -> Dict[Trait, float]:
    """Keeps only the given traits and clamps each delta to [-bound, bound]."""
    allowed = set(traits)
    return {
        Trait(trait): max(-bound, min(bound, float(delta)))
        for trait, delta in deltas.items()
        if Trait(trait) in allowed
    }


class SessionLogAdapter(logging.LoggerAdapter):
    """Adds the session's ids to every record, keeping any per-call extras."""

    def process(self, msg, kwargs):
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


class RefinementSession:

    def __init__(
        self,
        state: RefinementSessionState,
        clarifier: ClarificationService,
        recompute: Recompute,
        store: Optional[SessionStore] = None,
    ):
        self.state = state
        self.clarifier = clarifier
        self.recompute = recompute
        self.store = store
        self.log = SessionLogAdapter(logger, {"session_id": state.session_id, "user_id": state.user_id})
        # whether the latest state reached the store
        self.persisted = False

    @classmethod
    def create(
        cls,
        user_id: str,
        vector: TraitVector,
        cusps: List[CuspRecord],
        clarifier: ClarificationService,
        recompute: Recompute,
        store: Optional[SessionStore] = None,
        session_id: Optional[str] = None,
    ) -> "RefinementSession":
        state = RefinementSessionState(
            session_id=session_id or str(uuid.uuid4()),
            user_id=user_id,
            cusps=cusps,
            initial_vector=vector,
            current_vector=vector,
        )
        logger.info(
            f"Created refinement session {state.session_id} for user {user_id} with {len(cusps)} cusps",
            extra={"session_id": state.session_id, "user_id": user_id},
        )
        return cls(state, clarifier, recompute, store)

    @property
    def session_id(self) -> str:
        return self.state.session_id

    @property
    def status(self) -> SessionStatus:
        return self.state.status

    @property
    def current_cusp(self) -> Optional[CuspRecord]:
        if self.state.cursor < len(self.state.cusps):
            return self.state.cusps[self.state.cursor]
        return None

    @property
    def remaining(self) -> int:
        return max(0, len(self.state.cusps) - self.state.cursor)

    def _require(self, *allowed: SessionStatus) -> None:
        if self.state.status not in allowed:
            expected = ", ".join(status.value for status in allowed)
            raise SessionStateError(
                f"Session {self.session_id} is '{self.state.status.value}', expected one of: {expected}"
            )

    def _set_status(self, status: SessionStatus) -> None:
        self.log.debug(f"Session {self.session_id}: {self.state.status.value} -> {status.value}")
        self.state.status = status
        self.state.updated_at = utc_now()

    async def _persist(self) -> bool:
        self.persisted = False
        if self.store is None:
            return False
        try:
            await self.store.put(session_key(self.session_id), self.state.model_dump(mode="json"))
        except PersistenceError as e:
            self.log.warning(f"Could not persist session {self.session_id}; continuing in memory: {e}")
            return False
        self.persisted = True
        return True

    async def _ensure_questions(self) -> None:
        pending = [cusp for cusp in self.state.cusps[self.state.cursor:] if not cusp.questions]
        if not pending:
            return
        generated = {cusp.cusp_id: cusp for cusp in await attach_questions(pending, self.clarifier)}
        self.state.cusps = [generated.get(cusp.cusp_id, cusp) for cusp in self.state.cusps]

    def _rollback(self, snapshot: RefinementSessionState, cusp: CuspRecord) -> None:
        self.state = snapshot
        self.persisted = False
        self.log.warning(
            f"Session {self.session_id}: step for {cusp.cusp_id} did not finish; "
            f"back to {snapshot.status.value} at cusp {snapshot.cursor + 1} of {len(snapshot.cusps)}"
        )

    async def _complete(self) -> PersonalityProfile:
        # status only moves to complete once the recompute has succeeded
        profile = await self.recompute(self.state.current_vector)
        self.state.final_profile = profile
        self._set_status(SessionStatus.COMPLETE)
        changed = self.state.initial_vector.changed_traits(self.state.current_vector)
        self.log.info(f"Session {self.session_id} complete; {len(changed)} traits adjusted")
        return profile

    async def _advance(self) -> None:
        self.state.cursor += 1
        if self.current_cusp is None:
            await self._complete()
        else:
            self._set_status(SessionStatus.AWAITING_RESPONSE)
        await self._persist()

    async def start(self) -> Optional[str]:
        """Generates the questions and returns the first one (None when nothing to refine)."""
        self._require(SessionStatus.CREATED)
        if not self.state.cusps:
            await self._complete()
            await self._persist()
            return None
        await self._ensure_questions()
        self._set_status(SessionStatus.AWAITING_RESPONSE)
        await self._persist()
        return self.current_question()

    def current_question(self) -> Optional[str]:
        self._require(SessionStatus.AWAITING_RESPONSE)
        return self.current_cusp.question

    async def submit_response(self, response: str) -> ConversationTurn:
        """Turns the answer into adjustments for the current cusp and moves on."""
        self._require(SessionStatus.AWAITING_RESPONSE)
        cusp = self.current_cusp
        snapshot = self.state.model_copy(deep=True)
        self._set_status(SessionStatus.ADJUSTING)
        try:
            deltas, fallback = await self.clarifier.infer_adjustments(cusp, cusp.question or "", response)
            deltas = bounded_deltas(deltas, cusp.traits, cusp.max_delta)
            self.state.current_vector = self.state.current_vector.with_adjustments(deltas)
            turn = ConversationTurn(
                cusp_id=cusp.cusp_id,
                question=cusp.question,
                response=response,
                adjustments=deltas,
                fallback=fallback,
            )
            self.state.turns.append(turn)
            self.log.info(f"Session {self.session_id}: applied adjustments for {cusp.cusp_id}", extra={"cusp_id": cusp.cusp_id})
            await self._advance()
        except BaseException:
            self._rollback(snapshot, cusp)
            raise
        return turn

    async def skip(self) -> ConversationTurn:
        self._require(SessionStatus.AWAITING_RESPONSE)
        cusp = self.current_cusp
        snapshot = self.state.model_copy(deep=True)
        try:
            turn = ConversationTurn(cusp_id=cusp.cusp_id, question=cusp.question, skipped=True)
            self.state.turns.append(turn)
            self.log.info(f"Session {self.session_id}: skipped {cusp.cusp_id}", extra={"cusp_id": cusp.cusp_id})
            await self._advance()
        except BaseException:
            self._rollback(snapshot, cusp)
            raise
        return turn

    async def save_progress(self) -> bool:
        """Pauses the session. Returns whether the state reached the store."""
        self._require(SessionStatus.CREATED, SessionStatus.AWAITING_RESPONSE)
        self._set_status(SessionStatus.PAUSED)
        return await self._persist()

    async def resume(self) -> Optional[str]:
        self._require(SessionStatus.PAUSED)
        if self.current_cusp is None:
            await self._complete()
            await self._persist()
            return None
        await self._ensure_questions()
        self._set_status(SessionStatus.AWAITING_RESPONSE)
        await self._persist()
        return self.current_question()

    async def regenerate_question(self) -> str:
        """Asks for a fresh question for the current cusp without losing progress."""
        self._require(SessionStatus.AWAITING_RESPONSE)
        cusp = self.current_cusp
        question, _ = await self.clarifier.question_for(cusp, use_cache=False)
        self.state.cusps[self.state.cursor] = cusp.model_copy(update={"questions": [question]})
        self.state.updated_at = utc_now()
        await self._persist()
        return question

    def result(self) -> PersonalityProfile:
        self._require(SessionStatus.COMPLETE)
        return self.state.final_profile
