import asyncio
import logging
from typing import Dict, List, Optional, Sequence

from services.profile_engine.aggregation import ScoringOverrides, calculate_trait_vector
from services.profile_engine.clarification import ClarificationService
from services.profile_engine.cusps import detect_cusps
from services.profile_engine.frameworks import FRAMEWORKS, FrameworkFunction
from services.profile_engine.models import CuspRecord, FrameworkName, PersonalityProfile, RefinementSessionState
from services.profile_engine.profile import (
    ComputationCache,
    assemble_profile,
    run_framework,
    vector_fingerprint,
)
from services.profile_engine.refinement import RefinementSession, SessionStore
from services.profile_engine.vector import TraitVector

logger = logging.getLogger(__name__)


class ProfileEngine:
    """
    Entry point for profile generation and refinement.

    Framework modules run concurrently in worker threads and the assembled
    profile is memoized by trait-vector fingerprint when a cache is given.
    """

    def __init__(
        self,
        cache: Optional[ComputationCache] = None,
        clarifier: Optional[ClarificationService] = None,
        store: Optional[SessionStore] = None,
        frameworks: Optional[Dict[FrameworkName, FrameworkFunction]] = None,
        overrides: Optional[ScoringOverrides] = None,
    ):
        self.cache = cache
        self.clarifier = clarifier or ClarificationService(cache=cache)
        self.store = store
        self.frameworks = FRAMEWORKS if frameworks is None else frameworks
        self.overrides = overrides
        logger.info(f"ProfileEngine initialized with {len(self.frameworks)} frameworks")

    def trait_vector(self, responses: Sequence[float]) -> TraitVector:
        """Raises ResponseValidationError for malformed responses."""
        return calculate_trait_vector(responses, self.overrides)

    async def generate_profile(self, responses: Sequence[float]) -> PersonalityProfile:
        vector = self.trait_vector(responses)
        return await self.compute_profile(vector)

    async def compute_profile(self, vector: TraitVector) -> PersonalityProfile:
        if self.cache is None:
            return await self._compute(vector)
        key = f"profile:{vector_fingerprint(vector)}"
        return await self.cache.get_or_compute(key, lambda: self._compute(vector))

    async def _compute(self, vector: TraitVector) -> PersonalityProfile:
        names = list(self.frameworks)
        outcomes = await asyncio.gather(
            *(asyncio.to_thread(run_framework, name, self.frameworks[name], vector) for name in names)
        )
        profile = assemble_profile(vector, dict(zip(names, outcomes)))
        logger.info(f"Computed profile {profile.fingerprint[:12]} ({len(profile.failed_frameworks)} framework failures)")
        return profile

    def detect_cusps(self, profile: PersonalityProfile) -> List[CuspRecord]:
        return detect_cusps(profile)

    def open_session(self, user_id: str, profile: PersonalityProfile) -> RefinementSession:
        return RefinementSession.create(
            user_id=user_id,
            vector=profile.trait_vector,
            cusps=self.detect_cusps(profile),
            clarifier=self.clarifier,
            recompute=self.compute_profile,
            store=self.store,
        )

    def restore_session(self, state: RefinementSessionState) -> RefinementSession:
        return RefinementSession(state, self.clarifier, self.compute_profile, self.store)
