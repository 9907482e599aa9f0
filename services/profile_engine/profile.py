import hashlib
import json
import logging
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Protocol, Tuple

from services.profile_engine.errors import ComputationError
from services.profile_engine.frameworks import FRAMEWORKS, FrameworkFunction
from services.profile_engine.models import (
    CalculationTraceEntry,
    FrameworkName,
    FrameworkResult,
    PersonalityProfile,
)
from services.profile_engine.vector import TraitVector, domain_scores, dominant_traits

logger = logging.getLogger(__name__)

FINGERPRINT_PRECISION = 4

FrameworkOutcome = Tuple[Optional[FrameworkResult], CalculationTraceEntry]


class ComputationCache(Protocol):
    """What the engine needs from a result cache. None means a miss."""

    async def get(self, key: str) -> Optional[Any]:
        ...

    async def set(self, key: str, value: Any) -> None:
        ...

    async def get_or_compute(self, key: str, factory: Callable[[], Awaitable[Any]]) -> Any:
        ...


def stable_fingerprint(payload) -> str:
    """SHA-1 of a canonical JSON rendering (sorted keys, compact separators)."""
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha1(canonical.encode("utf-8")).hexdigest()


def vector_fingerprint(vector: TraitVector) -> str:
    return stable_fingerprint({trait: round(score, FINGERPRINT_PRECISION) for trait, score in vector.as_dict().items()})


def run_framework(name: FrameworkName, func: FrameworkFunction, vector: TraitVector) -> FrameworkOutcome:
    """
    Runs one framework module in isolation. Any exception it raises is
    recorded in the trace entry and the result is None.
    """
    try:
        result = func(vector)
    except Exception as e:
        error = ComputationError(name.value, f"{type(e).__name__}: {e}")
        logger.error(f"Framework computation failed: {error}", exc_info=True)
        return None, CalculationTraceEntry(framework=name, success=False, error=str(error))
    return result, CalculationTraceEntry(
        framework=name,
        success=True,
        detail=f"{result.label} ({result.confidence:.1f}%)",
    )


def assemble_profile(vector: TraitVector, outcomes: Mapping[FrameworkName, FrameworkOutcome]) -> PersonalityProfile:
    failed = [name.value for name, (result, _) in outcomes.items() if result is None]
    if failed:
        logger.warning(f"Profile assembled without frameworks: {', '.join(failed)}")
    return PersonalityProfile(
        trait_vector=vector,
        dominant_traits=dominant_traits(vector),
        domain_scores=domain_scores(vector),
        frameworks={name: result for name, (result, _) in outcomes.items()},
        calculation_trace=[trace for _, trace in outcomes.values()],
        fingerprint=vector_fingerprint(vector),
    )


def build_profile(
    vector: TraitVector,
    frameworks: Optional[Dict[FrameworkName, FrameworkFunction]] = None,
) -> PersonalityProfile:
    """Runs every framework module sequentially and assembles the profile."""
    frameworks = FRAMEWORKS if frameworks is None else frameworks
    outcomes = {name: run_framework(name, func, vector) for name, func in frameworks.items()}
    return assemble_profile(vector, outcomes)
