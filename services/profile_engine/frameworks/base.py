"""
Shared configuration models and scoring helpers for the framework modules.

Every framework table is written as plain data and validated through the
models below when its module is imported, so an unknown trait name fails at
startup rather than while scoring.
"""
from dataclasses import dataclass
from typing import Any, Dict, Hashable, List, Optional, Sequence, Tuple, TypeVar

from pydantic import BaseModel, Field

from services.profile_engine.confidence import blended_score, weighted_trait_score
from services.profile_engine.taxonomy import Trait
from services.profile_engine.vector import TraitVector

STRONG_WEIGHT = 1.5
MODERATE_WEIGHT = 1.0
CORE_TIER_WEIGHTS = (3.0, 2.0, 1.0)
PRIMARY_SECONDARY_BLEND = (0.7, 0.3)

K = TypeVar("K", bound=Hashable)


class IndicatorSet(BaseModel):
    """Strong and moderate indicator traits for one pole or level."""
    strong: List[Trait] = Field(default_factory=list)
    moderate: List[Trait] = Field(default_factory=list)
    description: str = ""

    def score(self, vector: TraitVector) -> float:
        return weighted_trait_score(vector, [(self.strong, STRONG_WEIGHT), (self.moderate, MODERATE_WEIGHT)])

    @property
    def traits(self) -> List[Trait]:
        return list(dict.fromkeys(self.strong + self.moderate))


class TieredTraits(BaseModel):
    """Primary / secondary / tertiary trait lists with decreasing weights."""
    primary: List[Trait]
    secondary: List[Trait] = Field(default_factory=list)
    tertiary: List[Trait] = Field(default_factory=list)
    description: str = ""

    def weighted_score(self, vector: TraitVector, weights: Sequence[float] = CORE_TIER_WEIGHTS) -> float:
        return weighted_trait_score(vector, list(zip((self.primary, self.secondary, self.tertiary), weights)))

    def blended_score(self, vector: TraitVector, weights: Sequence[float] = PRIMARY_SECONDARY_BLEND) -> float:
        return blended_score(vector, list(zip((self.primary, self.secondary), weights)))

    @property
    def traits(self) -> List[Trait]:
        return list(dict.fromkeys(self.primary + self.secondary + self.tertiary))


@dataclass(frozen=True)
class Selection:
    winner: Any
    score: float
    runner_up: Optional[Any] = None
    margin: float = 0.0
    resolved: bool = True


def rank_candidates(scores: Dict[K, float]) -> List[Tuple[K, float]]:
    """Sorts candidates by score, highest first. Ties keep declaration order."""
    return sorted(scores.items(), key=lambda item: -item[1])


def select_category(
    scores: Dict[K, float],
    min_separation: float = 0.0,
    neutral: Optional[K] = None,
) -> Selection:
    """
    Picks the best-scoring candidate.

    When a neutral candidate is given, the winner must beat every other
    candidate by more than `min_separation`; otherwise the neutral candidate
    is returned with `resolved=False`.
    """
    ranked = rank_candidates(scores)
    winner, top = ranked[0]
    runner_up, second = ranked[1] if len(ranked) > 1 else (None, top)
    margin = top - second
    if neutral is not None and winner != neutral and margin <= min_separation:
        return Selection(winner=neutral, score=scores[neutral], runner_up=winner, margin=margin, resolved=False)
    return Selection(winner=winner, score=top, runner_up=runner_up, margin=margin)
