import math
from typing import Any, Dict, Mapping, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from services.profile_engine.taxonomy import (
    MAX_SCORE,
    MIN_SCORE,
    NEUTRAL_SCORE,
    TRIADS,
    Domain,
    Trait,
    Triad,
    domain_traits,
    get_triad,
)

ADJUSTED_MIN = 1.0
ADJUSTED_MAX = 10.0


class TraitVector(BaseModel):
    """
    Scores for every canonical trait on the 0-10 scale.

    Traits missing from the input are filled with the neutral midpoint, so
    lookups never fail. Instances are immutable; adjustments return a new
    vector.
    """
    model_config = ConfigDict(frozen=True)

    scores: Dict[Trait, float] = Field(default_factory=dict)

    @field_validator("scores", mode="before")
    @classmethod
    def _coerce_keys(cls, value: Any) -> Any:
        if isinstance(value, Mapping):
            return {Trait(k) if not isinstance(k, Trait) else k: v for k, v in value.items()}
        return value

    @field_validator("scores")
    @classmethod
    def _fill_and_check(cls, value: Dict[Trait, float]) -> Dict[Trait, float]:
        filled: Dict[Trait, float] = {}
        for trait in Trait:
            score = float(value.get(trait, NEUTRAL_SCORE))
            if math.isnan(score) or not MIN_SCORE <= score <= MAX_SCORE:
                raise ValueError(f"Score for '{trait.value}' must be within [{MIN_SCORE}, {MAX_SCORE}], got {score}")
            filled[trait] = score
        return filled

    @classmethod
    def from_scores(cls, scores: Mapping[Union[Trait, str], float]) -> "TraitVector":
        return cls(scores=dict(scores))

    @classmethod
    def uniform(cls, value: float = NEUTRAL_SCORE) -> "TraitVector":
        return cls(scores={trait: value for trait in Trait})

    def __getitem__(self, trait: Union[Trait, str]) -> float:
        return self.scores[Trait(trait)]

    def with_adjustments(
        self,
        deltas: Mapping[Trait, float],
        low: float = ADJUSTED_MIN,
        high: float = ADJUSTED_MAX,
    ) -> "TraitVector":
        """Adds per-trait deltas and clamps every adjusted score to [low, high]."""
        if not deltas:
            return self
        updated = dict(self.scores)
        for trait, delta in deltas.items():
            trait = Trait(trait)
            if delta == 0:
                continue
            updated[trait] = min(high, max(low, updated[trait] + float(delta)))
        return TraitVector(scores=updated)

    def changed_traits(self, other: "TraitVector", tolerance: float = 1e-9) -> Dict[Trait, float]:
        return {
            trait: other.scores[trait] - score
            for trait, score in self.scores.items()
            if abs(other.scores[trait] - score) > tolerance
        }

    def as_dict(self) -> Dict[str, float]:
        return {trait.value: score for trait, score in self.scores.items()}


def domain_score(vector: TraitVector, domain: Domain) -> float:
    """Mean of the domain's trait scores scaled to [0, 1]."""
    traits = domain_traits(domain)
    mean = sum(vector[trait] for trait in traits) / len(traits)
    return mean / MAX_SCORE


def dominant_trait(vector: TraitVector, triad: Union[Triad, str]) -> Trait:
    """
    Highest-scoring member of a triad. On exact ties the member listed first
    in the taxonomy wins.
    """
    if isinstance(triad, str):
        triad = get_triad(triad)
    best = triad.traits[0]
    for trait in triad.traits[1:]:
        if vector[trait] > vector[best]:
            best = trait
    return best


def domain_scores(vector: TraitVector) -> Dict[Domain, float]:
    return {domain: domain_score(vector, domain) for domain in Domain}


def dominant_traits(vector: TraitVector) -> Dict[str, Trait]:
    return {triad.key: dominant_trait(vector, triad) for triad in TRIADS}
