from typing import Iterable, Sequence, Tuple

from services.profile_engine.taxonomy import NEUTRAL_SCORE, Trait

CONFIDENCE_CEILING = 100.0
CHANCE_CONFIDENCE = CONFIDENCE_CEILING / 2


def calculate_confidence(separation: float, scale: float = 1.5, ceiling: float = CONFIDENCE_CEILING) -> float:
    """
    Maps a score separation to a confidence on [ceiling / 2, ceiling].

    Zero (or negative) separation is chance level. Confidence grows linearly
    with separation and saturates once the separation reaches `scale`.

    Args:
        separation: margin of the winning candidate over its competitor.
        scale: separation at which confidence saturates.
        ceiling: maximum confidence value.
    """
    if scale <= 0:
        raise ValueError(f"scale must be positive, got {scale}")
    floor = ceiling / 2
    ratio = min(1.0, max(0.0, separation) / scale)
    return floor + (ceiling - floor) * ratio


def mean(values: Iterable[float]) -> float:
    values = list(values)
    if not values:
        return 0.0
    return sum(values) / len(values)


def trait_mean(vector, traits: Sequence[Trait]) -> float:
    """Plain mean of the given traits; an empty list scores neutral."""
    if not traits:
        return NEUTRAL_SCORE
    return sum(vector[trait] for trait in traits) / len(traits)


def weighted_trait_score(vector, tiers: Sequence[Tuple[Sequence[Trait], float]]) -> float:
    """
    Per-trait weighted mean: every trait in a tier contributes its score with
    that tier's weight.
    """
    total = 0.0
    weight_sum = 0.0
    for traits, weight in tiers:
        for trait in traits:
            total += vector[trait] * weight
            weight_sum += weight
    if weight_sum == 0:
        return NEUTRAL_SCORE
    return total / weight_sum


def blended_score(vector, tiers: Sequence[Tuple[Sequence[Trait], float]]) -> float:
    """Weighted blend of tier means (e.g. 0.7 * mean(primary) + 0.3 * mean(secondary))."""
    present = [(traits, weight) for traits, weight in tiers if traits]
    weight_sum = sum(weight for _, weight in present)
    if weight_sum == 0:
        return NEUTRAL_SCORE
    return sum(trait_mean(vector, traits) * weight for traits, weight in present) / weight_sum
