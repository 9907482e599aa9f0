import pytest

from services.profile_engine.confidence import (
    CHANCE_CONFIDENCE,
    CONFIDENCE_CEILING,
    blended_score,
    calculate_confidence,
    weighted_trait_score,
)
from services.profile_engine.taxonomy import NEUTRAL_SCORE, Trait
from services.profile_engine.vector import TraitVector


def test_zero_separation_is_chance_level():
    assert calculate_confidence(0.0, 1.5) == CHANCE_CONFIDENCE == CONFIDENCE_CEILING / 2


def test_confidence_is_monotonic_and_bounded():
    separations = [i * 0.1 for i in range(60)]
    values = [calculate_confidence(s, 1.5) for s in separations]
    assert values == sorted(values)
    assert all(CHANCE_CONFIDENCE <= v <= CONFIDENCE_CEILING for v in values)
    assert values[-1] == CONFIDENCE_CEILING


def test_negative_separation_clamps_to_chance():
    assert calculate_confidence(-3.0, 1.0) == CHANCE_CONFIDENCE


def test_custom_ceiling():
    assert calculate_confidence(0.0, 1.0, ceiling=1.0) == 0.5
    assert calculate_confidence(5.0, 1.0, ceiling=1.0) == 1.0


def test_scale_must_be_positive():
    with pytest.raises(ValueError):
        calculate_confidence(1.0, 0.0)


def test_weighted_trait_score():
    vector = TraitVector.from_scores({Trait.STRUCTURED: 9.0, Trait.LAWFUL: 3.0})
    score = weighted_trait_score(vector, [([Trait.STRUCTURED], 3.0), ([Trait.LAWFUL], 1.0)])
    assert score == pytest.approx((9.0 * 3 + 3.0) / 4)
    assert weighted_trait_score(vector, []) == NEUTRAL_SCORE


def test_blended_score_skips_empty_tiers():
    vector = TraitVector.from_scores({Trait.STRUCTURED: 9.0, Trait.LAWFUL: 3.0})
    assert blended_score(vector, [([Trait.STRUCTURED], 0.7), ([Trait.LAWFUL], 0.3)]) == pytest.approx(7.2)
    assert blended_score(vector, [([Trait.STRUCTURED], 0.7), ([], 0.3)]) == pytest.approx(9.0)
