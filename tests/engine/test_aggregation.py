import pytest

from services.profile_engine.aggregation import (
    DEFAULT_TRAIT_MAPPINGS,
    ITEMS_PER_TRAIT,
    QUESTION_COUNT,
    ScoringOverrides,
    calculate_trait_vector,
    load_scoring_overrides,
    load_scoring_overrides_from_file,
    traits_for_question,
    validate_responses,
)
from services.profile_engine.errors import ResponseValidationError, ScoringConfigError
from services.profile_engine.taxonomy import Trait


def test_default_mappings_cover_every_trait():
    assert set(DEFAULT_TRAIT_MAPPINGS) == set(Trait)
    for indices in DEFAULT_TRAIT_MAPPINGS.values():
        assert len(indices) == ITEMS_PER_TRAIT
        assert all(1 <= i <= QUESTION_COUNT for i in indices)


def test_each_question_feeds_two_traits():
    for question in range(1, QUESTION_COUNT + 1):
        assert len(traits_for_question(question)) == 2


def test_interleaved_assignment():
    assert DEFAULT_TRAIT_MAPPINGS[Trait.STRUCTURED] == (1, 4, 7, 10, 13, 16)
    assert DEFAULT_TRAIT_MAPPINGS[Trait.INDEPENDENT] == (3, 6, 9, 12, 15, 18)
    assert DEFAULT_TRAIT_MAPPINGS[Trait.INDEPENDENT_NAVIGATE] == (1, 7, 13, 19, 25, 31)
    assert traits_for_question(1) == [Trait.STRUCTURED, Trait.INDEPENDENT_NAVIGATE]


def test_midpoint_responses_give_midpoint_traits(midpoint_responses):
    vector = calculate_trait_vector(midpoint_responses)
    assert all(score == pytest.approx(5.5) for score in vector.scores.values())


def test_trait_score_is_mean_of_its_questions():
    responses = [5.0] * QUESTION_COUNT
    for index in DEFAULT_TRAIT_MAPPINGS[Trait.STRUCTURED]:
        responses[index - 1] = 9.0
    responses[0] = 3.0
    vector = calculate_trait_vector(responses)
    assert vector[Trait.STRUCTURED] == pytest.approx((3.0 + 9.0 * 5) / 6)
    assert vector[Trait.AMBIVALENT] == pytest.approx(5.0)


def test_integer_responses_are_accepted():
    vector = calculate_trait_vector([10] * QUESTION_COUNT)
    assert vector[Trait.STOIC] == 10.0


@pytest.mark.parametrize("responses, message", [
    ([5.0] * 107, "Expected 108 responses, got 107"),
    ([5.0] * 109, "Expected 108 responses, got 109"),
    ("5" * 108, "sequence of numbers"),
    ([0.5] + [5.0] * 107, "q1: 0.5 outside"),
    ([5.0] * 107 + [10.5], "q108: 10.5 outside"),
    ([5.0] * 107 + [float("nan")], "q108"),
    (["7"] + [5.0] * 107, "q1: not a number"),
    ([True] + [5.0] * 107, "q1: not a number"),
])
def test_invalid_responses(responses, message):
    with pytest.raises(ResponseValidationError, match=message):
        validate_responses(responses)


def test_overrides_replace_single_trait():
    overrides = load_scoring_overrides({"version": "2", "trait_mappings": {"Structured": [108]}})
    responses = [5.0] * QUESTION_COUNT
    responses[107] = 10.0
    vector = calculate_trait_vector(responses, overrides)
    assert vector[Trait.STRUCTURED] == 10.0
    assert overrides.mappings()[Trait.AMBIVALENT] == DEFAULT_TRAIT_MAPPINGS[Trait.AMBIVALENT]


@pytest.mark.parametrize("data", [
    {"trait_mappings": {"Telepathic": [1]}},
    {"trait_mappings": {"Structured": []}},
    {"trait_mappings": {"Structured": [1, 1]}},
    {"trait_mappings": {"Structured": [0, 109]}},
])
def test_invalid_overrides(data):
    with pytest.raises(ScoringConfigError):
        load_scoring_overrides(data)


def test_overrides_from_yaml_file(tmp_path):
    path = tmp_path / "scoring.yaml"
    path.write_text("version: '1'\ntrait_mappings:\n  Stoic: [2, 4]\n", encoding="utf-8")
    overrides = load_scoring_overrides_from_file(str(path))
    assert isinstance(overrides, ScoringOverrides)
    assert overrides.mappings()[Trait.STOIC] == (2, 4)


def test_overrides_file_errors(tmp_path):
    with pytest.raises(ScoringConfigError, match="File not found"):
        load_scoring_overrides_from_file(str(tmp_path / "missing.yaml"))

    empty = tmp_path / "empty.yaml"
    empty.write_text("", encoding="utf-8")
    with pytest.raises(ScoringConfigError, match="empty"):
        load_scoring_overrides_from_file(str(empty))

    listing = tmp_path / "list.yaml"
    listing.write_text("- 1\n- 2\n", encoding="utf-8")
    with pytest.raises(ScoringConfigError, match="Expected a mapping"):
        load_scoring_overrides_from_file(str(listing))
