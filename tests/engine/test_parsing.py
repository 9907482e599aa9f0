import pytest

from services.profile_engine.parsing import (
    Malformed,
    Ok,
    parse_adjustments,
    parse_json_object,
    parse_question,
    select_adjustments,
    select_question,
    strip_fences,
)
from services.profile_engine.taxonomy import Trait

CONTROL = [Trait.STRUCTURED, Trait.AMBIVALENT, Trait.INDEPENDENT]


def test_strip_fences():
    assert strip_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_fences("  plain  ") == "plain"


@pytest.mark.parametrize("text", [
    '{"a": 1}',
    'Sure! Here you go: {"a": 1} hope it helps',
    '```json\n{"a": 1,}\n```',
])
def test_parse_json_object_finds_embedded_object(text):
    assert parse_json_object(text) == Ok({"a": 1})


def test_parse_json_object_handles_braces_in_strings():
    assert parse_json_object('{"note": "use {x}", "a": 2}') == Ok({"note": "use {x}", "a": 2})


@pytest.mark.parametrize("text, reason", [
    (None, "empty response"),
    ("   ", "empty response"),
    ("no json here", "no JSON object found"),
    ("{not: valid}", "invalid JSON object"),
])
def test_parse_json_object_malformed(text, reason):
    outcome = parse_json_object(text)
    assert isinstance(outcome, Malformed)
    assert outcome.reason == reason


def test_parse_adjustments_filters_and_clamps():
    text = '{"Structured": 3.2, "Ambivalent": "-0.5", "Stoic": 1.0, "Independent": "lots"}'
    outcome = parse_adjustments(text, CONTROL, bound=1.5)
    assert outcome == Ok({Trait.STRUCTURED: 1.5, Trait.AMBIVALENT: -0.5})


def test_parse_adjustments_without_usable_entries_is_malformed():
    outcome = parse_adjustments('{"Stoic": 1.0}', CONTROL, bound=1.5)
    assert isinstance(outcome, Malformed)
    assert outcome.reason == "no usable trait adjustments"


def test_select_adjustments_falls_back_to_zero():
    assert select_adjustments(Malformed("x", "bad"), CONTROL) == {trait: 0.0 for trait in CONTROL}
    assert select_adjustments(Ok({Trait.STRUCTURED: 0.4}), CONTROL) == {Trait.STRUCTURED: 0.4}


@pytest.mark.parametrize("text, expected", [
    ("How do you plan a weekend?", "How do you plan a weekend?"),
    ('\n1. "How do you plan a weekend?"\n2. Another', "How do you plan a weekend?"),
    ("- When plans change, what do you do?", "When plans change, what do you do?"),
])
def test_parse_question(text, expected):
    assert parse_question(text) == Ok(expected)


def test_parse_question_malformed():
    assert isinstance(parse_question(""), Malformed)
    assert isinstance(parse_question("x" * 600), Malformed)
    assert select_question(parse_question(""), "fallback?") == "fallback?"
