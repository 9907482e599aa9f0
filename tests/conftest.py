import json
from typing import Dict, List, Optional

import pytest

from services.profile_engine.aggregation import LIKERT_MIDPOINT, QUESTION_COUNT
from services.profile_engine.clarification import QUESTION_SYSTEM_PROMPT
from services.profile_engine.errors import CollaboratorUnavailableError
from services.profile_engine.taxonomy import TRIADS, Trait
from services.profile_engine.vector import TraitVector


class FakeGenerator:
    """Text generator double: canned question text and a canned adjustment object."""

    def __init__(
        self,
        question: str = "When plans change at the last minute, what do you actually do?",
        adjustments: Optional[Dict[str, float]] = None,
        raw_adjustments: Optional[str] = None,
        fail: bool = False,
    ):
        self.question = question
        self.adjustments = adjustments if adjustments is not None else {t.value: 1.0 for t in Trait}
        self.raw_adjustments = raw_adjustments
        self.fail = fail
        self.calls: List[tuple] = []

    async def complete(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        self.calls.append((prompt, system_prompt))
        if self.fail:
            raise CollaboratorUnavailableError("service down")
        if system_prompt == QUESTION_SYSTEM_PROMPT:
            return self.question
        if self.raw_adjustments is not None:
            return self.raw_adjustments
        return json.dumps(self.adjustments)


@pytest.fixture
def fake_generator():
    return FakeGenerator()


@pytest.fixture
def generator_factory():
    return FakeGenerator


@pytest.fixture
def neutral_vector():
    return TraitVector.uniform()


@pytest.fixture
def midpoint_responses():
    return [LIKERT_MIDPOINT] * QUESTION_COUNT


@pytest.fixture
def separated_vector():
    """Every triad cleanly resolved: first-listed trait 9, then 5, then 1."""
    scores = {}
    for triad in TRIADS:
        for trait, score in zip(triad.traits, (9.0, 5.0, 1.0)):
            scores[trait] = score
    return TraitVector(scores=scores)
