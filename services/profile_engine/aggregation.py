import logging
import math
from numbers import Real
from typing import Any, Dict, List, Optional, Sequence, Tuple

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from services.profile_engine.errors import ResponseValidationError, ScoringConfigError
from services.profile_engine.taxonomy import TRIADS, Trait
from services.profile_engine.vector import TraitVector

logger = logging.getLogger(__name__)

QUESTION_COUNT = 108
LIKERT_MIN = 1.0
LIKERT_MAX = 10.0
LIKERT_MIDPOINT = (LIKERT_MIN + LIKERT_MAX) / 2
ITEMS_PER_TRAIT = 6


def _interleaved(traits: Sequence[Trait], first_question: int) -> Dict[Trait, Tuple[int, ...]]:
    """
    Assigns questions round-robin: with n traits starting at question q, the
    k-th trait gets q+k, q+k+n, q+k+2n, ... (1-based).
    """
    stride = len(traits)
    return {
        trait: tuple(first_question + offset + stride * item for item in range(ITEMS_PER_TRAIT))
        for offset, trait in enumerate(traits)
    }


def _build_default_mappings() -> Dict[Trait, Tuple[int, ...]]:
    mappings: Dict[Trait, Tuple[int, ...]] = {}
    # External and Internal triads: one 18-question block per triad, stride 3.
    for block, triad in enumerate(TRIADS[:6]):
        mappings.update(_interleaved(triad.traits, 1 + block * 18))
    # Interpersonal and Processing triads: pairs of triads share a 36-question
    # block with stride 6, reusing questions 1-108.
    for block in range(3):
        first, second = TRIADS[6 + block * 2], TRIADS[7 + block * 2]
        mappings.update(_interleaved(first.traits + second.traits, 1 + block * 36))
    return mappings


DEFAULT_TRAIT_MAPPINGS: Dict[Trait, Tuple[int, ...]] = _build_default_mappings()


class ScoringOverrides(BaseModel):
    """Per-trait replacements for the question aggregation table."""
    version: Optional[str] = None
    trait_mappings: Dict[Trait, List[int]] = Field(default_factory=dict)

    @field_validator("trait_mappings")
    @classmethod
    def _check_indices(cls, value: Dict[Trait, List[int]]) -> Dict[Trait, List[int]]:
        for trait, indices in value.items():
            if not indices:
                raise ValueError(f"Trait '{trait.value}' has no question indices")
            if len(set(indices)) != len(indices):
                raise ValueError(f"Duplicate question index for trait '{trait.value}'")
            out_of_range = [i for i in indices if not 1 <= i <= QUESTION_COUNT]
            if out_of_range:
                raise ValueError(
                    f"Question indices {out_of_range} for trait '{trait.value}' are outside 1..{QUESTION_COUNT}"
                )
        return value

    def mappings(self) -> Dict[Trait, Tuple[int, ...]]:
        merged = dict(DEFAULT_TRAIT_MAPPINGS)
        merged.update({trait: tuple(indices) for trait, indices in self.trait_mappings.items()})
        return merged


def load_scoring_overrides(data: Dict[str, Any]) -> ScoringOverrides:
    """Validates a raw override document against the taxonomy."""
    try:
        return ScoringOverrides.model_validate(data)
    except ValidationError as e:
        raise ScoringConfigError(f"Invalid scoring overrides: {e}") from e


def load_scoring_overrides_from_file(file_path: str) -> ScoringOverrides:
    """Loads scoring overrides from a YAML file."""
    try:
        with open(file_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        raise ScoringConfigError(f"File not found: {file_path}")
    except yaml.YAMLError as e:
        raise ScoringConfigError(f"Error parsing YAML file {file_path}: {e}")

    if data is None:
        raise ScoringConfigError(f"YAML file is empty or invalid: {file_path}")
    if not isinstance(data, dict):
        raise ScoringConfigError(f"Expected a mapping at the top of {file_path}")

    return load_scoring_overrides(data)


def validate_responses(responses: Sequence[Any]) -> List[float]:
    """
    Checks length, type and Likert range of a raw response vector.

    Raises:
        ResponseValidationError: listing every problem found.
    """
    if isinstance(responses, (str, bytes)) or not isinstance(responses, Sequence):
        raise ResponseValidationError("Responses must be a sequence of numbers")
    if len(responses) != QUESTION_COUNT:
        raise ResponseValidationError(f"Expected {QUESTION_COUNT} responses, got {len(responses)}")

    problems = []
    cleaned: List[float] = []
    for position, value in enumerate(responses, start=1):
        if isinstance(value, bool) or not isinstance(value, Real):
            problems.append(f"q{position}: not a number ({value!r})")
            continue
        value = float(value)
        if math.isnan(value) or not LIKERT_MIN <= value <= LIKERT_MAX:
            problems.append(f"q{position}: {value} outside [{LIKERT_MIN:g}, {LIKERT_MAX:g}]")
            continue
        cleaned.append(value)

    if problems:
        raise ResponseValidationError("Invalid responses: " + "; ".join(problems))
    return cleaned


def calculate_trait_vector(
    responses: Sequence[Any],
    overrides: Optional[ScoringOverrides] = None,
) -> TraitVector:
    """Averages each trait's questions into a TraitVector."""
    answers = validate_responses(responses)
    mappings = overrides.mappings() if overrides else DEFAULT_TRAIT_MAPPINGS
    scores = {
        trait: sum(answers[index - 1] for index in indices) / len(indices)
        for trait, indices in mappings.items()
    }
    logger.debug(f"Aggregated {len(answers)} responses into {len(scores)} trait scores")
    return TraitVector(scores=scores)


def traits_for_question(question: int, mappings: Optional[Dict[Trait, Tuple[int, ...]]] = None) -> List[Trait]:
    mappings = mappings or DEFAULT_TRAIT_MAPPINGS
    return [trait for trait, indices in mappings.items() if question in indices]
