"""
Parsing of free text returned by the text-generation collaborator.

Every parser returns an explicit outcome, ``Ok(value)`` or
``Malformed(raw_text, reason)``, instead of raising. Callers pick a fallback
in exactly one place (see ``select_adjustments`` and ``select_question``).
"""
import json
import logging
import math
import re
from dataclasses import dataclass
from typing import Any, Dict, Generic, Iterable, Optional, TypeVar, Union

from services.profile_engine.taxonomy import Trait

logger = logging.getLogger(__name__)

V = TypeVar("V")

_FENCE = re.compile(r"```(?:json|JSON)?\s*(.*?)```", re.DOTALL)
_TRAILING_COMMA = re.compile(r",\s*([}\]])")
_NUMBERING = re.compile(r"^\s*(?:[-*•]|\d+[.)]|Q\d*[:.)])\s*")
MAX_QUESTION_LENGTH = 500


@dataclass(frozen=True)
class Ok(Generic[V]):
    value: V


@dataclass(frozen=True)
class Malformed:
    raw_text: str
    reason: str


ParseOutcome = Union[Ok[V], Malformed]


def strip_fences(text: str) -> str:
    match = _FENCE.search(text)
    return match.group(1).strip() if match else text.strip()


def _first_object(text: str) -> Optional[str]:
    """Returns the first balanced {...} block, honouring string literals."""
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for position in range(start, len(text)):
            char = text[position]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
            elif char == '"':
                in_string = True
            elif char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    return text[start:position + 1]
        start = text.find("{", start + 1)
    return None


def parse_json_object(text: Optional[str]) -> ParseOutcome[Dict[str, Any]]:
    if not text or not text.strip():
        return Malformed(text or "", "empty response")
    candidate = _first_object(strip_fences(text))
    if candidate is None:
        return Malformed(text, "no JSON object found")
    for attempt in (candidate, _TRAILING_COMMA.sub(r"\1", candidate)):
        try:
            parsed = json.loads(attempt)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            return Ok(parsed)
    return Malformed(text, "invalid JSON object")


def _to_trait(key: Any) -> Optional[Trait]:
    try:
        return Trait(str(key).strip())
    except ValueError:
        return None


def parse_adjustments(
    text: Optional[str],
    allowed: Iterable[Trait],
    bound: float,
) -> ParseOutcome[Dict[Trait, float]]:
    """
    Reads a ``{trait: delta}`` object. Keys outside `allowed` are dropped and
    every delta is clamped to [-bound, bound]. An object with no usable
    entries is Malformed.
    """
    outcome = parse_json_object(text)
    if isinstance(outcome, Malformed):
        return outcome

    allowed = set(allowed)
    deltas: Dict[Trait, float] = {}
    for key, raw in outcome.value.items():
        trait = _to_trait(key)
        if trait is None or trait not in allowed:
            logger.debug(f"Ignoring adjustment for unexpected key {key!r}")
            continue
        try:
            delta = float(raw)
        except (TypeError, ValueError):
            continue
        if math.isnan(delta) or math.isinf(delta):
            continue
        deltas[trait] = max(-bound, min(bound, delta))

    if not deltas:
        return Malformed(text or "", "no usable trait adjustments")
    return Ok(deltas)


def parse_question(text: Optional[str]) -> ParseOutcome[str]:
    """First non-empty line, with list numbering and quotes stripped."""
    if not text:
        return Malformed("", "empty response")
    for line in strip_fences(text).splitlines():
        line = _NUMBERING.sub("", line).strip().strip('"').strip()
        if line:
            if len(line) > MAX_QUESTION_LENGTH:
                return Malformed(text, "question too long")
            return Ok(line)
    return Malformed(text, "no question text")


def select_adjustments(outcome: ParseOutcome[Dict[Trait, float]], traits: Iterable[Trait]) -> Dict[Trait, float]:
    """The single fallback step: a malformed outcome becomes zero deltas."""
    if isinstance(outcome, Ok):
        return dict(outcome.value)
    logger.warning(f"Malformed adjustment response ({outcome.reason}); applying zero adjustments")
    return {trait: 0.0 for trait in traits}


def select_question(outcome: ParseOutcome[str], fallback: str) -> str:
    if isinstance(outcome, Ok):
        return outcome.value
    logger.warning(f"Malformed question response ({outcome.reason}); using fallback question")
    return fallback
