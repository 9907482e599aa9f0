import logging
from typing import Dict, Optional, Protocol, Tuple

from services.profile_engine.errors import CollaboratorError
from services.profile_engine.frameworks.integral import (
    FALLBACK_QUESTIONS,
    clarification_questions,
    keyword_level_adjustments,
)
from services.profile_engine.models import CuspKind, CuspRecord
from services.profile_engine.parsing import (
    Malformed,
    Ok,
    parse_adjustments,
    parse_question,
    select_adjustments,
    select_question,
)
from services.profile_engine.profile import ComputationCache, stable_fingerprint
from services.profile_engine.taxonomy import TRAIT_DESCRIPTIONS, Trait

logger = logging.getLogger(__name__)

QUESTION_SYSTEM_PROMPT = (
    "You are a thoughtful personality assessment guide. You ask one clear, "
    "conversational question at a time that helps a person notice which of "
    "several close tendencies describes them best."
)

ADJUSTMENT_SYSTEM_PROMPT = (
    "You analyse free-text answers to personality clarification questions and "
    "reply with a single JSON object only."
)


class TextGenerator(Protocol):
    async def complete(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        ...


def _describe_candidates(cusp: CuspRecord) -> str:
    lines = []
    for candidate in cusp.candidates:
        description = ""
        try:
            description = TRAIT_DESCRIPTIONS[Trait(candidate.name)]
        except ValueError:
            pass
        suffix = f" - {description}" if description else ""
        lines.append(f"- {candidate.name}: {candidate.score:.1f}{suffix}")
    return "\n".join(lines)


def build_question_prompt(cusp: CuspRecord, context: Optional[str] = None) -> str:
    extra = f"\nAdditional profile context:\n{context}\n" if context else ""
    return (
        "Write one Socratic clarification question that distinguishes between these close candidates.\n\n"
        f"Area: {cusp.label}\n"
        f"Candidates and current scores:\n{_describe_candidates(cusp)}\n"
        f"{extra}\n"
        "The question should present a realistic situation where the candidates would show up differently, "
        "be conversational and easy to answer, and reveal which candidate is most natural for this person.\n"
        "Return only the question text on a single line."
    )


def build_adjustment_prompt(cusp: CuspRecord, question: str, response: str) -> str:
    template = ", ".join(f'"{trait.value}": 0.0' for trait in cusp.traits)
    return (
        "Analyse this answer to decide which tendencies it supports.\n\n"
        f"Question: {question}\n"
        f"Answer: {response}\n\n"
        f"Area: {cusp.label}\n"
        f"Candidates and current scores:\n{_describe_candidates(cusp)}\n\n"
        f"Give an adjustment between -{cusp.max_delta} and +{cusp.max_delta} for each of these traits, "
        "based on stated preferences, implied values, behaviour and emotional responses described.\n"
        "Return only a JSON object with trait names as keys and numbers as values:\n"
        f"{{{template}}}"
    )


def fallback_question(cusp: CuspRecord) -> str:
    """Static question used whenever generation fails."""
    if cusp.kind == CuspKind.DEVELOPMENTAL_LEVEL:
        key = cusp.candidates[0].name.lower()
        return clarification_questions(key)[0]
    if cusp.kind == CuspKind.REALITY_DOMAIN:
        return FALLBACK_QUESTIONS[0]
    names = [candidate.name for candidate in cusp.candidates]
    options = ", ".join(names[:-1]) + f", or {names[-1]}"
    return (
        f"Thinking about a recent situation that involved {cusp.label.split(' - ')[-1].lower()}, "
        f"which felt most natural to you: {options}? What did you actually do?"
    )


def question_cache_key(cusp: CuspRecord) -> str:
    payload = {
        "kind": cusp.kind.value,
        "label": cusp.label,
        "candidates": [[c.name, round(c.score, 4)] for c in cusp.candidates],
    }
    return f"question:{stable_fingerprint(payload)}"


class ClarificationService:
    """
    Asks the text-generation collaborator for questions and adjustments.
    Collaborator failures never escape: each call degrades to its fallback.
    Generated (non-fallback) questions are memoized when a cache is given.
    """

    def __init__(self, generator: Optional[TextGenerator] = None, cache: Optional[ComputationCache] = None):
        self.generator = generator
        self.cache = cache

    async def question_for(
        self,
        cusp: CuspRecord,
        context: Optional[str] = None,
        use_cache: bool = True,
    ) -> Tuple[str, bool]:
        """Returns (question, used_fallback)."""
        key = question_cache_key(cusp)
        if use_cache and self.cache is not None:
            cached = await self.cache.get(key)
            if cached is not None:
                logger.debug(f"Question cache hit for cusp {cusp.cusp_id}")
                return cached, False

        question, used_fallback = await self._generate_question(cusp, context)
        if not used_fallback and self.cache is not None:
            await self.cache.set(key, question)
        return question, used_fallback

    async def _generate_question(self, cusp: CuspRecord, context: Optional[str]) -> Tuple[str, bool]:
        fallback = fallback_question(cusp)
        if self.generator is None:
            return fallback, True
        try:
            text = await self.generator.complete(build_question_prompt(cusp, context), QUESTION_SYSTEM_PROMPT)
        except CollaboratorError as e:
            logger.warning(f"Question generation failed for cusp {cusp.cusp_id}: {e}")
            return fallback, True
        except Exception as e:
            logger.error(f"Unexpected error generating question for cusp {cusp.cusp_id}: {e}", exc_info=True)
            return fallback, True
        outcome = parse_question(text)
        return select_question(outcome, fallback), isinstance(outcome, Malformed)

    async def infer_adjustments(self, cusp: CuspRecord, question: str, response: str) -> Tuple[Dict[Trait, float], bool]:
        """
        Returns (deltas, used_fallback). Deltas only ever touch the cusp's traits.
        Developmental-level cusps fall back to a keyword reading of the answer.
        """
        if self.generator is None:
            outcome = Malformed("", "no collaborator configured")
        else:
            try:
                text = await self.generator.complete(
                    build_adjustment_prompt(cusp, question, response), ADJUSTMENT_SYSTEM_PROMPT
                )
            except CollaboratorError as e:
                logger.warning(f"Adjustment inference failed for cusp {cusp.cusp_id}: {e}")
                text = None
            except Exception as e:
                logger.error(f"Unexpected error inferring adjustments for cusp {cusp.cusp_id}: {e}", exc_info=True)
                text = None
            outcome = parse_adjustments(text, cusp.traits, cusp.max_delta)
        if isinstance(outcome, Ok):
            return select_adjustments(outcome, cusp.traits), False
        if cusp.kind == CuspKind.DEVELOPMENTAL_LEVEL:
            levels = [candidate.name.lower() for candidate in cusp.candidates]
            logger.info(f"Using keyword reading of the answer for cusp {cusp.cusp_id}")
            return keyword_level_adjustments(response, levels, cusp.traits, cusp.max_delta), True
        return select_adjustments(outcome, cusp.traits), True
