import pytest

from services.profile_engine.cusps import (
    CUSP_THRESHOLD,
    MAX_CUSPS,
    TRIAD_DELTA_BOUND,
    analyze_confidence,
    attach_questions,
    detect_cusps,
    triad_cusp,
)
from services.profile_engine.clarification import ClarificationService
from services.profile_engine.frameworks.mbti import calculate_mbti
from services.profile_engine.models import CuspKind, FrameworkName
from services.profile_engine.profile import build_profile
from services.profile_engine.taxonomy import Trait, get_triad
from services.profile_engine.vector import TraitVector

CONTROL = get_triad("External-Control")


def _control(structured, ambivalent, independent) -> TraitVector:
    return TraitVector.from_scores({
        Trait.STRUCTURED: structured,
        Trait.AMBIVALENT: ambivalent,
        Trait.INDEPENDENT: independent,
    })


def test_close_pair_is_flagged():
    cusp = triad_cusp(_control(9.0, 5.0, 5.0), CONTROL)
    assert cusp is not None
    assert cusp.cusp_id == "triad:External-Control"
    assert cusp.kind == CuspKind.TRIAD
    assert cusp.importance == pytest.approx(CUSP_THRESHOLD)
    assert cusp.max_delta == TRIAD_DELTA_BOUND
    assert [c.name for c in cusp.candidates] == ["Structured", "Ambivalent", "Independent"]
    assert cusp.traits == list(CONTROL.traits)


def test_tied_runners_up_are_flagged_even_with_clear_leader():
    """A clear top trait does not settle a tie between the other two."""
    cusp = triad_cusp(_control(9.5, 2.0, 2.0), CONTROL)
    assert cusp is not None
    assert cusp.importance == pytest.approx(CUSP_THRESHOLD)
    assert [c.name for c in cusp.candidates] == ["Structured", "Ambivalent", "Independent"]


def test_well_separated_triad_is_not_flagged():
    assert triad_cusp(_control(9.0, 6.0, 1.0), CONTROL) is None


def test_flag_ignores_order_within_triad():
    for scores in [(9.0, 5.0, 5.0), (5.0, 9.0, 5.0), (5.0, 5.0, 9.0)]:
        assert triad_cusp(_control(*scores), CONTROL) is not None
    for scores in [(9.0, 6.0, 1.0), (1.0, 9.0, 6.0), (6.0, 1.0, 9.0)]:
        assert triad_cusp(_control(*scores), CONTROL) is None


def test_candidates_follow_ranking():
    cusp = triad_cusp(_control(4.0, 8.0, 6.0), CONTROL)
    assert [c.name for c in cusp.candidates] == ["Ambivalent", "Independent", "Structured"]
    assert cusp.importance == pytest.approx(0.5)


def test_uniform_profile_is_capped_and_ranked():
    profile = build_profile(TraitVector.uniform(5.5))
    cusps = detect_cusps(profile)
    assert len(cusps) == MAX_CUSPS
    assert [c.cusp_id for c in cusps] == [
        "profile:developmental_level",
        "profile:reality_domain",
        "triad:External-Control",
        "triad:External-Will",
        "triad:External-Design",
    ]
    importances = [c.importance for c in cusps]
    assert importances == sorted(importances, reverse=True)


def test_separated_vector_has_no_triad_cusps(separated_vector):
    profile = build_profile(separated_vector)
    assert all(c.kind != CuspKind.TRIAD for c in detect_cusps(profile))


def test_profile_cusps_skipped_without_level_result():
    profile = build_profile(TraitVector.uniform(5.5), frameworks={FrameworkName.MBTI: calculate_mbti})
    cusps = detect_cusps(profile, limit=20)
    assert len(cusps) == 12
    assert all(c.kind == CuspKind.TRIAD for c in cusps)


def test_level_cusp_traits_come_from_both_levels():
    cusps = detect_cusps(build_profile(TraitVector.uniform(5.5)))
    level = cusps[0]
    assert [c.name for c in level.candidates] == ["Red", "Amber"]
    assert Trait.SELF_INDULGENT in level.traits
    assert Trait.LAWFUL in level.traits


@pytest.mark.asyncio
async def test_attach_questions_uses_fallbacks_without_generator():
    cusps = detect_cusps(build_profile(TraitVector.uniform(5.5)))
    with_questions = await attach_questions(cusps, ClarificationService())
    assert all(c.question for c in with_questions)
    assert all(not c.questions for c in cusps)


def test_confidence_report_flags_uncertain_profile():
    report = analyze_confidence(build_profile(TraitVector.uniform()))
    assert report.needs_clarification is True
    assert report.overall_confidence == pytest.approx(50.0)
    assert "overall confidence" in report.uncertainty_areas
    assert "Red vs Amber" in report.uncertainty_areas
    assert "reality sub-domain focus" in report.uncertainty_areas
    assert len(report.recommended_actions) == 3


def test_confidence_report_for_clear_profile():
    vector = TraitVector.from_scores({
        Trait.UNIVERSAL: 9.0, Trait.SELF_AWARE: 9.0, Trait.VARIED: 9.0, Trait.INTRINSIC: 9.0,
    })
    report = analyze_confidence(build_profile(vector))
    assert report.needs_clarification is False
    assert report.overall_confidence == 100.0


def test_confidence_report_without_level_result():
    profile = build_profile(TraitVector.uniform(), frameworks={FrameworkName.MBTI: calculate_mbti})
    report = analyze_confidence(profile)
    assert report.needs_clarification is True
    assert report.overall_confidence == 0.0
