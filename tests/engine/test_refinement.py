import asyncio

import pytest
import pytest_asyncio

from services.profile_engine.clarification import ClarificationService
from services.profile_engine.engine import ProfileEngine
from services.profile_engine.errors import PersistenceError, SessionStateError
from services.profile_engine.models import RefinementSessionState, SessionStatus
from services.profile_engine.refinement import RefinementSession, bounded_deltas, session_key
from services.profile_engine.taxonomy import Trait
from services.profile_engine.vector import TraitVector
from src.services.storage import InMemorySessionStore


@pytest.fixture
def store():
    return InMemorySessionStore()


@pytest.fixture
def engine(fake_generator, store):
    return ProfileEngine(clarifier=ClarificationService(fake_generator), store=store)


@pytest_asyncio.fixture
async def profile(engine):
    return await engine.compute_profile(TraitVector.uniform(5.5))


def _dump(profile):
    return profile.model_dump(exclude={"generated_at"})


def test_bounded_deltas():
    deltas = {Trait.STRUCTURED: 3.0, Trait.AMBIVALENT: -0.4, Trait.STOIC: 1.0}
    assert bounded_deltas(deltas, [Trait.STRUCTURED, Trait.AMBIVALENT], 1.5) == {
        Trait.STRUCTURED: 1.5,
        Trait.AMBIVALENT: -0.4,
    }


@pytest.mark.asyncio
async def test_answering_every_cusp_completes(engine, profile, fake_generator):
    """K cusps take exactly K answers; only traits of answered cusps move."""
    session = engine.open_session("user-1", profile)
    cusp_count = len(session.state.cusps)
    assert cusp_count == 5

    question = await session.start()
    assert question == fake_generator.question
    assert session.status == SessionStatus.AWAITING_RESPONSE

    for step in range(cusp_count):
        assert session.status == SessionStatus.AWAITING_RESPONSE
        turn = await session.submit_response(f"answer {step}")
        assert turn.fallback is False
        assert all(abs(delta) <= 1.5 for delta in turn.adjustments.values())

    assert session.status == SessionStatus.COMPLETE
    assert len(session.state.turns) == cusp_count
    final = session.result()
    assert final.trait_vector == session.state.current_vector

    touched = {trait for cusp in session.state.cusps for trait in cusp.traits}
    changed = session.state.initial_vector.changed_traits(session.state.current_vector)
    assert changed
    assert set(changed) <= touched


@pytest.mark.asyncio
async def test_skipping_everything_reproduces_profile(engine, profile):
    session = engine.open_session("user-1", profile)
    await session.start()
    while session.status == SessionStatus.AWAITING_RESPONSE:
        turn = await session.skip()
        assert turn.skipped is True
    assert session.status == SessionStatus.COMPLETE
    assert _dump(session.result()) == _dump(profile)


@pytest.mark.asyncio
async def test_unusable_answers_leave_vector_unchanged(generator_factory, store, profile):
    engine = ProfileEngine(clarifier=ClarificationService(generator_factory(raw_adjustments="no idea")), store=store)
    session = engine.open_session("user-1", profile)
    await session.start()
    while session.status == SessionStatus.AWAITING_RESPONSE:
        turn = await session.submit_response("hmm")
        assert turn.fallback is True
    assert session.state.current_vector == session.state.initial_vector
    assert _dump(session.result()) == _dump(profile)


@pytest.mark.asyncio
async def test_session_without_cusps_completes_on_start(engine, separated_vector):
    session = RefinementSession.create("user-2", separated_vector, [], engine.clarifier, engine.compute_profile)
    assert await session.start() is None
    assert session.status == SessionStatus.COMPLETE
    assert session.result().trait_vector == separated_vector


@pytest.mark.asyncio
async def test_illegal_transitions(engine, profile):
    session = engine.open_session("user-1", profile)
    with pytest.raises(SessionStateError):
        await session.submit_response("too early")
    with pytest.raises(SessionStateError):
        await session.skip()
    with pytest.raises(SessionStateError):
        session.result()
    with pytest.raises(SessionStateError):
        await session.resume()

    await session.start()
    with pytest.raises(SessionStateError):
        await session.start()

    while session.status == SessionStatus.AWAITING_RESPONSE:
        await session.skip()
    with pytest.raises(SessionStateError):
        await session.save_progress()
    with pytest.raises(SessionStateError):
        await session.regenerate_question()


@pytest.mark.asyncio
async def test_save_and_resume(engine, profile, store):
    session = engine.open_session("user-1", profile)
    first = await session.start()
    await session.submit_response("first answer")

    assert await session.save_progress() is True
    assert session.status == SessionStatus.PAUSED
    stored = await store.get(session_key(session.session_id))
    assert stored["status"] == "paused"
    assert stored["cursor"] == 1

    question = await session.resume()
    assert question == first
    assert session.status == SessionStatus.AWAITING_RESPONSE
    assert session.state.cursor == 1


@pytest.mark.asyncio
async def test_restored_session_continues(engine, profile, store):
    session = engine.open_session("user-1", profile)
    await session.start()
    await session.submit_response("first answer")
    await session.save_progress()

    data = await store.get(session_key(session.session_id))
    restored = engine.restore_session(RefinementSessionState.model_validate(data))
    assert restored.status == SessionStatus.PAUSED
    assert restored.state.current_vector == session.state.current_vector

    await restored.resume()
    while restored.status == SessionStatus.AWAITING_RESPONSE:
        await restored.submit_response("more")
    assert restored.status == SessionStatus.COMPLETE
    assert len(restored.state.turns) == 5


@pytest.mark.asyncio
async def test_store_failures_are_not_fatal(engine, profile, mocker):
    failing = mocker.AsyncMock()
    failing.put.side_effect = PersistenceError("redis down")
    session = engine.open_session("user-1", profile)
    session.store = failing

    await session.start()
    assert await session.save_progress() is False
    assert session.status == SessionStatus.PAUSED
    assert failing.put.await_count == 2


@pytest.mark.asyncio
async def test_cancelled_inference_reverts_state(engine, profile, mocker):
    session = engine.open_session("user-1", profile)
    await session.start()
    mocker.patch.object(session.clarifier, "infer_adjustments", side_effect=asyncio.CancelledError())

    with pytest.raises(asyncio.CancelledError):
        await session.submit_response("answer")

    assert session.status == SessionStatus.AWAITING_RESPONSE
    assert session.state.cursor == 0
    assert session.state.turns == []


@pytest.mark.asyncio
async def test_regenerate_question_bypasses_cache(engine, profile, fake_generator):
    session = engine.open_session("user-1", profile)
    await session.start()
    calls = len(fake_generator.calls)

    fake_generator.question = "What would you do on a free afternoon?"
    question = await session.regenerate_question()

    assert question == "What would you do on a free afternoon?"
    assert session.current_question() == question
    assert len(fake_generator.calls) == calls + 1
    assert session.state.cursor == 0


@pytest.mark.asyncio
async def test_mixed_skips_and_answers_only_move_answered_traits(engine, profile):
    session = engine.open_session("user-1", profile)
    await session.start()
    answered = set()
    step = 0
    while session.status == SessionStatus.AWAITING_RESPONSE:
        if step % 2 == 0:
            answered.update(session.current_cusp.traits)
            await session.submit_response(f"answer {step}")
        else:
            turn = await session.skip()
            assert turn.adjustments == {}
        step += 1

    assert session.status == SessionStatus.COMPLETE
    assert [turn.skipped for turn in session.state.turns] == [False, True, False, True, False]
    changed = session.state.initial_vector.changed_traits(session.state.current_vector)
    assert changed
    assert set(changed) <= answered


@pytest.mark.asyncio
async def test_unexpected_generator_error_degrades_to_fallback(store, profile, mocker):
    generator = mocker.AsyncMock()
    generator.complete.side_effect = RuntimeError("boom")
    engine = ProfileEngine(clarifier=ClarificationService(generator), store=store)
    session = engine.open_session("user-1", profile)

    await session.start()
    turn = await session.submit_response("hmm")

    assert turn.fallback is True
    assert set(turn.adjustments.values()) == {0.0}
    assert session.status == SessionStatus.AWAITING_RESPONSE
    assert session.state.cursor == 1


async def _skip_to_last_cusp(session):
    await session.start()
    while session.remaining > 1:
        await session.skip()


@pytest.mark.asyncio
async def test_failed_recompute_on_last_answer_rolls_back(engine, profile, mocker):
    session = engine.open_session("user-1", profile)
    await _skip_to_last_cusp(session)
    vector_before = session.state.current_vector
    turns_before = len(session.state.turns)

    session.recompute = mocker.AsyncMock(side_effect=RuntimeError("recompute failed"))
    with pytest.raises(RuntimeError):
        await session.submit_response("last answer")

    assert session.status == SessionStatus.AWAITING_RESPONSE
    assert session.state.cursor == 4
    assert len(session.state.turns) == turns_before
    assert session.state.current_vector == vector_before
    assert session.state.final_profile is None

    session.recompute = engine.compute_profile
    await session.submit_response("last answer")
    assert session.status == SessionStatus.COMPLETE
    assert len(session.state.turns) == turns_before + 1


@pytest.mark.asyncio
async def test_cancelled_recompute_on_last_skip_stays_resumable(engine, profile, mocker):
    session = engine.open_session("user-1", profile)
    await _skip_to_last_cusp(session)

    session.recompute = mocker.AsyncMock(side_effect=asyncio.CancelledError())
    with pytest.raises(asyncio.CancelledError):
        await session.skip()

    assert session.status == SessionStatus.AWAITING_RESPONSE
    assert session.state.cursor == 4
    assert await session.save_progress() is True
    assert session.status == SessionStatus.PAUSED

    session.recompute = engine.compute_profile
    assert await session.resume() is not None
    await session.skip()
    assert session.status == SessionStatus.COMPLETE
