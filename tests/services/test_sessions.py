import pytest

from services.profile_engine.clarification import ClarificationService
from services.profile_engine.engine import ProfileEngine
from services.profile_engine.errors import PersistenceError, SessionNotFoundError
from services.profile_engine.models import SessionStatus
from services.profile_engine.vector import TraitVector
from src.services.sessions import SessionRegistry
from src.services.storage import InMemorySessionStore, load_profile


@pytest.fixture
def engine(fake_generator):
    return ProfileEngine(clarifier=ClarificationService(fake_generator), store=InMemorySessionStore())


@pytest.mark.asyncio
async def test_open_registers_session_and_saves_profile(engine):
    registry = SessionRegistry(engine, engine.store)
    profile = await engine.compute_profile(TraitVector.uniform(5.5))
    session = await registry.open("user-1", profile)

    assert await registry.get(session.session_id) is session
    assert await load_profile(engine.store, "user-1") == profile


@pytest.mark.asyncio
async def test_sessions_are_restored_from_store(engine):
    profile = await engine.compute_profile(TraitVector.uniform(5.5))
    session = await SessionRegistry(engine, engine.store).open("user-1", profile)
    await session.start()
    await session.submit_response("I keep lists")

    fresh = SessionRegistry(engine, engine.store)
    restored = await fresh.get(session.session_id)
    assert restored is not session
    assert restored.status == SessionStatus.AWAITING_RESPONSE
    assert restored.state.cursor == 1
    assert await fresh.get(session.session_id) is restored


@pytest.mark.asyncio
async def test_unknown_session(engine):
    with pytest.raises(SessionNotFoundError):
        await SessionRegistry(engine, engine.store).get("nope")


@pytest.mark.asyncio
async def test_settled_sessions_are_released_and_restored(engine):
    registry = SessionRegistry(engine, engine.store)
    profile = await engine.compute_profile(TraitVector.uniform(5.5))
    session = await registry.open("user-1", profile)
    await session.start()

    assert registry.release(session) is False
    assert len(registry) == 1

    await session.save_progress()
    assert registry.release(session) is True
    assert len(registry) == 0

    restored = await registry.get(session.session_id)
    assert restored is not session
    assert restored.status == SessionStatus.PAUSED
    assert len(registry) == 1


@pytest.mark.asyncio
async def test_unpersisted_sessions_are_kept(engine, mocker):
    registry = SessionRegistry(engine, engine.store)
    profile = await engine.compute_profile(TraitVector.uniform(5.5))
    session = await registry.open("user-1", profile)
    await session.start()

    failing = mocker.AsyncMock()
    failing.put.side_effect = PersistenceError("redis down")
    session.store = failing
    await session.save_progress()

    assert session.status == SessionStatus.PAUSED
    assert registry.release(session) is False
    assert await registry.get(session.session_id) is session


@pytest.mark.asyncio
async def test_live_sessions_are_bounded(engine):
    registry = SessionRegistry(engine, engine.store, capacity=2)
    profile = await engine.compute_profile(TraitVector.uniform(5.5))
    sessions = []
    for user in ("user-1", "user-2", "user-3"):
        session = await registry.open(user, profile)
        await session.start()
        sessions.append(session)

    assert len(registry) == 2
    oldest = await registry.get(sessions[0].session_id)
    assert oldest is not sessions[0]
    assert oldest.state.cursor == 0
    assert await registry.get(sessions[2].session_id) is sessions[2]


def test_registry_capacity_must_be_positive(engine):
    with pytest.raises(ValueError):
        SessionRegistry(engine, engine.store, capacity=0)
