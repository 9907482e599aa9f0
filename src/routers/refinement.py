import logging

from fastapi import APIRouter, Depends, HTTPException

from services.profile_engine.engine import ProfileEngine
from services.profile_engine.errors import SessionNotFoundError, SessionStateError
from services.profile_engine.refinement import RefinementSession
from services.profile_engine.vector import TraitVector
from src.dependencies import get_profile_engine, get_session_registry
from src.schemas.profile import ResponseSubmission, SessionCreateRequest, SessionResponse
from src.services.sessions import SessionRegistry

router = APIRouter()
logger = logging.getLogger(__name__)


async def _find_session(registry: SessionRegistry, session_id: str) -> RefinementSession:
    try:
        return await registry.get(session_id)
    except SessionNotFoundError:
        logger.warning(f"Session not found: {session_id}")
        raise HTTPException(status_code=404, detail=f"Session '{session_id}' not found")


def _conflict(e: SessionStateError) -> HTTPException:
    logger.warning(f"Illegal session transition: {e}")
    return HTTPException(status_code=409, detail=str(e))


@router.post("/refinement/sessions", response_model=SessionResponse, status_code=201)
async def create_session(
    request: SessionCreateRequest,
    engine: ProfileEngine = Depends(get_profile_engine),
    registry: SessionRegistry = Depends(get_session_registry),
):
    """Builds the profile, detects its cusps and asks the first question."""
    try:
        if request.responses is not None:
            profile = await engine.generate_profile(request.responses)
        else:
            profile = await engine.compute_profile(TraitVector.from_scores(request.trait_scores))
    except ValueError as e:
        logger.error(f"Invalid session request: {e}")
        raise HTTPException(status_code=400, detail=str(e))

    try:
        session = await registry.open(request.user_id, profile)
        await session.start()
        registry.release(session)
        return SessionResponse.from_session(session)
    except Exception as e:
        logger.exception(f"Unexpected error opening refinement session: {e}")
        raise HTTPException(status_code=500, detail="Internal Server Error")


@router.get("/refinement/sessions/{session_id}", response_model=SessionResponse)
async def get_session(session_id: str, registry: SessionRegistry = Depends(get_session_registry)):
    return SessionResponse.from_session(await _find_session(registry, session_id))


@router.post("/refinement/sessions/{session_id}/responses", response_model=SessionResponse)
async def submit_response(
    session_id: str,
    submission: ResponseSubmission,
    registry: SessionRegistry = Depends(get_session_registry),
):
    session = await _find_session(registry, session_id)
    try:
        await session.submit_response(submission.response)
    except SessionStateError as e:
        raise _conflict(e)
    except Exception as e:
        logger.exception(f"Unexpected error advancing session {session_id}: {e}")
        raise HTTPException(status_code=500, detail="Internal Server Error")
    registry.release(session)
    return SessionResponse.from_session(session)


@router.post("/refinement/sessions/{session_id}/skip", response_model=SessionResponse)
async def skip_cusp(session_id: str, registry: SessionRegistry = Depends(get_session_registry)):
    session = await _find_session(registry, session_id)
    try:
        await session.skip()
    except SessionStateError as e:
        raise _conflict(e)
    except Exception as e:
        logger.exception(f"Unexpected error advancing session {session_id}: {e}")
        raise HTTPException(status_code=500, detail="Internal Server Error")
    registry.release(session)
    return SessionResponse.from_session(session)


@router.post("/refinement/sessions/{session_id}/save", response_model=SessionResponse)
async def save_session_progress(session_id: str, registry: SessionRegistry = Depends(get_session_registry)):
    session = await _find_session(registry, session_id)
    try:
        persisted = await session.save_progress()
    except SessionStateError as e:
        raise _conflict(e)
    registry.release(session)
    return SessionResponse.from_session(session, persisted=persisted)


@router.post("/refinement/sessions/{session_id}/resume", response_model=SessionResponse)
async def resume_session(session_id: str, registry: SessionRegistry = Depends(get_session_registry)):
    session = await _find_session(registry, session_id)
    try:
        await session.resume()
    except SessionStateError as e:
        raise _conflict(e)
    registry.release(session)
    return SessionResponse.from_session(session)


@router.post("/refinement/sessions/{session_id}/retry", response_model=SessionResponse)
async def retry_question(session_id: str, registry: SessionRegistry = Depends(get_session_registry)):
    """Regenerates the current question after a collaborator failure."""
    session = await _find_session(registry, session_id)
    try:
        await session.regenerate_question()
    except SessionStateError as e:
        raise _conflict(e)
    return SessionResponse.from_session(session)
