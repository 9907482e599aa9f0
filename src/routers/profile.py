import logging

from fastapi import APIRouter, Depends, HTTPException

from services.profile_engine.cusps import analyze_confidence
from services.profile_engine.engine import ProfileEngine
from services.profile_engine.errors import ResponseValidationError
from services.profile_engine.impact import QuestionImpact, analyze_question_impact
from src.dependencies import get_profile_engine
from src.schemas.profile import ImpactRequest, ProfileRequest, ProfileResponse

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/profiles", response_model=ProfileResponse)
async def create_profile(
    request: ProfileRequest,
    engine: ProfileEngine = Depends(get_profile_engine),
):
    """
    Scores a full questionnaire, runs every framework and reports the cusps
    that would be worth refining.
    """
    try:
        profile = await engine.generate_profile(request.responses)
        cusps = engine.detect_cusps(profile)
        logger.info(f"Profile {profile.fingerprint[:12]} generated with {len(cusps)} cusps")
        return ProfileResponse(profile=profile, cusps=cusps, confidence_report=analyze_confidence(profile))
    except ResponseValidationError as e:
        logger.error(f"Invalid responses: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception(f"Unexpected error during profile generation: {e}")
        raise HTTPException(status_code=500, detail="Internal Server Error")


@router.post("/profiles/impact", response_model=QuestionImpact)
async def question_impact(
    request: ImpactRequest,
    engine: ProfileEngine = Depends(get_profile_engine),
):
    try:
        return analyze_question_impact(request.responses, request.question, engine.overrides)
    except ResponseValidationError as e:
        logger.error(f"Invalid impact request: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception(f"Unexpected error during impact analysis: {e}")
        raise HTTPException(status_code=500, detail="Internal Server Error")
