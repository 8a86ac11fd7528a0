"""AI content generation endpoints (HR and above)."""

from fastapi import APIRouter

from learnhub.ai.dependencies import AIServiceDep, handle_ai_error
from learnhub.ai.schemas import (
    GenerateAssessmentRequest,
    GenerateAssessmentResponse,
    GenerateModulesRequest,
    GenerateModulesResponse,
)
from learnhub.ai.service import AIGenerationError
from learnhub.auth.dependencies import HRUser


router = APIRouter(prefix="/v1/ai", tags=["ai"])


@router.post(
    "/modules",
    response_model=GenerateModulesResponse,
    summary="Generate draft course modules",
)
async def generate_modules(
    data: GenerateModulesRequest,
    ai_service: AIServiceDep,
    _: HRUser,
) -> GenerateModulesResponse:
    try:
        return await ai_service.generate_modules(data)
    except AIGenerationError as e:
        raise handle_ai_error(e) from e


@router.post(
    "/assessments",
    response_model=GenerateAssessmentResponse,
    summary="Generate draft assessment questions",
)
async def generate_assessment(
    data: GenerateAssessmentRequest,
    ai_service: AIServiceDep,
    _: HRUser,
) -> GenerateAssessmentResponse:
    try:
        return await ai_service.generate_assessment(data)
    except AIGenerationError as e:
        raise handle_ai_error(e) from e
