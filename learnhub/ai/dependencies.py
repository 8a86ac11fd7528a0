"""FastAPI dependencies for AI content generation."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from learnhub.ai.service import AIContentService, AIGenerationError


async def get_ai_service(request: Request) -> AIContentService:
    """Get AI content service from app state."""
    service = getattr(request.app.state, "ai_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="AI service not available",
        )
    return service


AIServiceDep = Annotated[AIContentService, Depends(get_ai_service)]


def handle_ai_error(error: AIGenerationError) -> HTTPException:
    """Convert AI generation errors to HTTPException."""
    status_map = {
        "ai_not_configured": status.HTTP_503_SERVICE_UNAVAILABLE,
        "ai_upstream_error": status.HTTP_502_BAD_GATEWAY,
        "ai_empty_response": status.HTTP_502_BAD_GATEWAY,
        "ai_invalid_prompt": status.HTTP_400_BAD_REQUEST,
    }
    return HTTPException(
        status_code=status_map.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR),
        detail=error.message,
    )
