"""AI content generation through the Gemini REST API.

Generates draft course modules and multiple-choice questions. Drafts are
returned to HR for review; nothing is persisted here.
"""

from typing import Any

import httpx
import structlog

from learnhub.ai.parsing import parse_modules, parse_questions
from learnhub.ai.prompts import ASSESSMENT_PROMPT, MODULES_PROMPT
from learnhub.ai.schemas import (
    GenerateAssessmentRequest,
    GenerateAssessmentResponse,
    GeneratedModule,
    GeneratedQuestion,
    GenerateModulesRequest,
    GenerateModulesResponse,
)
from learnhub.config import Settings


logger = structlog.get_logger(__name__)

MIN_PROMPT_LENGTH = 10

INVALID_PROMPT_MESSAGE = (
    "Please provide a more specific and detailed description, for example "
    '"Create modules for an introductory Python programming course covering '
    'variables, functions, and basic data structures"'
)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class AIGenerationError(Exception):
    """Base AI generation error."""

    def __init__(self, message: str, code: str = "ai_generation_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class AINotConfiguredError(AIGenerationError):
    def __init__(self, message: str = "AI content generation is not configured"):
        super().__init__(message, "ai_not_configured")


class AIUpstreamError(AIGenerationError):
    def __init__(self, message: str = "AI provider request failed"):
        super().__init__(message, "ai_upstream_error")


class AIEmptyResponseError(AIGenerationError):
    def __init__(self, message: str = "No content generated by AI"):
        super().__init__(message, "ai_empty_response")


class InvalidPromptError(AIGenerationError):
    def __init__(self, message: str = INVALID_PROMPT_MESSAGE):
        super().__init__(message, "ai_invalid_prompt")


def validate_prompt(prompt: str) -> str:
    prompt = (prompt or "").strip()
    if len(prompt) < MIN_PROMPT_LENGTH:
        raise InvalidPromptError
    return prompt


def extract_candidate_text(data: Any) -> str:
    """Text of the first candidate of a generateContent response.

    Raises:
        AIEmptyResponseError: If the response has no usable text
    """
    candidates = data.get("candidates") if isinstance(data, dict) else None
    if not candidates or not isinstance(candidates, list):
        raise AIEmptyResponseError
    content = candidates[0].get("content") if isinstance(candidates[0], dict) else None
    parts = content.get("parts") if isinstance(content, dict) else None
    first = parts[0] if isinstance(parts, list) and parts else None
    text = first.get("text") if isinstance(first, dict) else None
    if not text or not isinstance(text, str):
        raise AIEmptyResponseError("Invalid response structure from AI")
    return text


# ==============================================================================
# AI Content Service
# ==============================================================================


class AIContentService:
    """Generates draft course content with Gemini."""

    TOP_K = 40
    TOP_P = 0.95

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None):
        self._api_key = settings.gemini_api_key
        self._model = settings.gemini_model
        self._base_url = settings.gemini_base_url.rstrip("/")
        self._timeout = settings.ai_request_timeout
        self._temperature = settings.ai_temperature
        self._max_output_tokens = settings.ai_max_output_tokens
        self._enabled = settings.ai_configured
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return self._enabled

    def _ensure_configured(self) -> None:
        if not self._enabled:
            raise AINotConfiguredError

    async def generate_text(self, prompt: str) -> str:
        """Send a prompt to ``models/{model}:generateContent`` and return the text.

        Raises:
            AINotConfiguredError: If no API key is configured
            AIUpstreamError: On timeouts, transport errors or non-200 responses
            AIEmptyResponseError: If the model returned no text
        """
        self._ensure_configured()

        url = f"{self._base_url}/models/{self._model}:generateContent"
        payload = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": self._temperature,
                "topK": self.TOP_K,
                "topP": self.TOP_P,
                "maxOutputTokens": self._max_output_tokens,
            },
        }

        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.post(
                    url, params={"key": self._api_key}, json=payload
                )

                if response.status_code != httpx.codes.OK:
                    logger.error(
                        "gemini_request_failed",
                        status_code=response.status_code,
                        response_text=response.text[:500],
                    )
                    raise AIUpstreamError(f"Gemini API error: {response.status_code}")

                try:
                    data = response.json()
                except ValueError as e:
                    logger.error(
                        "gemini_invalid_json", response_text=response.text[:500]
                    )
                    raise AIUpstreamError("Gemini API returned invalid JSON") from e

        except httpx.TimeoutException as e:
            logger.error("gemini_timeout", error=str(e))
            raise AIUpstreamError("Gemini API timeout") from e
        except httpx.RequestError as e:
            logger.error("gemini_request_error", error=str(e))
            raise AIUpstreamError(f"Gemini API request error: {e}") from e

        return extract_candidate_text(data)

    async def generate_modules(
        self, request: GenerateModulesRequest
    ) -> GenerateModulesResponse:
        prompt = validate_prompt(request.prompt)
        text = await self.generate_text(
            MODULES_PROMPT.format(
                course_type=request.course_type or "General Professional Development",
                target_role=request.target_role or "General Professional",
                difficulty_level=request.difficulty_level.value,
                prompt=prompt,
            )
        )
        modules = [GeneratedModule(**m) for m in parse_modules(text)]

        logger.info(
            "ai_modules_generated",
            count=len(modules),
            fallback=modules[0].ai_raw_content is not None,
        )
        return GenerateModulesResponse(
            modules=modules,
            original_prompt=prompt,
            course_type=request.course_type,
            target_role=request.target_role,
            difficulty_level=request.difficulty_level,
        )

    async def generate_assessment(
        self, request: GenerateAssessmentRequest
    ) -> GenerateAssessmentResponse:
        """Generate multiple-choice questions.

        Raises:
            AIEmptyResponseError: If no usable question could be parsed
        """
        prompt = validate_prompt(request.prompt)
        text = await self.generate_text(
            ASSESSMENT_PROMPT.format(
                difficulty_level=request.difficulty_level.value,
                question_count=request.question_count,
                prompt=prompt,
            )
        )
        questions = [GeneratedQuestion(**q) for q in parse_questions(text)]
        if not questions:
            logger.warning("ai_assessment_unparseable", response_text=text[:500])
            raise AIEmptyResponseError("AI response did not contain usable questions")

        logger.info("ai_assessment_generated", count=len(questions))
        return GenerateAssessmentResponse(questions=questions, original_prompt=prompt)
