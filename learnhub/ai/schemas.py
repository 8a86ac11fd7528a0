"""Pydantic schemas for AI content generation."""

from pydantic import BaseModel, Field

from learnhub.courses.models import ContentType, DifficultyLevel


class _PromptRequest(BaseModel):
    prompt: str = Field(..., max_length=5000, description="What to generate")


class GenerateModulesRequest(_PromptRequest):
    course_type: str | None = Field(None, max_length=100)
    target_role: str | None = Field(None, max_length=100)
    difficulty_level: DifficultyLevel = DifficultyLevel.BEGINNER


class GeneratedModule(BaseModel):
    module_name: str
    module_description: str
    content_type: ContentType
    estimated_duration_minutes: int = Field(..., ge=15, le=300)
    learning_objectives: list[str] = Field(default_factory=list)
    suggested_activities: list[str] = Field(default_factory=list)
    module_order: int
    ai_raw_content: str | None = Field(
        None, description="Unparsed model output when no modules could be extracted"
    )


class GenerateModulesResponse(BaseModel):
    modules: list[GeneratedModule]
    original_prompt: str
    course_type: str | None = None
    target_role: str | None = None
    difficulty_level: DifficultyLevel


class GenerateAssessmentRequest(_PromptRequest):
    question_count: int = Field(10, ge=1, le=30)
    difficulty_level: DifficultyLevel = DifficultyLevel.BEGINNER


class GeneratedQuestion(BaseModel):
    question_text: str
    options: list[str] = Field(..., min_length=2)
    correct_answer: int = Field(..., ge=0)
    points: int = Field(1, ge=1, le=10)
    explanation: str | None = None
    question_order: int


class GenerateAssessmentResponse(BaseModel):
    questions: list[GeneratedQuestion]
    original_prompt: str
