from datetime import date, time
from typing import Literal

from pydantic import BaseModel, Field

from classpilot.schemas.activity import Activity, ActivityType
from classpilot.schemas.question import Difficulty, QuestionType


class WizardResponse(BaseModel):
    id: str
    state: str
    class_id: str | None
    is_generating: bool
    draft: Activity

    model_config = {"from_attributes": True}


class SelectClassRequest(BaseModel):
    class_id: str


class ChooseModeRequest(BaseModel):
    mode: Literal["manual", "template", "ai"]


class ApplyTemplateRequest(BaseModel):
    template_id: str


class ActivityBriefRequest(BaseModel):
    brief: str = Field(max_length=500)
    question_types: set[QuestionType] = set()
    count: int | None = Field(default=None, ge=1, le=50)
    difficulty: Difficulty | None = None


class QuestionGenerateRequest(BaseModel):
    brief: str = Field(max_length=500)
    question_types: set[QuestionType]
    count: int | None = Field(default=None, ge=1, le=50)
    difficulty: Difficulty | None = None
    replace: bool = False


class DraftUpdateRequest(BaseModel):
    title: str | None = None
    type: ActivityType | None = None
    description: str | None = None
    instructions: str | None = None
    due_date: date | None = None
    due_time: time | None = None
    max_grade: float | None = None
    allow_late_submission: bool | None = None
    enable_ai_correction: bool | None = None
    require_file_upload: bool | None = None


class QuestionCreateRequest(BaseModel):
    type: QuestionType = "multiple-choice"


class QuestionUpdateRequest(BaseModel):
    type: QuestionType | None = None
    prompt: str | None = None
    options: list[str] | None = None
    correct_answer: str | None = None
    points: float | None = None
    difficulty: Difficulty | None = None


class MoveQuestionRequest(BaseModel):
    direction: Literal["up", "down"]
