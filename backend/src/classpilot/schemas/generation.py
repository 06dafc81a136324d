from typing import Literal

from pydantic import BaseModel, Field

from classpilot.schemas.activity import ActivityType
from classpilot.schemas.question import Difficulty, Question, QuestionType

ContentKind = Literal["activity", "questions"]


class GenerationOptions(BaseModel):
    question_types: set[QuestionType] = set()
    count: int | None = Field(default=None, ge=1, le=50)
    difficulty: Difficulty | None = None


class ActivityDraft(BaseModel):
    """A fully populated, still editable activity proposal."""

    type: ActivityType
    title: str
    description: str
    instructions: str
    max_grade: float = 10
    questions: list[Question] = []
    ai_context: str


class QuestionDraftSet(BaseModel):
    questions: list[Question]


Draft = ActivityDraft | QuestionDraftSet


class QuestionSpecOutput(BaseModel):
    """One question as produced by the question agents."""

    type: QuestionType
    prompt: str = Field(min_length=5)
    options: list[str] | None = None
    correct_answer: str | None = None
    points: float = Field(gt=0, le=20)
    difficulty: Difficulty


class ActivityDraftOutput(BaseModel):
    """Output from the activity_creator agent."""

    title: str = Field(min_length=3)
    description: str = Field(min_length=10)
    instructions: str = Field(min_length=10)
    max_grade: float = Field(ge=1, le=100)
    questions: list[QuestionSpecOutput] = Field(max_length=50)


class QuestionSetOutput(BaseModel):
    """Output from the question_writer agent."""

    questions: list[QuestionSpecOutput] = Field(min_length=1, max_length=50)


class AnswerReviewOutput(BaseModel):
    question_id: str
    is_correct: bool | None
    points_awarded: float = Field(ge=0)
    feedback: str


class SubmissionReviewOutput(BaseModel):
    """Output from the submission_grader agent."""

    grade: float = Field(ge=0)
    confidence: int = Field(ge=0, le=100)
    feedback: str = Field(min_length=10)
    answer_reviews: list[AnswerReviewOutput]
