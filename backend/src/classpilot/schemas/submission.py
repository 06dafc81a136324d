from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from classpilot.schemas.question import new_id

SubmissionStatus = Literal["not-submitted", "pending", "ai-corrected", "manual-review", "completed"]


class Answer(BaseModel):
    question_id: str
    answer_text: str = ""


class AnswerResult(BaseModel):
    question_id: str
    is_correct: bool | None = None  # None when the answer needs a human (essays)
    points_awarded: float = Field(ge=0)
    feedback: str = ""


class GradingOutput(BaseModel):
    """Proposed correction returned by the content gateway."""

    grade: float = Field(ge=0)
    confidence: int = Field(ge=0, le=100)
    feedback: str
    answer_results: list[AnswerResult] = []
    earned_points: float | None = None
    total_points: float | None = None


class Submission(BaseModel):
    id: str = Field(default_factory=new_id)
    activity_id: str
    student_id: str
    submitted_at: datetime | None = None
    is_late: bool = False
    status: SubmissionStatus = "pending"
    answers: list[Answer] = []

    ai_grade: float | None = None
    ai_confidence: int | None = None
    ai_feedback: str | None = None
    answer_results: list[AnswerResult] = []

    manual_grade: float | None = None
    manual_feedback: str | None = None
    review_reason: str | None = None

    @property
    def final_grade(self) -> float | None:
        """Grade used for reporting; a teacher's grade always wins over the AI's."""
        if self.manual_grade is not None:
            return self.manual_grade
        return self.ai_grade

    def answer_for(self, question_id: str) -> Answer | None:
        for answer in self.answers:
            if answer.question_id == question_id:
                return answer
        return None


class SubmissionSummary(BaseModel):
    activity_id: str
    roster_size: int
    counts: dict[str, int]
    submitted: int
    graded: int
    submission_rate: float
    completion_rate: float
    average_grade: float | None


class SubmissionCreateRequest(BaseModel):
    student_id: str = Field(min_length=1)
    answers: list[Answer] = []
    submitted_at: datetime | None = None


class ReviewRequest(BaseModel):
    reason: str | None = None


class FinalizeRequest(BaseModel):
    grade: float
    feedback: str | None = None


class CorrectionFailure(BaseModel):
    submission_id: str | None
    error: str
    retryable: bool = True


class BatchCorrectionResponse(BaseModel):
    corrected: list[Submission]
    failures: list[CorrectionFailure]
    skipped: int
    pending_remaining: int
