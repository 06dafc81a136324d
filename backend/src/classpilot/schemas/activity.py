from datetime import date, datetime, time, timezone
from typing import Literal

from pydantic import BaseModel, Field

from classpilot.errors import ValidationError
from classpilot.schemas.question import Question, new_id, question_errors

ActivityType = Literal["assignment", "quiz", "project", "exam"]
Origin = Literal["manual", "template", "ai-generated"]

ACTIVITY_TYPES: tuple[str, ...] = ("assignment", "quiz", "project", "exam")


class Activity(BaseModel):
    id: str = Field(default_factory=new_id)
    title: str = ""
    type: ActivityType = "assignment"
    description: str = ""
    instructions: str = ""
    due_date: date | None = None
    due_time: time = time(23, 59)
    max_grade: float = 10
    allow_late_submission: bool = False
    enable_ai_correction: bool = True
    require_file_upload: bool = False
    questions: list[Question] = []
    origin: Origin = "manual"
    # The brief an ai-generated activity was produced from
    ai_context: str | None = None

    @property
    def due_at(self) -> datetime | None:
        if self.due_date is None:
            return None
        # Due dates are stored and compared in UTC
        return datetime.combine(self.due_date, self.due_time, tzinfo=timezone.utc)

    @property
    def total_points(self) -> float:
        return sum(q.points for q in self.questions)

    def get_question(self, question_id: str) -> Question | None:
        for question in self.questions:
            if question.id == question_id:
                return question
        return None


def activity_errors(activity: Activity) -> dict[str, str]:
    errors: dict[str, str] = {}
    if not activity.title.strip():
        errors["title"] = "Title is required"
    if not activity.description.strip():
        errors["description"] = "Description is required"
    if activity.due_date is None:
        errors["due_date"] = "Due date is required"
    if activity.max_grade < 1 or activity.max_grade > 100:
        errors["max_grade"] = "Max grade must be between 1 and 100"
    return errors


def validate_activity(activity: Activity) -> None:
    """Check activity metadata. An empty question list is allowed (manually graded work)."""
    errors = activity_errors(activity)
    if errors:
        raise ValidationError(errors)


def validate_activity_with_questions(activity: Activity) -> None:
    """Check the activity and every question, reporting all failing fields at once."""
    errors = activity_errors(activity)
    for index, question in enumerate(activity.questions):
        errors.update(question_errors(question, prefix=f"questions.{index}."))
    if errors:
        raise ValidationError(errors)
