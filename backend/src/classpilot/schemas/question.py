import uuid
from typing import Literal

from pydantic import BaseModel, Field

from classpilot.errors import ValidationError

QuestionType = Literal["multiple-choice", "true-false", "short-answer", "essay", "problem"]
Difficulty = Literal["easy", "medium", "hard"]

QUESTION_TYPES: tuple[str, ...] = ("multiple-choice", "true-false", "short-answer", "essay", "problem")
DIFFICULTIES: tuple[str, ...] = ("easy", "medium", "hard")

# Types that carry an answer key and can be corrected automatically
AUTO_GRADABLE_TYPES = frozenset({"multiple-choice", "true-false", "short-answer", "problem"})

TRUE_FALSE_ANSWERS = ("true", "false")


def new_id() -> str:
    return str(uuid.uuid4())


class Question(BaseModel):
    """One assessable item. Drafts may be incomplete; see validate_question."""

    id: str = Field(default_factory=new_id)
    type: QuestionType
    prompt: str = ""
    options: list[str] | None = None
    correct_answer: str | None = None
    points: float = 1
    difficulty: Difficulty = "medium"

    @property
    def auto_gradable(self) -> bool:
        return self.type in AUTO_GRADABLE_TYPES


def question_errors(question: Question, prefix: str = "") -> dict[str, str]:
    errors: dict[str, str] = {}

    if not question.prompt.strip():
        errors[f"{prefix}prompt"] = "Prompt is required"
    if question.points <= 0:
        errors[f"{prefix}points"] = "Points must be greater than zero"

    options = question.options or []
    if question.type == "multiple-choice":
        if len(options) < 2:
            errors[f"{prefix}options"] = "Multiple-choice questions need at least two options"
        elif any(not o.strip() for o in options):
            errors[f"{prefix}options"] = "Options cannot be blank"
    elif options:
        errors[f"{prefix}options"] = "Options are only allowed for multiple-choice questions"

    if question.auto_gradable:
        answer = (question.correct_answer or "").strip()
        if not answer:
            errors[f"{prefix}correct_answer"] = "Correct answer is required"
        elif question.type == "multiple-choice" and question.correct_answer not in options:
            errors[f"{prefix}correct_answer"] = "Correct answer must be one of the options"
        elif question.type == "true-false" and answer.lower() not in TRUE_FALSE_ANSWERS:
            errors[f"{prefix}correct_answer"] = "Correct answer must be 'true' or 'false'"

    return errors


def validate_question(question: Question) -> None:
    errors = question_errors(question)
    if errors:
        raise ValidationError(errors)


def normalize_question(question: Question) -> Question:
    """Return a copy whose options/answer key match its type."""
    update: dict = {}
    if question.type == "multiple-choice":
        if question.options is None:
            update["options"] = ["", "", "", ""]
    elif question.options is not None:
        update["options"] = None
    if question.type == "essay" and question.correct_answer is not None:
        update["correct_answer"] = None
    return question.model_copy(update=update) if update else question
