"""Boundary to the external content service: draft generation and submission grading.

Concrete gateways implement ``_generate`` and ``_grade``. The public methods enforce the
input constraints, apply the deadline and translate any service error into
GenerationFailure / GradingFailure so callers never see a fabricated result.
"""

import asyncio
import logging
from abc import ABC, abstractmethod

from classpilot.config import settings
from classpilot.errors import GenerationFailure, GradingFailure, ValidationError
from classpilot.schemas.activity import Activity
from classpilot.schemas.generation import (
    ActivityDraft,
    ContentKind,
    Draft,
    GenerationOptions,
    QuestionDraftSet,
)
from classpilot.schemas.submission import GradingOutput, Submission

logger = logging.getLogger(__name__)


def check_generation_request(brief: str, kind: ContentKind, options: GenerationOptions) -> None:
    errors: dict[str, str] = {}
    if not brief or not brief.strip():
        errors["brief"] = "A brief is required"
    if kind not in ("activity", "questions"):
        errors["kind"] = f"Unknown content kind '{kind}'"
    if kind == "questions" and not options.question_types:
        errors["question_types"] = "Select at least one question type"
    if errors:
        raise ValidationError(errors)


def missing_answers(activity: Activity, submission: Submission) -> list[str]:
    """Auto-gradable questions the submission has no answer entry for."""
    return [
        q.id
        for q in activity.questions
        if q.auto_gradable and submission.answer_for(q.id) is None
    ]


class ContentGateway(ABC):
    name = "base"

    def __init__(self, timeout: float | None = None):
        self.timeout = timeout if timeout is not None else settings.gateway_timeout_seconds

    async def generate_content(
        self,
        brief: str,
        kind: ContentKind,
        options: GenerationOptions | None = None,
    ) -> Draft:
        options = options or GenerationOptions()
        check_generation_request(brief, kind, options)
        try:
            draft = await asyncio.wait_for(
                self._generate(brief.strip(), kind, options), timeout=self.timeout
            )
        except TimeoutError as e:
            raise GenerationFailure(
                f"Content generation timed out after {self.timeout:g}s"
            ) from e
        except GenerationFailure:
            raise
        except Exception as e:
            logger.exception("Content generation failed on %s gateway", self.name)
            raise GenerationFailure(f"Content generation failed: {e}") from e

        expected = ActivityDraft if kind == "activity" else QuestionDraftSet
        if not isinstance(draft, expected):
            raise GenerationFailure(
                f"Content service returned {type(draft).__name__} for a '{kind}' request"
            )
        return draft

    async def grade_submission(self, activity: Activity, submission: Submission) -> GradingOutput:
        missing = missing_answers(activity, submission)
        if missing:
            raise GradingFailure(
                f"Submission {submission.id} has no answer for questions: {', '.join(missing)}",
                submission_id=submission.id,
            )
        try:
            output = await asyncio.wait_for(self._grade(activity, submission), timeout=self.timeout)
        except TimeoutError as e:
            raise GradingFailure(
                f"Grading timed out after {self.timeout:g}s", submission_id=submission.id
            ) from e
        except GradingFailure:
            raise
        except Exception as e:
            logger.exception("Grading failed on %s gateway for submission %s", self.name, submission.id)
            raise GradingFailure(f"Grading failed: {e}", submission_id=submission.id) from e

        if output.grade > activity.max_grade:
            raise GradingFailure(
                f"Proposed grade {output.grade:g} exceeds max grade {activity.max_grade:g}",
                submission_id=submission.id,
            )
        return output

    @abstractmethod
    async def _generate(self, brief: str, kind: ContentKind, options: GenerationOptions) -> Draft:
        pass

    @abstractmethod
    async def _grade(self, activity: Activity, submission: Submission) -> GradingOutput:
        pass


def get_content_gateway(backend: str | None = None) -> ContentGateway:
    if backend is None:
        backend = settings.content_backend
    if backend == "llm":
        from classpilot.services.agent_gateway import AgentContentGateway

        return AgentContentGateway()
    from classpilot.services.heuristic_gateway import HeuristicContentGateway

    return HeuristicContentGateway()
