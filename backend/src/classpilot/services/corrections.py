"""Submission lifecycle and AI-first, confidence-gated correction triage.

pending --(AI correction)--> ai-corrected | manual-review (low confidence)
pending --(teacher asks for manual correction)--> manual-review
ai-corrected --(teacher forces review)--> manual-review
ai-corrected --(teacher confirms)--> completed
manual-review --(teacher finalizes)--> completed

``not-submitted`` and ``completed`` have no outgoing transitions.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

from classpilot.config import settings
from classpilot.errors import GradingFailure, InvalidTransitionError, ValidationError
from classpilot.schemas.activity import Activity
from classpilot.schemas.submission import Answer, Submission, SubmissionSummary
from classpilot.services.gateway import ContentGateway
from classpilot.services.roster import RosterRepository

logger = logging.getLogger(__name__)

LOW_CONFIDENCE_REASON = "Low AI confidence ({confidence}% < {threshold}%)"
MANUAL_CORRECTION_REASON = "Manual correction requested"
FORCED_REVIEW_REASON = "Teacher requested review"

# Valid transitions and their guard conditions
TRANSITIONS: dict[tuple[str, str], str] = {
    ("pending", "ai-corrected"): "confident_ai_grade",
    ("pending", "manual-review"): "always",
    ("ai-corrected", "manual-review"): "always",
    ("ai-corrected", "completed"): "confident_ai_grade",
    ("manual-review", "completed"): "has_manual_grade",
}


def _threshold(threshold: int | None) -> int:
    return settings.review_confidence_threshold if threshold is None else threshold


def check_guard(submission: Submission, guard: str, threshold: int) -> bool:
    if guard == "always":
        return True
    if guard == "confident_ai_grade":
        return (
            submission.ai_grade is not None
            and submission.ai_confidence is not None
            and submission.ai_confidence >= threshold
        )
    if guard == "has_manual_grade":
        return submission.manual_grade is not None
    return False


def transition_submission(
    submission: Submission, target_status: str, threshold: int | None = None
) -> Submission:
    key = (submission.status, target_status)
    guard_name = TRANSITIONS.get(key)
    if guard_name is None:
        raise InvalidTransitionError(
            f"Cannot transition submission from '{submission.status}' to '{target_status}'"
        )

    if not check_guard(submission, guard_name, _threshold(threshold)):
        raise InvalidTransitionError(
            f"Guard '{guard_name}' failed for transition "
            f"'{submission.status}' → '{target_status}'"
        )

    logger.info("Submission %s: %s → %s", submission.id, submission.status, target_status)
    submission.status = target_status
    return submission


def receive_submission(
    activity: Activity,
    student_id: str,
    answers: list[Answer] | None,
    submitted_at: datetime | None = None,
) -> Submission:
    """Record a student's answers, one entry per question in activity order.

    Neither answers nor a submission time yields a terminal ``not-submitted`` record.
    A submission time alone is a hand-in of work with no structured questions.
    """
    if not answers and submitted_at is None:
        return Submission(activity_id=activity.id, student_id=student_id, status="not-submitted")

    by_question: dict[str, Answer] = {}
    errors: dict[str, str] = {}
    for index, answer in enumerate(answers or []):
        if activity.get_question(answer.question_id) is None:
            errors[f"answers.{index}.question_id"] = f"Unknown question '{answer.question_id}'"
        elif answer.question_id in by_question:
            errors[f"answers.{index}.question_id"] = "Question answered more than once"
        else:
            by_question[answer.question_id] = answer
    if errors:
        raise ValidationError(errors)

    if submitted_at is None:
        submitted_at = datetime.now(timezone.utc)
    elif submitted_at.tzinfo is None:
        submitted_at = submitted_at.replace(tzinfo=timezone.utc)
    due_at = activity.due_at
    is_late = due_at is not None and submitted_at > due_at
    if is_late and not activity.allow_late_submission:
        raise ValidationError({"submitted_at": "Late submissions are not accepted for this activity"})

    return Submission(
        activity_id=activity.id,
        student_id=student_id,
        submitted_at=submitted_at,
        is_late=is_late,
        status="pending",
        answers=[
            by_question.get(q.id, Answer(question_id=q.id, answer_text=""))
            for q in activity.questions
        ],
    )


async def submit_answers(
    roster: RosterRepository,
    activity_id: str,
    student_id: str,
    answers: list[Answer] | None,
    submitted_at: datetime | None = None,
) -> Submission:
    """Store one submission per student. A still pending one may be replaced."""
    activity = await roster.get_activity(activity_id)
    class_id = await roster.class_for_activity(activity_id)
    if not await roster.is_enrolled(class_id, student_id):
        raise ValidationError({"student_id": f"Student '{student_id}' is not enrolled in this class"})

    existing = await roster.find_submission(activity_id, student_id)
    if existing is not None and existing.status != "pending":
        raise InvalidTransitionError(
            f"Student '{student_id}' already has a '{existing.status}' submission for this activity"
        )

    submission = receive_submission(activity, student_id, answers, submitted_at)
    if existing is not None:
        submission.id = existing.id
        logger.info("Replacing pending submission %s for student %s", existing.id, student_id)
    await roster.save_submission(submission)
    return submission


async def correct_submission(
    activity: Activity,
    submission: Submission,
    gateway: ContentGateway,
    threshold: int | None = None,
) -> Submission:
    """Run AI correction on a pending submission.

    Low-confidence results go straight to manual review. On GradingFailure the
    submission is left untouched in ``pending``.
    """
    if submission.status != "pending":
        raise InvalidTransitionError(
            f"Only pending submissions can be corrected (submission is '{submission.status}')"
        )
    if not activity.enable_ai_correction:
        raise InvalidTransitionError("AI correction is disabled for this activity")

    output = await gateway.grade_submission(activity, submission)

    threshold = _threshold(threshold)
    submission.ai_grade = output.grade
    submission.ai_confidence = output.confidence
    submission.ai_feedback = output.feedback
    submission.answer_results = output.answer_results

    if output.confidence < threshold:
        submission.review_reason = LOW_CONFIDENCE_REASON.format(
            confidence=output.confidence, threshold=threshold
        )
        return transition_submission(submission, "manual-review", threshold)
    return transition_submission(submission, "ai-corrected", threshold)


@dataclass
class BatchCorrectionResult:
    corrected: list[Submission] = field(default_factory=list)
    failures: list[GradingFailure] = field(default_factory=list)
    skipped: int = 0

    @property
    def pending_remaining(self) -> int:
        return len(self.failures)


async def batch_correct(
    activity: Activity,
    submissions: list[Submission],
    gateway: ContentGateway,
    threshold: int | None = None,
) -> BatchCorrectionResult:
    """Correct every pending submission independently; one failure does not stop the rest."""
    pending = [s for s in submissions if s.status == "pending"]
    result = BatchCorrectionResult(skipped=len(submissions) - len(pending))

    outcomes = await asyncio.gather(
        *(correct_submission(activity, s, gateway, threshold) for s in pending),
        return_exceptions=True,
    )

    unexpected: BaseException | None = None
    for submission, outcome in zip(pending, outcomes):
        if isinstance(outcome, GradingFailure):
            logger.warning("Correction failed for submission %s: %s", submission.id, outcome)
            result.failures.append(outcome)
        elif isinstance(outcome, BaseException):
            logger.error("Unexpected error correcting submission %s", submission.id, exc_info=outcome)
            unexpected = unexpected or outcome
        else:
            result.corrected.append(outcome)

    if unexpected is not None:
        raise unexpected
    return result


def confirm_ai_grade(submission: Submission, threshold: int | None = None) -> Submission:
    """Accept the AI's grade as final. Confirming a completed submission changes nothing."""
    if submission.status == "completed":
        logger.info("Submission %s already completed; confirmation ignored", submission.id)
        return submission
    if submission.status != "ai-corrected":
        raise InvalidTransitionError(
            f"Only AI-corrected submissions can be confirmed (submission is '{submission.status}')"
        )
    if (submission.ai_confidence or 0) < _threshold(threshold):
        raise InvalidTransitionError("AI confidence is below the review threshold; review it manually")

    transition_submission(submission, "completed", threshold)
    submission.manual_grade = submission.ai_grade
    submission.manual_feedback = submission.ai_feedback
    return submission


def request_review(submission: Submission, reason: str | None = None) -> Submission:
    if (submission.status, "manual-review") not in TRANSITIONS:
        raise InvalidTransitionError(
            f"Cannot send a '{submission.status}' submission to manual review"
        )
    default = MANUAL_CORRECTION_REASON if submission.status == "pending" else FORCED_REVIEW_REASON
    submission.review_reason = reason or default
    return transition_submission(submission, "manual-review")


def finalize_review(
    activity: Activity,
    submission: Submission,
    grade: float,
    feedback: str | None = None,
) -> Submission:
    if submission.status != "manual-review":
        raise InvalidTransitionError(
            f"Only submissions in manual review can be finalized (submission is '{submission.status}')"
        )
    if grade < 0 or grade > activity.max_grade:
        raise ValidationError({"manual_grade": f"Grade must be between 0 and {activity.max_grade:g}"})

    submission.manual_grade = grade
    submission.manual_feedback = feedback
    return transition_submission(submission, "completed")


def summarize(activity: Activity, submissions: list[Submission], roster_size: int) -> SubmissionSummary:
    counts = {status: 0 for status in ("not-submitted", "pending", "ai-corrected", "manual-review", "completed")}
    for submission in submissions:
        counts[submission.status] += 1

    submitted = len(submissions) - counts["not-submitted"]
    grades = [s.final_grade for s in submissions if s.status == "completed" and s.final_grade is not None]
    return SubmissionSummary(
        activity_id=activity.id,
        roster_size=roster_size,
        counts=counts,
        submitted=submitted,
        graded=counts["completed"],
        submission_rate=round(submitted / roster_size, 4) if roster_size else 0.0,
        completion_rate=round(counts["completed"] / roster_size, 4) if roster_size else 0.0,
        average_grade=round(sum(grades) / len(grades), 2) if grades else None,
    )


async def correct_activity(
    roster: RosterRepository,
    gateway: ContentGateway,
    activity_id: str,
    threshold: int | None = None,
) -> BatchCorrectionResult:
    """Batch-correct an activity's pending submissions and store every one that moved."""
    activity = await roster.get_activity(activity_id)
    submissions = await roster.list_submissions(activity_id)
    result = await batch_correct(activity, submissions, gateway, threshold)
    for submission in result.corrected:
        await roster.save_submission(submission)
    return result
