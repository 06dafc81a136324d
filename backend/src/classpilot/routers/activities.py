from fastapi import APIRouter, Depends

from classpilot.auth.dependencies import get_gateway, get_roster
from classpilot.schemas.activity import Activity
from classpilot.schemas.submission import (
    BatchCorrectionResponse,
    CorrectionFailure,
    FinalizeRequest,
    ReviewRequest,
    Submission,
    SubmissionCreateRequest,
    SubmissionSummary,
)
from classpilot.services.corrections import (
    confirm_ai_grade,
    correct_activity,
    correct_submission,
    finalize_review,
    request_review,
    submit_answers,
    summarize,
)
from classpilot.services.gateway import ContentGateway
from classpilot.services.roster import RosterRepository

router = APIRouter(prefix="/api", tags=["activities"])


@router.get("/activities/{activity_id}", response_model=Activity)
async def get_activity(activity_id: str, roster: RosterRepository = Depends(get_roster)):
    return await roster.get_activity(activity_id)


@router.post("/activities/{activity_id}/submissions", response_model=Submission, status_code=201)
async def create_submission(
    activity_id: str,
    req: SubmissionCreateRequest,
    roster: RosterRepository = Depends(get_roster),
):
    return await submit_answers(roster, activity_id, req.student_id, req.answers, req.submitted_at)


@router.get("/activities/{activity_id}/submissions", response_model=list[Submission])
async def list_submissions(activity_id: str, roster: RosterRepository = Depends(get_roster)):
    return await roster.list_submissions(activity_id)


@router.get("/activities/{activity_id}/summary", response_model=SubmissionSummary)
async def submission_summary(activity_id: str, roster: RosterRepository = Depends(get_roster)):
    activity = await roster.get_activity(activity_id)
    submissions = await roster.list_submissions(activity_id)
    roster_size = await roster.roster_size(await roster.class_for_activity(activity_id))
    return summarize(activity, submissions, roster_size)


@router.post("/activities/{activity_id}/corrections", response_model=BatchCorrectionResponse)
async def batch_correct_activity(
    activity_id: str,
    roster: RosterRepository = Depends(get_roster),
    gateway: ContentGateway = Depends(get_gateway),
):
    result = await correct_activity(roster, gateway, activity_id)
    return BatchCorrectionResponse(
        corrected=result.corrected,
        failures=[
            CorrectionFailure(submission_id=f.submission_id, error=str(f)) for f in result.failures
        ],
        skipped=result.skipped,
        pending_remaining=result.pending_remaining,
    )


@router.post("/submissions/{submission_id}/correct", response_model=Submission)
async def correct_single_submission(
    submission_id: str,
    roster: RosterRepository = Depends(get_roster),
    gateway: ContentGateway = Depends(get_gateway),
):
    submission = await roster.get_submission(submission_id)
    activity = await roster.get_activity(submission.activity_id)
    await correct_submission(activity, submission, gateway)
    await roster.save_submission(submission)
    return submission


@router.post("/submissions/{submission_id}/confirm", response_model=Submission)
async def confirm_submission(submission_id: str, roster: RosterRepository = Depends(get_roster)):
    submission = await roster.get_submission(submission_id)
    confirm_ai_grade(submission)
    await roster.save_submission(submission)
    return submission


@router.post("/submissions/{submission_id}/review", response_model=Submission)
async def review_submission(
    submission_id: str,
    req: ReviewRequest,
    roster: RosterRepository = Depends(get_roster),
):
    submission = await roster.get_submission(submission_id)
    request_review(submission, req.reason)
    await roster.save_submission(submission)
    return submission


@router.post("/submissions/{submission_id}/finalize", response_model=Submission)
async def finalize_submission(
    submission_id: str,
    req: FinalizeRequest,
    roster: RosterRepository = Depends(get_roster),
):
    submission = await roster.get_submission(submission_id)
    activity = await roster.get_activity(submission.activity_id)
    finalize_review(activity, submission, req.grade, req.feedback)
    await roster.save_submission(submission)
    return submission
