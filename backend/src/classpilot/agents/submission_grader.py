from pydantic_ai import Agent
from pydantic_ai.models import Model

from classpilot.agents.logging import AgentContext, run_agent
from classpilot.schemas.activity import Activity
from classpilot.schemas.generation import SubmissionReviewOutput
from classpilot.schemas.submission import Submission

submission_grader = Agent(
    output_type=SubmissionReviewOutput,
    retries=2,
    system_prompt=(
        "You are an expert teacher correcting a student's submission question by question.\n\n"
        "Requirements:\n"
        "- answer_reviews: One entry per question, using the question_id given. "
        "points_awarded is between 0 and the question's points. is_correct is null for essays.\n"
        "- grade: Sum of points awarded scaled to the activity's max grade\n"
        "- confidence: 0-100, how sure you are the grade is right. Lower it for essays, "
        "ambiguous answers and answers that disagree with the answer key only in form.\n"
        "- feedback: 1-4 sentences for the student covering what was right and what to fix\n\n"
        "Be fair and specific. Never exceed the max grade."
    ),
)


def format_submission(activity: Activity, submission: Submission) -> str:
    lines = [
        f"Activity: {activity.title} ({activity.type})",
        f"Max grade: {activity.max_grade:g}",
        "",
    ]
    for question in activity.questions:
        answer = submission.answer_for(question.id)
        lines.append(f"[{question.id}] ({question.type}, {question.points:g} pts) {question.prompt}")
        if question.options:
            lines.append("Options: " + " | ".join(question.options))
        if question.correct_answer:
            lines.append(f"Answer key: {question.correct_answer}")
        lines.append(f"Student answer: {answer.answer_text if answer else ''}")
        lines.append("")
    return "\n".join(lines)


async def run_submission_grader(
    ctx: AgentContext,
    activity: Activity,
    submission: Submission,
    model: Model | str | None = None,
) -> SubmissionReviewOutput:
    prompt = format_submission(activity, submission)

    return await run_agent(ctx, submission_grader, "submission_grader", prompt, model=model)
