from pydantic_ai.models import Model

from classpilot.agents.activity_creator import run_activity_creator
from classpilot.agents.logging import AgentContext
from classpilot.agents.question_writer import run_question_writer
from classpilot.agents.submission_grader import run_submission_grader
from classpilot.config import settings
from classpilot.schemas.activity import Activity
from classpilot.schemas.generation import (
    ActivityDraft,
    ContentKind,
    Draft,
    GenerationOptions,
    QuestionDraftSet,
    QuestionSpecOutput,
)
from classpilot.schemas.question import Question, new_id
from classpilot.schemas.submission import AnswerResult, GradingOutput, Submission
from classpilot.services.classification import (
    ActivityTypeClassifier,
    infer_activity_type,
    infer_question_count,
)
from classpilot.services.gateway import ContentGateway


def _to_question(spec: QuestionSpecOutput) -> Question:
    return Question(id=new_id(), **spec.model_dump())


class AgentContentGateway(ContentGateway):
    """Gateway backed by the PydanticAI agents."""

    name = "llm"

    def __init__(
        self,
        ctx: AgentContext | None = None,
        model: Model | str | None = None,
        timeout: float | None = None,
        classifier: ActivityTypeClassifier = infer_activity_type,
    ):
        super().__init__(timeout)
        self.ctx = ctx or AgentContext()
        self.model = model
        self.classifier = classifier

    async def _generate(self, brief: str, kind: ContentKind, options: GenerationOptions) -> Draft:
        count = options.count or infer_question_count(brief)
        question_types = sorted(options.question_types)

        if kind == "activity":
            activity_type = self.classifier(brief)
            output = await run_activity_creator(
                self.ctx,
                brief,
                activity_type,
                question_count=count,
                question_types=question_types or None,
                difficulty=options.difficulty,
                model=self.model,
            )
            return ActivityDraft(
                type=activity_type,
                title=output.title,
                description=output.description,
                instructions=output.instructions,
                max_grade=output.max_grade,
                questions=[_to_question(q) for q in output.questions],
                ai_context=brief,
            )

        output = await run_question_writer(
            self.ctx,
            brief,
            question_types,
            count or settings.default_question_count,
            difficulty=options.difficulty,
            model=self.model,
        )
        return QuestionDraftSet(questions=[_to_question(q) for q in output.questions])

    async def _grade(self, activity: Activity, submission: Submission) -> GradingOutput:
        review = await run_submission_grader(self.ctx, activity, submission, model=self.model)

        known = {q.id: q for q in activity.questions}
        results = [
            AnswerResult(
                question_id=r.question_id,
                is_correct=r.is_correct,
                points_awarded=min(r.points_awarded, known[r.question_id].points),
                feedback=r.feedback,
            )
            for r in review.answer_reviews
            if r.question_id in known
        ]
        return GradingOutput(
            grade=review.grade,
            confidence=review.confidence,
            feedback=review.feedback,
            answer_results=results,
            earned_points=sum(r.points_awarded for r in results),
            total_points=activity.total_points,
        )
