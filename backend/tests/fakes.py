"""Scripted gateways for exercising the wizard and the correction triage."""

import asyncio

from classpilot.schemas.activity import Activity
from classpilot.schemas.generation import ActivityDraft, QuestionDraftSet
from classpilot.schemas.question import Question
from classpilot.schemas.submission import GradingOutput, Submission
from classpilot.services.gateway import ContentGateway

CLASS_ID = "class-7a"
STUDENTS = ["student-ana", "student-bruno", "student-carla"]


class ScriptedGateway(ContentGateway):
    """Returns queued drafts in order and grades keyed by student id.

    A queued exception is raised instead of returning a result.
    """

    name = "scripted"

    def __init__(self, drafts=None, grades=None, timeout: float = 5):
        super().__init__(timeout=timeout)
        self.drafts = list(drafts or [])
        self.grades = dict(grades or {})
        self.generate_calls: list[tuple[str, str]] = []
        self.grade_calls: list[str] = []

    async def _generate(self, brief, kind, options):
        self.generate_calls.append((brief, kind))
        item = self.drafts.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    async def _grade(self, activity: Activity, submission: Submission) -> GradingOutput:
        self.grade_calls.append(submission.id)
        outcome = self.grades[submission.student_id]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class BlockingGateway(ScriptedGateway):
    """Holds every generation call until ``release`` is set."""

    def __init__(self, drafts=None, grades=None):
        super().__init__(drafts, grades)
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def _generate(self, brief, kind, options):
        self.started.set()
        await self.release.wait()
        return await super()._generate(brief, kind, options)


def quiz_draft(brief: str = "Quiz sobre frações") -> ActivityDraft:
    return ActivityDraft(
        type="quiz",
        title="Quiz - Frações",
        description="Questionário rápido sobre frações equivalentes.",
        instructions="Escolha uma alternativa por questão.",
        max_grade=10,
        questions=[
            Question(
                type="multiple-choice",
                prompt="Quanto é 1/2 + 1/4?",
                options=["3/4", "2/6", "1/8", "1"],
                correct_answer="3/4",
                points=2,
                difficulty="easy",
            ),
            Question(type="true-false", prompt="2/4 é equivalente a 1/2.", correct_answer="true", points=1),
        ],
        ai_context=brief,
    )


def question_set(*types: str) -> QuestionDraftSet:
    questions = []
    for question_type in types:
        if question_type == "multiple-choice":
            questions.append(Question(
                type="multiple-choice", prompt="Qual é a capital do Brasil?",
                options=["Brasília", "Rio de Janeiro"], correct_answer="Brasília",
            ))
        elif question_type == "essay":
            questions.append(Question(type="essay", prompt="Explique o ciclo da água."))
        elif question_type == "true-false":
            questions.append(Question(type="true-false", prompt="A água ferve a 100 °C ao nível do mar.", correct_answer="true"))
        else:
            questions.append(Question(type=question_type, prompt="Quanto é 2 + 2?", correct_answer="4"))
    return QuestionDraftSet(questions=questions)


def grading(grade: float, confidence: int, feedback: str = "Bom trabalho.") -> GradingOutput:
    return GradingOutput(grade=grade, confidence=confidence, feedback=feedback)
