"""Local content gateway: canned drafts keyed by inferred activity type, rule-based grading.

Answer-key questions are compared after normalization; essays get provisional credit by
length and lower the confidence, so essay-heavy work is routed to a teacher.
"""

import asyncio
import itertools
import json
import re
import unicodedata
from pathlib import Path

from classpilot.config import settings
from classpilot.errors import GenerationFailure
from classpilot.schemas.activity import Activity
from classpilot.schemas.generation import (
    ActivityDraft,
    ContentKind,
    Draft,
    GenerationOptions,
    QuestionDraftSet,
)
from classpilot.schemas.question import Question, new_id
from classpilot.schemas.submission import AnswerResult, GradingOutput, Submission
from classpilot.services.classification import (
    ActivityTypeClassifier,
    infer_activity_type,
    infer_question_count,
)
from classpilot.services.gateway import ContentGateway

DRAFTS_FILE = Path(__file__).resolve().parent.parent / "data" / "drafts.json"

ESSAY_TARGET_WORDS = 40

_TRUE_WORDS = {"true", "t", "v", "verdadeiro", "sim", "yes"}
_FALSE_WORDS = {"false", "f", "falso", "nao", "não", "no"}


def _question_from_json(data: dict) -> Question:
    return Question(
        id=new_id(),
        type=data["type"],
        prompt=data["question"],
        options=data.get("options"),
        correct_answer=data.get("correctAnswer"),
        points=data.get("points", 1),
        difficulty=data.get("difficulty", "medium"),
    )


def normalize_answer(text: str) -> str:
    text = unicodedata.normalize("NFKC", text).casefold().strip()
    text = re.sub(r"\s+", " ", text)
    return text.rstrip(".;!")


def _as_boolean(text: str) -> bool | None:
    value = normalize_answer(text)
    if value in _TRUE_WORDS:
        return True
    if value in _FALSE_WORDS:
        return False
    return None


class HeuristicContentGateway(ContentGateway):
    name = "heuristic"

    def __init__(
        self,
        timeout: float | None = None,
        latency: float | None = None,
        classifier: ActivityTypeClassifier = infer_activity_type,
        drafts_file: Path | None = None,
    ):
        super().__init__(timeout)
        self.latency = latency if latency is not None else settings.simulated_latency_seconds
        self.classifier = classifier
        data = json.loads((drafts_file or DRAFTS_FILE).read_text(encoding="utf-8"))
        self._activities: dict[str, dict] = data["activities"]
        self._question_bank: list[dict] = data["questionBank"]

    async def _generate(self, brief: str, kind: ContentKind, options: GenerationOptions) -> Draft:
        if self.latency:
            await asyncio.sleep(self.latency)

        count = options.count or infer_question_count(brief)

        if kind == "activity":
            activity_type = self.classifier(brief)
            template = self._activities[activity_type]
            questions = [_question_from_json(q) for q in template["questions"]]
            if options.question_types:
                questions = [q for q in questions if q.type in options.question_types]
            if options.difficulty:
                questions = [q.model_copy(update={"difficulty": options.difficulty}) for q in questions]
            if count is not None:
                questions = questions[:count]
            return ActivityDraft(
                type=activity_type,
                title=template["title"],
                description=template["description"],
                instructions=template["instructions"],
                max_grade=template.get("maxGrade", 10),
                questions=questions,
                ai_context=brief,
            )

        return QuestionDraftSet(questions=self._pick_questions(options, count))

    def _pick_questions(self, options: GenerationOptions, count: int | None) -> list[Question]:
        pool = [
            q
            for q in itertools.chain(
                self._question_bank,
                *(a["questions"] for a in self._activities.values()),
            )
            if q["type"] in options.question_types
        ]
        if not pool:
            raise GenerationFailure("No questions available for the requested types")

        wanted = count or settings.default_question_count
        # Round-robin over the requested types so each one is represented
        by_type = {t: [q for q in pool if q["type"] == t] for t in sorted(options.question_types)}
        cycles = {t: itertools.cycle(qs) for t, qs in by_type.items() if qs}
        questions: list[Question] = []
        for question_type in itertools.cycle(list(cycles)):
            if len(questions) == wanted:
                break
            question = _question_from_json(next(cycles[question_type]))
            if options.difficulty:
                question = question.model_copy(update={"difficulty": options.difficulty})
            questions.append(question)
        return questions

    async def _grade(self, activity: Activity, submission: Submission) -> GradingOutput:
        if self.latency:
            await asyncio.sleep(self.latency)

        results: list[AnswerResult] = []
        earned = 0.0
        auto_points = 0.0
        for question in activity.questions:
            answer = submission.answer_for(question.id)
            text = answer.answer_text if answer else ""
            result = self._grade_answer(question, text)
            results.append(result)
            earned += result.points_awarded
            if question.auto_gradable:
                auto_points += question.points

        total = activity.total_points
        if total <= 0:
            return GradingOutput(
                grade=0,
                confidence=0,
                feedback="No structured questions to correct; a teacher must grade this submission.",
                answer_results=[],
                earned_points=0,
                total_points=0,
            )

        correct = sum(1 for r in results if r.is_correct)
        auto_count = sum(1 for q in activity.questions if q.auto_gradable)
        essays = len(results) - auto_count
        feedback = f"{correct} of {auto_count} objective answers correct."
        if essays:
            feedback += f" {essays} open answer(s) received provisional credit and should be reviewed."

        return GradingOutput(
            grade=round(earned / total * activity.max_grade, 1),
            confidence=round(auto_points / total * 100),
            feedback=feedback,
            answer_results=results,
            earned_points=round(earned, 2),
            total_points=total,
        )

    def _grade_answer(self, question: Question, text: str) -> AnswerResult:
        if not question.auto_gradable:
            words = len(text.split())
            awarded = round(question.points * min(1.0, words / ESSAY_TARGET_WORDS), 2)
            return AnswerResult(
                question_id=question.id,
                is_correct=None,
                points_awarded=awarded,
                feedback="Open answer; provisional credit based on length." if words else "No answer given.",
            )

        expected = question.correct_answer or ""
        if question.type == "true-false":
            given = _as_boolean(text)
            is_correct = given is not None and given == _as_boolean(expected)
        else:
            is_correct = bool(text.strip()) and normalize_answer(text) == normalize_answer(expected)

        return AnswerResult(
            question_id=question.id,
            is_correct=is_correct,
            points_awarded=question.points if is_correct else 0,
            feedback="Correct!" if is_correct else f"Expected: {expected}",
        )
