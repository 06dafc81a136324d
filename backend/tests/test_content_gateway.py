import asyncio
import json

import pytest

from classpilot.errors import GenerationFailure, GradingFailure, ValidationError
from classpilot.schemas.generation import ActivityDraft, GenerationOptions, QuestionDraftSet
from classpilot.schemas.question import Question
from classpilot.schemas.submission import Answer, Submission
from classpilot.services.classification import infer_activity_type, infer_question_count
from classpilot.services.heuristic_gateway import HeuristicContentGateway, normalize_answer

from fakes import ScriptedGateway, grading, quiz_draft


@pytest.mark.parametrize(
    "brief,expected",
    [
        ("Quiz sobre história do Brasil colonial", "quiz"),
        ("Questionário de múltipla escolha sobre frações", "quiz"),
        ("Projeto em grupo sobre reciclagem", "project"),
        ("Prova bimestral de geografia", "exam"),
        ("Exercícios de revisão de verbos", "assignment"),
        # quiz keywords are checked before exam keywords
        ("Quiz de avaliação diagnóstica", "quiz"),
    ],
)
def test_infer_activity_type(brief, expected):
    assert infer_activity_type(brief) == expected


def test_infer_question_count():
    assert infer_question_count("Quiz com 5 questões sobre frações") == 5
    assert infer_question_count("Prova de 12 perguntas") == 12
    assert infer_question_count("Trabalho sobre o cerrado") is None


async def test_quiz_brief_yields_quiz_with_requested_question_count(heuristic_gateway):
    draft = await heuristic_gateway.generate_content(
        "Quiz sobre história do Brasil colonial com 5 questões", "activity"
    )

    assert isinstance(draft, ActivityDraft)
    assert draft.type == "quiz"
    assert len(draft.questions) == 5
    assert draft.ai_context == "Quiz sobre história do Brasil colonial com 5 questões"


async def test_activity_draft_honours_type_filter_and_difficulty(heuristic_gateway):
    draft = await heuristic_gateway.generate_content(
        "Prova de matemática",
        "activity",
        GenerationOptions(question_types={"multiple-choice"}, difficulty="hard"),
    )

    assert draft.type == "exam"
    assert draft.questions
    assert {q.type for q in draft.questions} == {"multiple-choice"}
    assert {q.difficulty for q in draft.questions} == {"hard"}


async def test_generated_questions_cover_requested_types(heuristic_gateway):
    result = await heuristic_gateway.generate_content(
        "Ciclo da água",
        "questions",
        GenerationOptions(question_types={"true-false", "essay"}, count=4),
    )

    assert isinstance(result, QuestionDraftSet)
    assert len(result.questions) == 4
    assert {q.type for q in result.questions} == {"true-false", "essay"}
    assert len({q.id for q in result.questions}) == 4


@pytest.mark.parametrize(
    "brief,kind,options,field",
    [
        ("   ", "activity", GenerationOptions(), "brief"),
        ("Frações", "lesson", GenerationOptions(), "kind"),
        ("Frações", "questions", GenerationOptions(), "question_types"),
    ],
)
async def test_generation_input_is_checked_before_calling_the_service(brief, kind, options, field):
    gateway = ScriptedGateway()

    with pytest.raises(ValidationError) as exc_info:
        await gateway.generate_content(brief, kind, options)

    assert field in exc_info.value.fields
    assert gateway.generate_calls == []


async def test_generation_timeout_becomes_generation_failure():
    gateway = HeuristicContentGateway(timeout=0.01, latency=1)

    with pytest.raises(GenerationFailure, match="timed out"):
        await gateway.generate_content("Quiz sobre frações", "activity")


async def test_service_error_becomes_generation_failure():
    gateway = ScriptedGateway(drafts=[ConnectionError("service unavailable")])

    with pytest.raises(GenerationFailure, match="service unavailable"):
        await gateway.generate_content("Quiz sobre frações", "activity")


async def test_draft_of_the_wrong_kind_is_rejected():
    gateway = ScriptedGateway(drafts=[quiz_draft()])

    with pytest.raises(GenerationFailure):
        await gateway.generate_content("Frações", "questions", GenerationOptions(question_types={"essay"}))


async def test_empty_question_pool_fails_generation(tmp_path):
    drafts_file = tmp_path / "drafts.json"
    drafts_file.write_text(json.dumps({"activities": {}, "questionBank": []}), encoding="utf-8")
    gateway = HeuristicContentGateway(latency=0, drafts_file=drafts_file)

    with pytest.raises(GenerationFailure, match="No questions available"):
        await gateway.generate_content("Ciclo da água", "questions", GenerationOptions(question_types={"essay"}))


def test_normalize_answer():
    assert normalize_answer("  Três   Quartos. ") == "três quartos"


def _answers(**texts) -> list[Answer]:
    return [Answer(question_id=qid.replace("_", "-"), answer_text=text) for qid, text in texts.items()]


async def test_correct_objective_answers_get_full_grade_and_confidence(heuristic_gateway, quiz_activity):
    submission = Submission(
        activity_id=quiz_activity.id,
        student_id="student-ana",
        answers=_answers(q_mc="3/4", q_tf="Verdadeiro", q_sa=" 3/4 "),
    )

    output = await heuristic_gateway.grade_submission(quiz_activity, submission)

    assert output.grade == 10
    assert output.confidence == 100
    assert output.earned_points == 10
    assert all(r.is_correct for r in output.answer_results)


async def test_wrong_answer_loses_its_points(heuristic_gateway, quiz_activity):
    submission = Submission(
        activity_id=quiz_activity.id,
        student_id="student-bruno",
        answers=_answers(q_mc="1/8", q_tf="false", q_sa="3/4"),
    )

    output = await heuristic_gateway.grade_submission(quiz_activity, submission)

    assert output.grade == 3
    results = {r.question_id: r for r in output.answer_results}
    assert results["q-mc"].is_correct is False
    assert results["q-mc"].feedback == "Expected: 3/4"


async def test_essays_lower_confidence(heuristic_gateway, quiz_activity):
    quiz_activity.questions.append(Question(id="q-essay", type="essay", prompt="Explique frações.", points=10))
    submission = Submission(
        activity_id=quiz_activity.id,
        student_id="student-carla",
        answers=_answers(q_mc="3/4", q_tf="true", q_sa="3/4", q_essay="Uma fração é parte de um todo."),
    )

    output = await heuristic_gateway.grade_submission(quiz_activity, submission)

    assert output.confidence == 50
    essay = next(r for r in output.answer_results if r.question_id == "q-essay")
    assert essay.is_correct is None
    assert 0 < essay.points_awarded < 10


async def test_missing_answer_entry_fails_grading(heuristic_gateway, quiz_activity):
    submission = Submission(
        activity_id=quiz_activity.id,
        student_id="student-ana",
        answers=_answers(q_mc="3/4"),
    )

    with pytest.raises(GradingFailure) as exc_info:
        await heuristic_gateway.grade_submission(quiz_activity, submission)
    assert exc_info.value.submission_id == submission.id


async def test_grade_above_max_is_rejected(quiz_activity):
    gateway = ScriptedGateway(grades={"student-ana": grading(11, 90)})
    submission = Submission(
        activity_id=quiz_activity.id,
        student_id="student-ana",
        answers=_answers(q_mc="3/4", q_tf="true", q_sa="3/4"),
    )

    with pytest.raises(GradingFailure, match="exceeds max grade"):
        await gateway.grade_submission(quiz_activity, submission)


async def test_grading_timeout(quiz_activity):
    class SlowGateway(ScriptedGateway):
        async def _grade(self, activity, submission):
            await asyncio.sleep(1)

    submission = Submission(
        activity_id=quiz_activity.id,
        student_id="student-ana",
        answers=_answers(q_mc="3/4", q_tf="true", q_sa="3/4"),
    )

    with pytest.raises(GradingFailure, match="timed out"):
        await SlowGateway(timeout=0.01).grade_submission(quiz_activity, submission)
