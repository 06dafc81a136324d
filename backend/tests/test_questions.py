from datetime import date

import pytest

from classpilot.errors import ValidationError
from classpilot.schemas.activity import (
    Activity,
    validate_activity,
    validate_activity_with_questions,
)
from classpilot.schemas.question import Question, normalize_question, validate_question


def test_true_false_question_needs_no_options():
    question = Question(type="true-false", prompt="A Terra é redonda.", correct_answer="true")
    validate_question(question)


def test_true_false_answer_must_be_boolean():
    question = Question(type="true-false", prompt="A Terra é redonda.", correct_answer="talvez")
    with pytest.raises(ValidationError) as exc_info:
        validate_question(question)
    assert "correct_answer" in exc_info.value.fields


def test_multiple_choice_needs_two_options():
    question = Question(
        type="multiple-choice", prompt="Qual é a capital?", options=["Brasília"], correct_answer="Brasília"
    )
    with pytest.raises(ValidationError) as exc_info:
        validate_question(question)
    assert set(exc_info.value.fields) == {"options"}


def test_multiple_choice_answer_must_be_an_option():
    question = Question(
        type="multiple-choice",
        prompt="Qual é a capital?",
        options=["Brasília", "Salvador"],
        correct_answer="Recife",
    )
    with pytest.raises(ValidationError) as exc_info:
        validate_question(question)
    assert "correct_answer" in exc_info.value.fields


def test_blank_option_is_rejected():
    question = Question(
        type="multiple-choice", prompt="Qual é a capital?", options=["Brasília", " "], correct_answer="Brasília"
    )
    with pytest.raises(ValidationError) as exc_info:
        validate_question(question)
    assert exc_info.value.fields["options"] == "Options cannot be blank"


def test_options_only_allowed_on_multiple_choice():
    question = Question(type="short-answer", prompt="Quanto é 2 + 2?", options=["4"], correct_answer="4")
    with pytest.raises(ValidationError) as exc_info:
        validate_question(question)
    assert "options" in exc_info.value.fields


def test_essay_needs_no_answer_key():
    validate_question(Question(type="essay", prompt="Explique a fotossíntese."))


def test_auto_gradable_question_needs_answer_key():
    question = Question(type="problem", prompt="Resolva x + 2 = 5.")
    with pytest.raises(ValidationError) as exc_info:
        validate_question(question)
    assert "correct_answer" in exc_info.value.fields


def test_empty_prompt_and_zero_points_are_both_reported():
    question = Question(type="essay", prompt="  ", points=0)
    with pytest.raises(ValidationError) as exc_info:
        validate_question(question)
    assert set(exc_info.value.fields) == {"prompt", "points"}


def test_normalize_gives_new_multiple_choice_four_blank_options():
    question = normalize_question(Question(type="multiple-choice"))
    assert question.options == ["", "", "", ""]


def test_normalize_clears_options_and_essay_answer():
    question = normalize_question(
        Question(type="essay", prompt="Discuta.", options=["a", "b"], correct_answer="a")
    )
    assert question.options is None
    assert question.correct_answer is None


def _activity(**overrides) -> Activity:
    data = {
        "title": "Trabalho - Ecossistemas",
        "description": "Pesquisa sobre ecossistemas brasileiros.",
        "due_date": date(2026, 11, 20),
    }
    data.update(overrides)
    return Activity(**data)


def test_activity_without_questions_is_valid():
    validate_activity(_activity())


@pytest.mark.parametrize("max_grade", [0, 0.5, 101])
def test_max_grade_out_of_range(max_grade):
    with pytest.raises(ValidationError) as exc_info:
        validate_activity(_activity(max_grade=max_grade))
    assert "max_grade" in exc_info.value.fields


def test_missing_metadata_reports_every_field():
    with pytest.raises(ValidationError) as exc_info:
        validate_activity(Activity())
    assert set(exc_info.value.fields) == {"title", "description", "due_date"}


def test_question_errors_are_prefixed_with_their_position():
    activity = _activity(
        questions=[
            Question(type="essay", prompt="Descreva o cerrado."),
            Question(type="true-false", prompt=""),
        ]
    )
    with pytest.raises(ValidationError) as exc_info:
        validate_activity_with_questions(activity)
    assert set(exc_info.value.fields) == {"questions.1.prompt", "questions.1.correct_answer"}


def test_due_at_combines_date_and_default_time():
    activity = _activity()
    assert activity.due_at.isoformat() == "2026-11-20T23:59:00+00:00"
