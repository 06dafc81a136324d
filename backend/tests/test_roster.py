import pytest

from classpilot.db.models import ClassGroup, Student
from classpilot.errors import RosterError
from classpilot.schemas.submission import Answer
from classpilot.services.corrections import receive_submission
from classpilot.services.roster import SqlRosterRepository

from fakes import CLASS_ID, STUDENTS


@pytest.fixture
async def sql_roster(db_session):
    db_session.add(ClassGroup(id=CLASS_ID, name="7º Ano A", subject="Matemática"))
    db_session.add_all(Student(id=name, class_id=CLASS_ID, name=name) for name in STUDENTS)
    await db_session.flush()
    return SqlRosterRepository(db_session)


@pytest.fixture(params=["memory", "sql"])
def any_roster(request, roster, sql_roster):
    return roster if request.param == "memory" else sql_roster


async def test_class_lookup(any_roster):
    assert await any_roster.class_exists(CLASS_ID)
    assert not await any_roster.class_exists("class-unknown")
    assert await any_roster.roster_size(CLASS_ID) == 3


async def test_unknown_class_raises(any_roster, quiz_activity):
    with pytest.raises(RosterError):
        await any_roster.roster_size("class-unknown")
    with pytest.raises(RosterError):
        await any_roster.submit_activity("class-unknown", quiz_activity)


async def test_committed_activity_is_readable(any_roster, quiz_activity):
    activity_id = await any_roster.submit_activity(CLASS_ID, quiz_activity)

    stored = await any_roster.get_activity(activity_id)

    assert stored == quiz_activity
    assert await any_roster.class_for_activity(activity_id) == CLASS_ID
    assert await any_roster.list_submissions(activity_id) == []


async def test_unknown_activity_raises(any_roster):
    with pytest.raises(RosterError):
        await any_roster.get_activity("activity-unknown")
    with pytest.raises(RosterError):
        await any_roster.list_submissions("activity-unknown")


async def test_saved_submission_is_updated_in_place(any_roster, quiz_activity):
    await any_roster.submit_activity(CLASS_ID, quiz_activity)
    submission = receive_submission(
        quiz_activity, "student-ana", [Answer(question_id="q-mc", answer_text="3/4")]
    )
    await any_roster.save_submission(submission)

    submission.status = "manual-review"
    submission.review_reason = "Manual correction requested"
    await any_roster.save_submission(submission)

    stored = await any_roster.list_submissions(quiz_activity.id)
    assert len(stored) == 1
    assert stored[0].status == "manual-review"
    assert stored[0] == await any_roster.get_submission(submission.id)


async def test_unknown_submission_raises(any_roster):
    with pytest.raises(RosterError):
        await any_roster.get_submission("submission-unknown")


async def test_memory_roster_returns_copies(roster, quiz_activity):
    await roster.submit_activity(CLASS_ID, quiz_activity)

    fetched = await roster.get_activity(quiz_activity.id)
    fetched.title = "Alterado"

    assert (await roster.get_activity(quiz_activity.id)).title == quiz_activity.title


async def test_enrollment_is_per_class(any_roster):
    assert await any_roster.is_enrolled(CLASS_ID, "student-ana")
    assert not await any_roster.is_enrolled(CLASS_ID, "student-davi")
    assert not await any_roster.is_enrolled("class-unknown", "student-ana")


async def test_find_submission_by_student(any_roster, quiz_activity):
    await any_roster.submit_activity(CLASS_ID, quiz_activity)
    submission = receive_submission(
        quiz_activity, "student-bruno", [Answer(question_id="q-tf", answer_text="true")]
    )
    await any_roster.save_submission(submission)

    found = await any_roster.find_submission(quiz_activity.id, "student-bruno")

    assert found.id == submission.id
    assert found.answers == submission.answers
    assert await any_roster.find_submission(quiz_activity.id, "student-ana") is None
