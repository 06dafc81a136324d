"""Repository boundary to the class roster: where committed activities and submissions live."""

import logging
from abc import ABC, abstractmethod

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from classpilot.db.models import ActivityRecord, ClassGroup, Student, SubmissionRecord
from classpilot.errors import RosterError
from classpilot.schemas.activity import Activity
from classpilot.schemas.submission import Submission

logger = logging.getLogger(__name__)


class RosterRepository(ABC):
    @abstractmethod
    async def class_exists(self, class_id: str) -> bool:
        pass

    @abstractmethod
    async def roster_size(self, class_id: str) -> int:
        pass

    @abstractmethod
    async def is_enrolled(self, class_id: str, student_id: str) -> bool:
        pass

    @abstractmethod
    async def submit_activity(self, class_id: str, activity: Activity) -> str:
        """Store a committed activity for a class and return its id."""

    @abstractmethod
    async def get_activity(self, activity_id: str) -> Activity:
        pass

    @abstractmethod
    async def class_for_activity(self, activity_id: str) -> str:
        pass

    @abstractmethod
    async def list_submissions(self, activity_id: str) -> list[Submission]:
        pass

    @abstractmethod
    async def get_submission(self, submission_id: str) -> Submission:
        pass

    @abstractmethod
    async def find_submission(self, activity_id: str, student_id: str) -> Submission | None:
        """The submission a student made for an activity, if any."""

    @abstractmethod
    async def save_submission(self, submission: Submission) -> None:
        pass


class InMemoryRosterRepository(RosterRepository):
    """Dict-backed roster for development and tests."""

    def __init__(self):
        self._students: dict[str, list[str]] = {}
        self._activities: dict[str, tuple[str, Activity]] = {}
        self._submissions: dict[str, Submission] = {}

    def add_class(self, class_id: str, student_ids: list[str] | None = None) -> None:
        self._students[class_id] = list(student_ids or [])

    async def class_exists(self, class_id: str) -> bool:
        return class_id in self._students

    async def roster_size(self, class_id: str) -> int:
        if class_id not in self._students:
            raise RosterError(f"Unknown class '{class_id}'")
        return len(self._students[class_id])

    async def is_enrolled(self, class_id: str, student_id: str) -> bool:
        return student_id in self._students.get(class_id, [])

    async def submit_activity(self, class_id: str, activity: Activity) -> str:
        if class_id not in self._students:
            raise RosterError(f"Unknown class '{class_id}'")
        self._activities[activity.id] = (class_id, activity.model_copy(deep=True))
        return activity.id

    async def get_activity(self, activity_id: str) -> Activity:
        try:
            return self._activities[activity_id][1].model_copy(deep=True)
        except KeyError:
            raise RosterError(f"Unknown activity '{activity_id}'") from None

    async def class_for_activity(self, activity_id: str) -> str:
        try:
            return self._activities[activity_id][0]
        except KeyError:
            raise RosterError(f"Unknown activity '{activity_id}'") from None

    async def list_submissions(self, activity_id: str) -> list[Submission]:
        if activity_id not in self._activities:
            raise RosterError(f"Unknown activity '{activity_id}'")
        return [
            s.model_copy(deep=True)
            for s in self._submissions.values()
            if s.activity_id == activity_id
        ]

    async def get_submission(self, submission_id: str) -> Submission:
        try:
            return self._submissions[submission_id].model_copy(deep=True)
        except KeyError:
            raise RosterError(f"Unknown submission '{submission_id}'") from None

    async def find_submission(self, activity_id: str, student_id: str) -> Submission | None:
        for submission in self._submissions.values():
            if submission.activity_id == activity_id and submission.student_id == student_id:
                return submission.model_copy(deep=True)
        return None

    async def save_submission(self, submission: Submission) -> None:
        if submission.activity_id not in self._activities:
            raise RosterError(f"Unknown activity '{submission.activity_id}'")
        self._submissions[submission.id] = submission.model_copy(deep=True)


class SqlRosterRepository(RosterRepository):
    def __init__(self, db: AsyncSession):
        self.db = db

    async def class_exists(self, class_id: str) -> bool:
        return await self.db.get(ClassGroup, class_id) is not None

    async def roster_size(self, class_id: str) -> int:
        if not await self.class_exists(class_id):
            raise RosterError(f"Unknown class '{class_id}'")
        result = await self.db.execute(
            select(func.count()).select_from(Student).where(Student.class_id == class_id)
        )
        return result.scalar_one()

    async def is_enrolled(self, class_id: str, student_id: str) -> bool:
        student = await self.db.get(Student, student_id)
        return student is not None and student.class_id == class_id

    async def submit_activity(self, class_id: str, activity: Activity) -> str:
        if not await self.class_exists(class_id):
            raise RosterError(f"Unknown class '{class_id}'")
        record = ActivityRecord(
            id=activity.id,
            class_id=class_id,
            title=activity.title,
            activity_type=activity.type,
            origin=activity.origin,
            activity_spec=activity.model_dump(mode="json"),
        )
        self.db.add(record)
        await self.db.flush()
        logger.info("Stored activity %s for class %s", record.id, class_id)
        return record.id

    async def _activity_record(self, activity_id: str) -> ActivityRecord:
        record = await self.db.get(ActivityRecord, activity_id)
        if record is None:
            raise RosterError(f"Unknown activity '{activity_id}'")
        return record

    async def get_activity(self, activity_id: str) -> Activity:
        record = await self._activity_record(activity_id)
        return Activity.model_validate(record.activity_spec)

    async def class_for_activity(self, activity_id: str) -> str:
        record = await self._activity_record(activity_id)
        return record.class_id

    async def list_submissions(self, activity_id: str) -> list[Submission]:
        await self._activity_record(activity_id)
        result = await self.db.execute(
            select(SubmissionRecord)
            .where(SubmissionRecord.activity_id == activity_id)
            .order_by(SubmissionRecord.student_id)
        )
        return [Submission.model_validate(r.submission_data) for r in result.scalars().all()]

    async def get_submission(self, submission_id: str) -> Submission:
        record = await self.db.get(SubmissionRecord, submission_id)
        if record is None:
            raise RosterError(f"Unknown submission '{submission_id}'")
        return Submission.model_validate(record.submission_data)

    async def find_submission(self, activity_id: str, student_id: str) -> Submission | None:
        result = await self.db.execute(
            select(SubmissionRecord).where(
                SubmissionRecord.activity_id == activity_id,
                SubmissionRecord.student_id == student_id,
            )
        )
        record = result.scalars().first()
        return Submission.model_validate(record.submission_data) if record else None

    async def save_submission(self, submission: Submission) -> None:
        await self._activity_record(submission.activity_id)
        data = submission.model_dump(mode="json")
        record = await self.db.get(SubmissionRecord, submission.id)
        if record is None:
            record = SubmissionRecord(
                id=submission.id,
                activity_id=submission.activity_id,
                student_id=submission.student_id,
                status=submission.status,
                submission_data=data,
            )
            self.db.add(record)
        else:
            record.status = submission.status
            record.submission_data = data
        await self.db.flush()
