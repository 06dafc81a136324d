import os

# The engine is created at import time; point it at SQLite before classpilot loads
os.environ["CLASSPILOT_DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["CLASSPILOT_AUTO_CREATE_TABLES"] = "false"
os.environ["CLASSPILOT_CONTENT_BACKEND"] = "heuristic"
os.environ["CLASSPILOT_SIMULATED_LATENCY_SECONDS"] = "0"

from datetime import date, timedelta  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from classpilot.db.models import Base  # noqa: E402
from classpilot.schemas.activity import Activity  # noqa: E402
from classpilot.schemas.question import Question  # noqa: E402
from classpilot.services.heuristic_gateway import HeuristicContentGateway  # noqa: E402
from classpilot.services.roster import InMemoryRosterRepository  # noqa: E402
from classpilot.services.wizard_sessions import clear_sessions  # noqa: E402

from fakes import CLASS_ID, STUDENTS  # noqa: E402


@pytest.fixture(autouse=True)
def _reset_wizard_sessions():
    yield
    clear_sessions()


@pytest.fixture
def roster():
    repo = InMemoryRosterRepository()
    repo.add_class(CLASS_ID, STUDENTS)
    return repo


@pytest.fixture
def heuristic_gateway():
    return HeuristicContentGateway(latency=0)


@pytest.fixture
def quiz_activity():
    """A committed quiz with one question of each auto-gradable kind plus an essay."""
    return Activity(
        title="Quiz - Frações",
        type="quiz",
        description="Questionário sobre frações equivalentes.",
        instructions="Responda todas as questões.",
        due_date=date.today() + timedelta(days=7),
        max_grade=10,
        questions=[
            Question(
                id="q-mc",
                type="multiple-choice",
                prompt="Quanto é 1/2 + 1/4?",
                options=["3/4", "2/6", "1/8", "1"],
                correct_answer="3/4",
                points=4,
            ),
            Question(id="q-tf", type="true-false", prompt="2/4 é igual a 1/2.", correct_answer="true", points=3),
            Question(id="q-sa", type="short-answer", prompt="Simplifique 6/8.", correct_answer="3/4", points=3),
        ],
    )


@pytest.fixture
async def committed_quiz(roster, quiz_activity):
    await roster.submit_activity(CLASS_ID, quiz_activity)
    return quiz_activity


@pytest.fixture
async def db_session():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    session_factory = async_sessionmaker(engine, expire_on_commit=False)
    async with session_factory() as session:
        yield session
    await engine.dispose()
