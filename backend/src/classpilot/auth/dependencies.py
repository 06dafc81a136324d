from dataclasses import dataclass

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from classpilot.agents.logging import AgentContext
from classpilot.config import settings
from classpilot.db.session import get_db_session
from classpilot.services.gateway import ContentGateway, get_content_gateway
from classpilot.services.roster import RosterRepository, SqlRosterRepository


DEV_TEACHER_ID = "dev-teacher-001"


@dataclass
class Teacher:
    id: str
    name: str


async def get_current_teacher() -> Teacher:
    """Stubbed auth: every request acts as the dev teacher."""
    return Teacher(id=DEV_TEACHER_ID, name="Professor(a) Demo")


async def get_roster(db: AsyncSession = Depends(get_db_session)) -> RosterRepository:
    return SqlRosterRepository(db)


async def get_gateway(
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db_session),
) -> ContentGateway:
    if settings.content_backend == "llm":
        from classpilot.services.agent_gateway import AgentContentGateway

        return AgentContentGateway(ctx=AgentContext(db=db, teacher_id=teacher.id))
    return get_content_gateway()
