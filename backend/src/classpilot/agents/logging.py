import logging
import time
from dataclasses import dataclass
from typing import TypeVar

from pydantic import BaseModel
from pydantic_ai import Agent
from pydantic_ai.models import Model
from sqlalchemy.ext.asyncio import AsyncSession

from classpilot.config import settings
from classpilot.db.models import AgentLog

T = TypeVar("T", bound=BaseModel)

logger = logging.getLogger(__name__)


@dataclass
class AgentContext:
    """Context passed to all agent calls for logging and scoping."""

    db: AsyncSession | None = None
    teacher_id: str | None = None
    class_id: str | None = None


async def log_agent_call(
    ctx: AgentContext,
    agent_name: str,
    prompt: str,
    output: str | None,
    status: str,
    duration_ms: int,
    input_tokens: int | None = None,
    output_tokens: int | None = None,
    model_name: str | None = None,
) -> AgentLog | None:
    logger.info("Agent %s finished with status %s in %dms", agent_name, status, duration_ms)
    if ctx.db is None:
        return None
    log = AgentLog(
        teacher_id=ctx.teacher_id,
        class_id=ctx.class_id,
        agent_name=agent_name,
        prompt=prompt,
        output=output,
        status=status,
        duration_ms=duration_ms,
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        model_name=model_name,
    )
    ctx.db.add(log)
    await ctx.db.flush()
    return log


async def run_agent(
    ctx: AgentContext,
    agent: Agent[None, T],
    agent_name: str,
    prompt: str,
    model: Model | str | None = None,
) -> T:
    """Run a pydantic-ai agent and record one AgentLog row for the call, success or not."""
    model = model or settings.default_model
    model_name = model if isinstance(model, str) else model.model_name
    start = time.monotonic()
    try:
        result = await agent.run(prompt, model=model)
    except Exception as e:
        await log_agent_call(
            ctx,
            agent_name=agent_name,
            prompt=prompt,
            output=str(e),
            status="error",
            duration_ms=int((time.monotonic() - start) * 1000),
            model_name=model_name,
        )
        raise

    usage = result.usage()
    await log_agent_call(
        ctx,
        agent_name=agent_name,
        prompt=prompt,
        output=result.output.model_dump_json(),
        status="success",
        duration_ms=int((time.monotonic() - start) * 1000),
        input_tokens=usage.input_tokens,
        output_tokens=usage.output_tokens,
        model_name=model_name,
    )
    return result.output
