from pydantic_ai import Agent
from pydantic_ai.models import Model

from classpilot.agents.logging import AgentContext, run_agent
from classpilot.schemas.generation import QuestionSetOutput

question_writer = Agent(
    output_type=QuestionSetOutput,
    retries=2,
    system_prompt=(
        "You are an expert question writer. Given a topic or context from a teacher, write "
        "assessment questions.\n\n"
        "Requirements:\n"
        "- Only use the allowed question types, spreading the questions across them\n"
        "- Write exactly the requested number of questions at the requested difficulty\n"
        "- multiple-choice: 4 options; correct_answer must be exactly one of the options\n"
        "- true-false: no options; correct_answer is 'true' or 'false'\n"
        "- short-answer and problem: no options; correct_answer is the expected answer\n"
        "- essay: no options and no correct_answer\n"
        "- points: 1-5, higher for harder questions\n\n"
        "Write in the same language as the context."
    ),
)


async def run_question_writer(
    ctx: AgentContext,
    context: str,
    question_types: list[str],
    count: int,
    difficulty: str | None = None,
    model: Model | str | None = None,
) -> QuestionSetOutput:
    prompt = (
        f"Context: {context}\n\n"
        f"Allowed question types: {', '.join(question_types)}\n"
        f"Number of questions: {count}\n"
        f"Difficulty: {difficulty or 'mixed'}\n"
    )

    return await run_agent(ctx, question_writer, "question_writer", prompt, model=model)
