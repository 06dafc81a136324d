from pydantic_ai import Agent
from pydantic_ai.models import Model

from classpilot.agents.logging import AgentContext, run_agent
from classpilot.schemas.generation import ActivityDraftOutput

activity_creator = Agent(
    output_type=ActivityDraftOutput,
    retries=2,
    system_prompt=(
        "You are an expert teacher designing school activities. Given a teacher's brief and "
        "the activity type, create a complete activity ready for review.\n\n"
        "Requirements:\n"
        "- title: Short, starts with the activity kind (e.g. 'Quiz - ...', 'Prova - ...')\n"
        "- description: 1-2 sentences on the topic and scope\n"
        "- instructions: Clear, actionable instructions for the students\n"
        "- max_grade: The maximum grade (default 10)\n"
        "- questions: The requested number of questions. Each question has a type "
        "(multiple-choice, true-false, short-answer, essay, problem), a prompt, points and a "
        "difficulty (easy, medium, hard).\n"
        "  - multiple-choice: 4 options; correct_answer must be exactly one of the options\n"
        "  - true-false: no options; correct_answer is 'true' or 'false'\n"
        "  - short-answer and problem: no options; correct_answer is the expected answer\n"
        "  - essay: no options and no correct_answer\n\n"
        "Write in the same language as the brief. Projects may consist of essay items only."
    ),
)


async def run_activity_creator(
    ctx: AgentContext,
    brief: str,
    activity_type: str,
    question_count: int | None = None,
    question_types: list[str] | None = None,
    difficulty: str | None = None,
    model: Model | str | None = None,
) -> ActivityDraftOutput:
    prompt = f"Teacher's brief: {brief}\n\nActivity type: {activity_type}\n"
    if question_count:
        prompt += f"Number of questions: {question_count}\n"
    if question_types:
        prompt += "Allowed question types: " + ", ".join(question_types) + "\n"
    if difficulty:
        prompt += f"Difficulty: {difficulty}\n"

    return await run_agent(ctx, activity_creator, "activity_creator", prompt, model=model)
