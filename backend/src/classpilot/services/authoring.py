"""Step-based authoring flow that builds exactly one Activity for a class.

ClassSelection -> ModeSelection -> {ManualEntry | TemplateEntry | AIBrief} -> Review -> Committed

Gateway calls are the only suspension points. While one is in flight the wizard sits in
``generating`` and refuses every other operation except abandoning the call or cancelling
the whole session. Results of an abandoned call are discarded.
"""

import asyncio
import logging
from collections.abc import Awaitable
from datetime import date, timedelta
from typing import Any, Literal

import pydantic

from classpilot.config import settings
from classpilot.errors import InvalidTransitionError, ValidationError
from classpilot.schemas.activity import Activity, validate_activity_with_questions
from classpilot.schemas.generation import ActivityDraft, GenerationOptions, QuestionDraftSet
from classpilot.schemas.question import Question, QuestionType, new_id, normalize_question
from classpilot.services.catalog import get_template
from classpilot.services.gateway import ContentGateway
from classpilot.services.roster import RosterRepository

logger = logging.getLogger(__name__)

CLASS_SELECTION = "class_selection"
MODE_SELECTION = "mode_selection"
MANUAL_ENTRY = "manual_entry"
TEMPLATE_ENTRY = "template_entry"
AI_BRIEF = "ai_brief"
GENERATING = "generating"
REVIEW = "review"
COMMITTED = "committed"

EDITING_STATES = (MANUAL_ENTRY, TEMPLATE_ENTRY, AI_BRIEF, REVIEW)

CreationMode = Literal["manual", "template", "ai"]

MODE_STATES: dict[str, str] = {
    "manual": MANUAL_ENTRY,
    "template": TEMPLATE_ENTRY,
    "ai": AI_BRIEF,
}

# Valid transitions and their guard conditions
TRANSITIONS: dict[tuple[str, str], str] = {
    (CLASS_SELECTION, MODE_SELECTION): "has_class",
    (MODE_SELECTION, MODE_SELECTION): "has_class",  # switch class before picking a mode
    **{(MODE_SELECTION, state): "always" for state in (MANUAL_ENTRY, TEMPLATE_ENTRY, AI_BRIEF)},
    # Applying a template or an AI brief is allowed at any editing point; last writer wins
    **{(state, TEMPLATE_ENTRY): "always" for state in EDITING_STATES},
    **{(state, AI_BRIEF): "always" for state in EDITING_STATES},
    **{(state, GENERATING): "always" for state in (MODE_SELECTION, *EDITING_STATES)},
    **{(GENERATING, state): "always" for state in (MODE_SELECTION, *EDITING_STATES)},
    **{(state, REVIEW): "has_class" for state in EDITING_STATES},
    (REVIEW, COMMITTED): "has_class",
    (COMMITTED, CLASS_SELECTION): "always",
}

DRAFT_FIELDS = frozenset({
    "title",
    "type",
    "description",
    "instructions",
    "due_date",
    "due_time",
    "max_grade",
    "allow_late_submission",
    "enable_ai_correction",
    "require_file_upload",
})

QUESTION_FIELDS = frozenset({"type", "prompt", "options", "correct_answer", "points", "difficulty"})


def _field_errors(exc: pydantic.ValidationError, prefix: str = "") -> ValidationError:
    return ValidationError({
        prefix + ".".join(str(p) for p in err["loc"]): err["msg"] for err in exc.errors()
    })


def blank_question(question_type: QuestionType = "multiple-choice") -> Question:
    return normalize_question(Question(type=question_type, prompt="", points=1, difficulty="medium"))


class AuthoringWizard:
    def __init__(
        self,
        gateway: ContentGateway,
        roster: RosterRepository,
        teacher_id: str | None = None,
    ):
        self.id = new_id()
        self.gateway = gateway
        self.roster = roster
        self.teacher_id = teacher_id
        self.state = CLASS_SELECTION
        self.class_id: str | None = None
        self.draft = Activity()
        self._pending: asyncio.Future | None = None
        self._generation_token = 0
        self._resume_state: str | None = None

    @property
    def is_generating(self) -> bool:
        return self.state == GENERATING

    def bind(self, gateway: ContentGateway, roster: RosterRepository) -> "AuthoringWizard":
        """Use the collaborators of the current request for subsequent calls."""
        self.gateway = gateway
        self.roster = roster
        return self

    # -- state machine ---------------------------------------------------------

    def _check_guard(self, guard: str) -> bool:
        if guard == "always":
            return True
        if guard == "has_class":
            return bool(self.class_id)
        return False

    def _transition(self, target: str) -> None:
        key = (self.state, target)
        guard_name = TRANSITIONS.get(key)
        if guard_name is None:
            if self.state == GENERATING:
                raise InvalidTransitionError("Content generation is in progress")
            raise InvalidTransitionError(f"Cannot go from '{self.state}' to '{target}'")
        if not self._check_guard(guard_name):
            raise InvalidTransitionError(
                f"Guard '{guard_name}' failed for transition '{self.state}' → '{target}'"
            )
        logger.debug("Wizard %s: %s → %s", self.id, self.state, target)
        self.state = target

    def _require_editing(self) -> None:
        if self.state == GENERATING:
            raise InvalidTransitionError("Content generation is in progress")
        if self.state not in EDITING_STATES:
            raise InvalidTransitionError(f"The draft cannot be edited in state '{self.state}'")

    def _reset(self) -> None:
        self.state = CLASS_SELECTION
        self.class_id = None
        self.draft = Activity()
        self._resume_state = None

    # -- class and mode selection ----------------------------------------------

    async def select_class(self, class_id: str) -> None:
        if not class_id or not class_id.strip():
            raise ValidationError({"class_id": "Select a class first"})
        if self.state not in (CLASS_SELECTION, MODE_SELECTION):
            raise InvalidTransitionError(f"Cannot change class in state '{self.state}'")
        if not await self.roster.class_exists(class_id):
            raise ValidationError({"class_id": f"Unknown class '{class_id}'"})
        self.class_id = class_id
        self._transition(MODE_SELECTION)

    def choose_mode(self, mode: CreationMode) -> None:
        if mode not in MODE_STATES:
            raise ValidationError({"mode": f"Unknown creation mode '{mode}'"})
        if self.state != MODE_SELECTION:
            raise InvalidTransitionError(f"Cannot choose a creation mode in state '{self.state}'")
        self._transition(MODE_STATES[mode])

    def apply_template(self, template_id: str) -> Activity:
        template = get_template(template_id)
        if template is None:
            raise ValidationError({"template_id": f"Unknown template '{template_id}'"})
        self._transition(TEMPLATE_ENTRY)
        self.draft = self.draft.model_copy(update={
            "title": template.title,
            "type": template.type,
            "description": template.description,
            "instructions": template.instructions,
            "questions": [],
            "origin": "template",
            "ai_context": None,
        })
        logger.info("Wizard %s applied template %s", self.id, template_id)
        return self.draft

    # -- gateway calls ---------------------------------------------------------

    async def _await_generation(self, token: int, call: Awaitable) -> Any | None:
        task = asyncio.ensure_future(call)
        self._pending = task
        try:
            await asyncio.wait({task})
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            if self._pending is task:
                self._pending = None

        if task.cancelled() or token != self._generation_token:
            if not task.cancelled():
                # Consume the outcome so a late failure is not reported as unhandled
                task.exception()
            logger.info("Wizard %s discarded the result of an abandoned generation", self.id)
            return None
        return task.result()

    async def _generate(self, kind: str, brief: str, options: GenerationOptions | None, success_state: str):
        previous = self.state
        self._transition(GENERATING)
        self._resume_state = previous
        self._generation_token += 1
        token = self._generation_token
        try:
            result = await self._await_generation(
                token, self.gateway.generate_content(brief, kind, options)
            )
        except BaseException:
            if token == self._generation_token:
                self._transition(previous)
            raise
        if result is None:
            return None
        self._transition(success_state)
        return result

    async def generate_activity(self, brief: str, options: GenerationOptions | None = None) -> Activity | None:
        """Replace the draft with an AI-generated activity.

        Returns the new draft, or None when the call was abandoned while in flight.
        Raises GenerationFailure (draft unchanged) when the service fails.
        """
        draft: ActivityDraft | None = await self._generate("activity", brief, options, AI_BRIEF)
        if draft is None:
            return None
        self.draft = self.draft.model_copy(update={
            "type": draft.type,
            "title": draft.title,
            "description": draft.description,
            "instructions": draft.instructions,
            "max_grade": draft.max_grade,
            "questions": [q.model_copy() for q in draft.questions],
            "due_date": date.today() + timedelta(days=settings.ai_due_date_offset_days),
            "origin": "ai-generated",
            "ai_context": draft.ai_context,
        })
        logger.info(
            "Wizard %s applied AI draft (%s, %d questions)", self.id, draft.type, len(draft.questions)
        )
        return self.draft

    async def generate_questions(
        self,
        brief: str,
        question_types: set[QuestionType],
        count: int | None = None,
        difficulty: str | None = None,
        replace: bool = False,
    ) -> list[Question] | None:
        self._require_editing()
        try:
            options = GenerationOptions(question_types=question_types, count=count, difficulty=difficulty)
        except pydantic.ValidationError as e:
            raise _field_errors(e) from e
        result: QuestionDraftSet | None = await self._generate("questions", brief, options, self.state)
        if result is None:
            return None
        questions = [q.model_copy() for q in result.questions]
        self.draft.questions = questions if replace else [*self.draft.questions, *questions]
        logger.info("Wizard %s received %d generated questions", self.id, len(questions))
        return questions

    def abandon_generation(self) -> None:
        """Stop waiting for the in-flight gateway call and keep the draft as it was."""
        if self.state != GENERATING:
            raise InvalidTransitionError("No content generation in progress")
        self._generation_token += 1
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._transition(self._resume_state or MODE_SELECTION)

    def cancel(self) -> None:
        """Discard the whole session; nothing is emitted."""
        self._generation_token += 1
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        logger.info("Wizard %s cancelled in state %s", self.id, self.state)
        self._reset()

    # -- draft editing ---------------------------------------------------------

    def update_draft(self, **fields: Any) -> Activity:
        self._require_editing()
        unknown = set(fields) - DRAFT_FIELDS
        if unknown:
            raise ValidationError({name: "Field cannot be edited" for name in sorted(unknown)})
        try:
            self.draft = Activity.model_validate({**self.draft.model_dump(), **fields})
        except pydantic.ValidationError as e:
            raise _field_errors(e) from e
        return self.draft

    def _question_index(self, question_id: str) -> int:
        for index, question in enumerate(self.draft.questions):
            if question.id == question_id:
                return index
        raise ValidationError({"question_id": f"Unknown question '{question_id}'"})

    def add_question(self, question_type: QuestionType = "multiple-choice") -> Question:
        self._require_editing()
        question = blank_question(question_type)
        self.draft.questions.append(question)
        return question

    def edit_question(self, question_id: str, **fields: Any) -> Question:
        self._require_editing()
        index = self._question_index(question_id)
        unknown = set(fields) - QUESTION_FIELDS
        if unknown:
            raise ValidationError({
                f"questions.{index}.{name}": "Field cannot be edited" for name in sorted(unknown)
            })
        current = self.draft.questions[index]
        try:
            question = Question.model_validate({**current.model_dump(), **fields})
        except pydantic.ValidationError as e:
            raise _field_errors(e, prefix=f"questions.{index}.") from e
        if question.type != current.type:
            question = normalize_question(question)
        self.draft.questions[index] = question
        return question

    def remove_question(self, question_id: str) -> None:
        self._require_editing()
        del self.draft.questions[self._question_index(question_id)]

    def duplicate_question(self, question_id: str) -> Question:
        self._require_editing()
        index = self._question_index(question_id)
        source = self.draft.questions[index]
        copy = source.model_copy(update={"id": new_id(), "prompt": f"{source.prompt} (cópia)"}, deep=True)
        self.draft.questions.append(copy)
        return copy

    def move_question(self, question_id: str, direction: Literal["up", "down"]) -> list[Question]:
        self._require_editing()
        if direction not in ("up", "down"):
            raise ValidationError({"direction": "Direction must be 'up' or 'down'"})
        index = self._question_index(question_id)
        questions = self.draft.questions
        if direction == "up" and index > 0:
            questions[index - 1], questions[index] = questions[index], questions[index - 1]
        elif direction == "down" and index < len(questions) - 1:
            questions[index + 1], questions[index] = questions[index], questions[index + 1]
        return questions

    # -- commit ----------------------------------------------------------------

    async def submit(self) -> Activity:
        """Validate the draft and hand it to the roster.

        Stays in review on ValidationError or RosterError so the work is not lost.
        """
        if self.state != REVIEW:
            self._require_editing()
            self._transition(REVIEW)

        activity = self.draft.model_copy(deep=True)
        activity.questions = [
            q.model_copy(update={"correct_answer": None}) if q.type == "essay" else q
            for q in activity.questions
        ]
        if activity.origin != "ai-generated":
            activity.ai_context = None

        try:
            validate_activity_with_questions(activity)
        except ValidationError as e:
            logger.info("Wizard %s draft rejected: %s", self.id, ", ".join(e.fields))
            raise

        activity_id = await self.roster.submit_activity(self.class_id, activity)
        activity.id = activity_id

        self._transition(COMMITTED)
        logger.info(
            "Wizard %s committed activity %s (%s) to class %s",
            self.id, activity_id, activity.origin, self.class_id,
        )
        self._transition(CLASS_SELECTION)
        self._reset()
        return activity
