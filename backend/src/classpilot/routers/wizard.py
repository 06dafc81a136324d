from fastapi import APIRouter, Depends, HTTPException

from classpilot.auth.dependencies import Teacher, get_current_teacher, get_gateway, get_roster
from classpilot.schemas.activity import Activity
from classpilot.schemas.generation import GenerationOptions
from classpilot.schemas.question import Question
from classpilot.schemas.wizard import (
    ActivityBriefRequest,
    ApplyTemplateRequest,
    ChooseModeRequest,
    DraftUpdateRequest,
    MoveQuestionRequest,
    QuestionCreateRequest,
    QuestionGenerateRequest,
    QuestionUpdateRequest,
    SelectClassRequest,
    WizardResponse,
)
from classpilot.services.authoring import AuthoringWizard
from classpilot.services.gateway import ContentGateway
from classpilot.services.roster import RosterRepository
from classpilot.services.wizard_sessions import close_session, get_session, open_session

router = APIRouter(prefix="/api/wizard", tags=["wizard"])


def _response(wizard: AuthoringWizard) -> WizardResponse:
    return WizardResponse(
        id=wizard.id,
        state=wizard.state,
        class_id=wizard.class_id,
        is_generating=wizard.is_generating,
        draft=wizard.draft,
    )


async def get_wizard(
    session_id: str,
    teacher: Teacher = Depends(get_current_teacher),
    gateway: ContentGateway = Depends(get_gateway),
    roster: RosterRepository = Depends(get_roster),
) -> AuthoringWizard:
    wizard = get_session(session_id)
    # Sessions are private to the teacher who opened them
    if wizard is None or wizard.teacher_id != teacher.id:
        raise HTTPException(status_code=404, detail="Wizard session not found")
    return wizard.bind(gateway, roster)


@router.post("", response_model=WizardResponse, status_code=201)
async def start_wizard(
    teacher: Teacher = Depends(get_current_teacher),
    gateway: ContentGateway = Depends(get_gateway),
    roster: RosterRepository = Depends(get_roster),
):
    wizard = open_session(AuthoringWizard(gateway, roster, teacher_id=teacher.id))
    return _response(wizard)


@router.get("/{session_id}", response_model=WizardResponse)
async def get_wizard_state(wizard: AuthoringWizard = Depends(get_wizard)):
    return _response(wizard)


@router.delete("/{session_id}", status_code=204)
async def cancel_wizard(wizard: AuthoringWizard = Depends(get_wizard)):
    close_session(wizard.id)


@router.post("/{session_id}/class", response_model=WizardResponse)
async def select_class(req: SelectClassRequest, wizard: AuthoringWizard = Depends(get_wizard)):
    await wizard.select_class(req.class_id)
    return _response(wizard)


@router.post("/{session_id}/mode", response_model=WizardResponse)
async def choose_mode(req: ChooseModeRequest, wizard: AuthoringWizard = Depends(get_wizard)):
    wizard.choose_mode(req.mode)
    return _response(wizard)


@router.post("/{session_id}/template", response_model=WizardResponse)
async def apply_template(req: ApplyTemplateRequest, wizard: AuthoringWizard = Depends(get_wizard)):
    wizard.apply_template(req.template_id)
    return _response(wizard)


@router.post("/{session_id}/generate", response_model=WizardResponse)
async def generate_activity(req: ActivityBriefRequest, wizard: AuthoringWizard = Depends(get_wizard)):
    options = GenerationOptions(
        question_types=req.question_types, count=req.count, difficulty=req.difficulty
    )
    await wizard.generate_activity(req.brief, options)
    return _response(wizard)


@router.delete("/{session_id}/generate", response_model=WizardResponse)
async def abandon_generation(wizard: AuthoringWizard = Depends(get_wizard)):
    wizard.abandon_generation()
    return _response(wizard)


@router.patch("/{session_id}/draft", response_model=WizardResponse)
async def update_draft(req: DraftUpdateRequest, wizard: AuthoringWizard = Depends(get_wizard)):
    wizard.update_draft(**req.model_dump(exclude_unset=True))
    return _response(wizard)


@router.post("/{session_id}/questions/generate", response_model=list[Question])
async def generate_questions(req: QuestionGenerateRequest, wizard: AuthoringWizard = Depends(get_wizard)):
    questions = await wizard.generate_questions(
        req.brief,
        req.question_types,
        count=req.count,
        difficulty=req.difficulty,
        replace=req.replace,
    )
    return questions or []


@router.post("/{session_id}/questions", response_model=Question, status_code=201)
async def add_question(req: QuestionCreateRequest, wizard: AuthoringWizard = Depends(get_wizard)):
    return wizard.add_question(req.type)


@router.patch("/{session_id}/questions/{question_id}", response_model=Question)
async def edit_question(
    question_id: str,
    req: QuestionUpdateRequest,
    wizard: AuthoringWizard = Depends(get_wizard),
):
    return wizard.edit_question(question_id, **req.model_dump(exclude_unset=True))


@router.delete("/{session_id}/questions/{question_id}", status_code=204)
async def remove_question(question_id: str, wizard: AuthoringWizard = Depends(get_wizard)):
    wizard.remove_question(question_id)


@router.post("/{session_id}/questions/{question_id}/duplicate", response_model=Question, status_code=201)
async def duplicate_question(question_id: str, wizard: AuthoringWizard = Depends(get_wizard)):
    return wizard.duplicate_question(question_id)


@router.post("/{session_id}/questions/{question_id}/move", response_model=list[Question])
async def move_question(
    question_id: str,
    req: MoveQuestionRequest,
    wizard: AuthoringWizard = Depends(get_wizard),
):
    return wizard.move_question(question_id, req.direction)


@router.post("/{session_id}/submit", response_model=Activity, status_code=201)
async def submit_activity(wizard: AuthoringWizard = Depends(get_wizard)):
    return await wizard.submit()
