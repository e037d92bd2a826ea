from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from ..onboarding.actions import (
    complete_onboarding,
    get_assistant_options,
    navigate_to_step,
    persist_step,
    reset_onboarding,
    select_assistant,
    select_persona,
)
from ..onboarding.errors import UnknownStepError
from ..onboarding.guard import can_access_step, current_step, load_active_user, next_allowed_step
from ..onboarding.steps import step_for_route_segment, step_href
from ..db import OnboardingStep
from ..schemas.onboarding import (
    AssistantOptionSchema,
    AssistantSelection,
    CompletionSchema,
    NavigationSchema,
    OnboardingStateSchema,
    PersistedStepSchema,
    PersonaSelection,
    StatusResponse,
    StepAccessSchema,
    StepRequest,
    StepTransitionSchema,
)
from ..services.onboarding_events import onboarding_status
from ..session_auth import require_user_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/onboarding")


def _parse_step(value: str) -> OnboardingStep:
    step = step_for_route_segment(value)
    if step is None:
        raise UnknownStepError(value)
    return step


@router.get("/state", response_model=OnboardingStateSchema)
async def get_state(user_id: int = Depends(require_user_id)) -> OnboardingStateSchema:
    state = await load_active_user(user_id, require_incomplete=False)
    step = current_step(state)
    return OnboardingStateSchema(
        userId=state.user_id,
        name=state.name,
        assistantId=state.assistant_id,
        assistantPersona=state.assistant_persona,
        skillLevel=state.skill_level,
        onboardingStep=state.onboarding_step,
        completedAt=state.onboarding_completed_at,
        currentStep=step,
        currentHref=step_href(step),
    )


@router.get("/steps/{segment}", response_model=StepAccessSchema, response_model_exclude_none=True)
async def get_step_access(segment: str, user_id: int = Depends(require_user_id)) -> StepAccessSchema:
    step = _parse_step(segment)
    state = await load_active_user(user_id)
    if can_access_step(state, step):
        return StepAccessSchema(step=step, allowed=True)
    redirect = step_href(next_allowed_step(state))
    logger.info("User %s redirected from %s to %s", user_id, step.value, redirect)
    return StepAccessSchema(step=step, allowed=False, redirect=redirect)


@router.get("/status", response_model=StatusResponse)
async def get_status(user_id: int = Depends(require_user_id)) -> StatusResponse:
    completed, step, missing = await onboarding_status(user_id)
    return StatusResponse(completed=completed, step=step, missing=missing)


@router.get("/assistants", response_model=list[AssistantOptionSchema])
async def list_assistants() -> list[AssistantOptionSchema]:
    options = await get_assistant_options()
    return [AssistantOptionSchema.model_validate(option) for option in options]


@router.post("/assistant", response_model=StepTransitionSchema)
async def post_assistant(
    data: AssistantSelection, user_id: int = Depends(require_user_id)
) -> StepTransitionSchema:
    result = await select_assistant(user_id, data.assistantId)
    return StepTransitionSchema(nextStep=result.next_step, nextHref=result.next_href)


@router.post("/persona", response_model=StepTransitionSchema)
async def post_persona(
    data: PersonaSelection, user_id: int = Depends(require_user_id)
) -> StepTransitionSchema:
    result = await select_persona(user_id, data.persona)
    return StepTransitionSchema(nextStep=result.next_step, nextHref=result.next_href)


@router.post("/complete", response_model=CompletionSchema)
async def post_complete(user_id: int = Depends(require_user_id)) -> CompletionSchema:
    result = await complete_onboarding(user_id)
    return CompletionSchema(completed=result.completed, redirectTo=result.redirect_to)


@router.post("/reset", response_model=StepTransitionSchema)
async def post_reset(user_id: int = Depends(require_user_id)) -> StepTransitionSchema:
    result = await reset_onboarding(user_id)
    return StepTransitionSchema(nextStep=result.next_step, nextHref=result.next_href)


@router.post("/navigate", response_model=NavigationSchema)
async def post_navigate(data: StepRequest, user_id: int = Depends(require_user_id)) -> NavigationSchema:
    result = await navigate_to_step(user_id, _parse_step(data.step))
    return NavigationSchema(allowed=result.allowed, nextHref=result.next_href)


@router.post("/step", response_model=PersistedStepSchema)
async def post_step(data: StepRequest, user_id: int = Depends(require_user_id)) -> PersistedStepSchema:
    stored = await persist_step(user_id, _parse_step(data.step))
    return PersistedStepSchema(step=stored)
