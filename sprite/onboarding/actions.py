"""Step-transition actions for the onboarding flow.

Every mutating action loads the session user, checks onboarding is still
active, validates its input, persists the new field together with the next
checkpoint and then revalidates cached onboarding views.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import cast

import sqlalchemy as sa
from sqlalchemy.orm import Session

from ..db import Assistant, AssistantGender, AssistantPersona, OnboardingStep, SessionLocal, SkillLevel, User, run_db
from ..repository import commit
from ..services.onboarding_events import log_onboarding_event
from .cache import revalidate_path
from .errors import HOME_REDIRECT, AssistantNotFound, PrerequisiteNotMet, Unauthenticated
from .guard import (
    OnboardingSnapshot,
    can_access_step,
    current_step,
    ensure_active,
    load_active_user,
)
from .steps import FIRST_STEP, ONBOARDING_BASE_PATH, coerce_step, step_href, step_index

logger = logging.getLogger(__name__)

__all__ = [
    "AssistantOption",
    "CompletionResult",
    "NavigationResult",
    "StepTransition",
    "complete_onboarding",
    "get_assistant_options",
    "navigate_to_step",
    "persist_step",
    "reset_onboarding",
    "select_assistant",
    "select_persona",
]


@dataclass(frozen=True)
class StepTransition:
    next_step: OnboardingStep
    next_href: str


@dataclass(frozen=True)
class CompletionResult:
    completed: bool
    redirect_to: str


@dataclass(frozen=True)
class NavigationResult:
    allowed: bool
    next_href: str


@dataclass(frozen=True)
class AssistantOption:
    id: int
    name: str
    slug: str
    gender: AssistantGender | None
    avatar_url: str | None
    tagline: str | None
    description: str | None


def _require_user_id(user_id: int | None) -> int:
    if user_id is None:
        raise Unauthenticated()
    return user_id


def _active_user(session: Session, user_id: int, *, require_incomplete: bool = True) -> User:
    user = cast(User | None, session.get(User, user_id))
    ensure_active(
        OnboardingSnapshot.from_user(user) if user is not None else None,
        user_id,
        require_incomplete=require_incomplete,
    )
    return cast(User, user)


async def get_assistant_options() -> list[AssistantOption]:
    """Return selectable assistants ordered by name."""

    def _list(session: Session) -> list[AssistantOption]:
        rows = session.scalars(sa.select(Assistant).order_by(Assistant.name.asc(), Assistant.id.asc()))
        return [
            AssistantOption(
                id=row.id,
                name=row.name,
                slug=row.slug,
                gender=row.gender,
                avatar_url=row.avatar_url,
                tagline=row.tagline,
                description=row.description,
            )
            for row in rows
        ]

    return await run_db(_list, sessionmaker=SessionLocal)


async def select_assistant(user_id: int | None, assistant_id: int) -> StepTransition:
    uid = _require_user_id(user_id)

    def _select(session: Session) -> None:
        user = _active_user(session, uid)
        if session.get(Assistant, assistant_id) is None:
            logger.error("Assistant %s requested by user %s does not exist", assistant_id, uid)
            raise AssistantNotFound(assistant_id)
        user.assistant_id = assistant_id
        # Reselecting later in the flow keeps the further checkpoint.
        if user.onboarding_step is None or step_index(user.onboarding_step) < step_index(OnboardingStep.SKILL_QUIZ):
            user.onboarding_step = OnboardingStep.SKILL_QUIZ
        user.onboarding_completed_at = None
        log_onboarding_event(
            session,
            uid,
            "assistant_selected",
            step=OnboardingStep.GENDER.value,
            meta={"assistant_id": assistant_id},
        )

    await run_db(_select, sessionmaker=SessionLocal)
    revalidate_path(ONBOARDING_BASE_PATH)
    return StepTransition(OnboardingStep.SKILL_QUIZ, step_href(OnboardingStep.SKILL_QUIZ))


async def select_persona(user_id: int | None, persona: AssistantPersona | str) -> StepTransition:
    uid = _require_user_id(user_id)
    tone = AssistantPersona(persona)

    def _select(session: Session) -> None:
        user = _active_user(session, uid)
        if user.assistant_id is None:
            raise PrerequisiteNotMet("Select an assistant before choosing a persona")
        user.assistant_persona = tone
        user.onboarding_step = OnboardingStep.GUIDED_INTRO
        log_onboarding_event(
            session,
            uid,
            "persona_selected",
            step=OnboardingStep.PERSONA.value,
            meta={"persona": tone.value},
        )

    await run_db(_select, sessionmaker=SessionLocal)
    revalidate_path(ONBOARDING_BASE_PATH)
    return StepTransition(OnboardingStep.GUIDED_INTRO, step_href(OnboardingStep.GUIDED_INTRO))


async def complete_onboarding(user_id: int | None) -> CompletionResult:
    uid = _require_user_id(user_id)

    def _complete(session: Session) -> None:
        user = _active_user(session, uid)
        if user.assistant_id is None or user.assistant_persona is None:
            raise PrerequisiteNotMet("Complete all onboarding steps before finishing")
        started = user.created_at
        now = datetime.now(timezone.utc)
        user.onboarding_completed_at = now
        user.onboarding_step = None
        meta: dict[str, object] = {}
        if started is not None:
            if started.tzinfo is None:
                started = started.replace(tzinfo=timezone.utc)
            meta["duration_sec"] = max(int((now - started).total_seconds()), 0)
        log_onboarding_event(
            session,
            uid,
            "onboarding_completed",
            step=OnboardingStep.GUIDED_INTRO.value,
            meta=meta,
        )

    await run_db(_complete, sessionmaker=SessionLocal)
    revalidate_path(ONBOARDING_BASE_PATH)
    revalidate_path(HOME_REDIRECT)
    return CompletionResult(completed=True, redirect_to=HOME_REDIRECT)


async def reset_onboarding(user_id: int | None) -> StepTransition:
    """Clear all onboarding progress and restart at the first step."""

    uid = _require_user_id(user_id)

    def _reset(session: Session) -> None:
        user = _active_user(session, uid, require_incomplete=False)
        user.assistant_id = None
        user.assistant_persona = None
        user.skill_level = SkillLevel.BEGINNER
        user.onboarding_completed_at = None
        user.onboarding_step = FIRST_STEP
        log_onboarding_event(session, uid, "onboarding_restarted", step=FIRST_STEP.value)

    await run_db(_reset, sessionmaker=SessionLocal)
    revalidate_path(ONBOARDING_BASE_PATH)
    return StepTransition(OnboardingStep.GENDER, step_href(OnboardingStep.GENDER))


async def persist_step(user_id: int | None, step: OnboardingStep | str) -> OnboardingStep:
    """Save ``step`` as the checkpoint if the guard allows it.

    Checkpoints only move forward; revisiting an earlier step leaves the
    stored one untouched. Returns the stored checkpoint.
    """

    uid = _require_user_id(user_id)
    target = coerce_step(step)

    def _persist(session: Session) -> OnboardingStep:
        user = _active_user(session, uid)
        state = OnboardingSnapshot.from_user(user)
        if not can_access_step(state, target):
            raise PrerequisiteNotMet(f"Cannot move to {target.value} yet")
        stored = current_step(state)
        if user.onboarding_step is None or step_index(target) > step_index(stored):
            user.onboarding_step = target
            commit(session)
            return target
        return stored

    stored = await run_db(_persist, sessionmaker=SessionLocal)
    revalidate_path(ONBOARDING_BASE_PATH)
    return stored


async def navigate_to_step(user_id: int | None, target: OnboardingStep | str) -> NavigationResult:
    """Check a navigation request without writing anything."""

    state = await load_active_user(user_id)
    step = coerce_step(target)
    if not can_access_step(state, step):
        if step_index(step) > step_index(current_step(state)) + 1:
            raise PrerequisiteNotMet("Cannot skip ahead in onboarding")
        raise PrerequisiteNotMet("Please complete previous steps first")
    return NavigationResult(allowed=True, next_href=step_href(step))
