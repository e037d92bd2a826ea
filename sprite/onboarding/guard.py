"""Onboarding access rules.

A single rule table keyed by step drives both the access check used when a
user opens a step and the default step a bare ``/onboarding`` visit
resolves to.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Literal, cast

from ..db import AssistantPersona, OnboardingStep, SessionLocal, SkillLevel, User, run_db
from ..types import SessionProtocol
from .errors import AlreadyCompleted, Unauthenticated
from .steps import LAST_STEP, ONBOARDING_STEPS, coerce_step, step_index

logger = logging.getLogger(__name__)

StateField = Literal["assistant_id", "assistant_persona", "onboarding_completed_at"]


@dataclass(frozen=True)
class OnboardingSnapshot:
    """Onboarding fields of a user row, detached from the session."""

    user_id: int
    name: str
    assistant_id: int | None
    assistant_persona: AssistantPersona | None
    skill_level: SkillLevel
    onboarding_step: OnboardingStep | None
    onboarding_completed_at: datetime | None

    @classmethod
    def from_user(cls, user: User) -> OnboardingSnapshot:
        return cls(
            user_id=user.id,
            name=user.name,
            assistant_id=user.assistant_id,
            assistant_persona=user.assistant_persona,
            skill_level=user.skill_level or SkillLevel.BEGINNER,
            onboarding_step=user.onboarding_step,
            onboarding_completed_at=user.onboarding_completed_at,
        )

    @property
    def completed(self) -> bool:
        return self.onboarding_completed_at is not None


@dataclass(frozen=True)
class StepRule:
    requires: tuple[StateField, ...] = ()
    sets: StateField | None = None
    # Optional steps are only resolved to when the checkpoint points at them.
    optional: bool = False


STEP_RULES: dict[OnboardingStep, StepRule] = {
    OnboardingStep.WELCOME: StepRule(),
    OnboardingStep.GENDER: StepRule(sets="assistant_id"),
    OnboardingStep.SKILL_QUIZ: StepRule(requires=("assistant_id",), optional=True),
    OnboardingStep.PERSONA: StepRule(requires=("assistant_id",), sets="assistant_persona"),
    OnboardingStep.GUIDED_INTRO: StepRule(
        requires=("assistant_id", "assistant_persona"),
        sets="onboarding_completed_at",
    ),
}


def prerequisites_met(state: OnboardingSnapshot, target: OnboardingStep | str) -> bool:
    rule = STEP_RULES[coerce_step(target)]
    return all(getattr(state, name) is not None for name in rule.requires)


def resolve_step(state: OnboardingSnapshot) -> OnboardingStep:
    """Return the step a user lands on when visiting onboarding without a target."""

    pending: OnboardingStep | None = None
    for definition in ONBOARDING_STEPS:
        step = definition.id
        rule = STEP_RULES[step]
        if rule.sets is None:
            if rule.optional and state.onboarding_step == step and prerequisites_met(state, step):
                pending = step
            continue
        # The last step's field marks completion, not progress.
        if step is LAST_STEP:
            break
        if getattr(state, rule.sets) is None:
            return pending or step
    return LAST_STEP


next_allowed_step = resolve_step


def current_step(state: OnboardingSnapshot) -> OnboardingStep:
    # A null checkpoint is derived from progress to avoid redirect loops.
    return state.onboarding_step or resolve_step(state)


def can_access_step(state: OnboardingSnapshot, target: OnboardingStep | str) -> bool:
    """Whether ``target`` may be opened given the persisted state.

    Steps at or before the current one are always revisitable; the step
    right after it is reachable once its prerequisites are met.
    """

    target_idx = step_index(target)
    current_idx = step_index(current_step(state))
    if target_idx <= current_idx:
        return True
    return target_idx == current_idx + 1 and prerequisites_met(state, target)


def load_snapshot(session: SessionProtocol, user_id: int) -> OnboardingSnapshot | None:
    user = cast(User | None, session.get(User, user_id))
    if user is None:
        return None
    return OnboardingSnapshot.from_user(user)


def ensure_active(
    snapshot: OnboardingSnapshot | None,
    user_id: int,
    *,
    require_incomplete: bool = True,
) -> OnboardingSnapshot:
    if snapshot is None:
        logger.warning("Session user %s has no account row", user_id)
        raise Unauthenticated("User not found")
    if require_incomplete and snapshot.completed:
        raise AlreadyCompleted()
    return snapshot


async def load_active_user(
    user_id: int | None,
    *,
    require_incomplete: bool = True,
) -> OnboardingSnapshot:
    """Load the onboarding state of the session user.

    Raises
    ------
    Unauthenticated
        If there is no session user or the account row is gone.
    AlreadyCompleted
        If onboarding has finished and ``require_incomplete`` is set.
    """

    if user_id is None:
        raise Unauthenticated()
    snapshot = await run_db(load_snapshot, user_id, sessionmaker=SessionLocal)
    return ensure_active(snapshot, user_id, require_incomplete=require_incomplete)


__all__ = [
    "OnboardingSnapshot",
    "STEP_RULES",
    "StepRule",
    "can_access_step",
    "current_step",
    "ensure_active",
    "load_active_user",
    "load_snapshot",
    "next_allowed_step",
    "prerequisites_met",
    "resolve_step",
]
