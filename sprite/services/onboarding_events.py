from __future__ import annotations

import logging

import sqlalchemy as sa
from sqlalchemy.orm import Session

from ..db import SessionLocal, run_db
from ..models.onboarding_event import OnboardingEvent
from ..onboarding.guard import STEP_RULES, OnboardingSnapshot, ensure_active, load_snapshot, resolve_step
from ..onboarding.steps import ONBOARDING_STEPS
from ..repository import commit

logger = logging.getLogger(__name__)

__all__ = ["list_onboarding_events", "log_onboarding_event", "missing_steps", "onboarding_status"]


def log_onboarding_event(
    session: Session,
    user_id: int,
    event: str,
    step: str | None = None,
    meta: dict[str, object] | None = None,
    variant: str | None = None,
) -> None:
    """Persist an onboarding analytics event.

    Pending changes on ``session`` are committed together with the event.
    """

    event_row = OnboardingEvent(
        user_id=user_id,
        event=event,
        step=step,
        meta_json=dict(meta) if meta is not None else None,
        variant=variant,
    )
    session.add(event_row)
    commit(session)
    logger.info("Onboarding event %s for user %s (step=%s)", event, user_id, step)


def missing_steps(state: OnboardingSnapshot) -> list[str]:
    """Steps whose field is still unset, in canonical order."""

    missing: list[str] = []
    for definition in ONBOARDING_STEPS:
        rule = STEP_RULES[definition.id]
        if rule.sets is not None and getattr(state, rule.sets) is None:
            missing.append(definition.id.value)
    return missing


async def onboarding_status(user_id: int) -> tuple[bool, str | None, list[str]]:
    """Return ``(completed, step, missing)`` for ``user_id``."""

    snapshot = await run_db(load_snapshot, user_id, sessionmaker=SessionLocal)
    state = ensure_active(snapshot, user_id, require_incomplete=False)
    if state.completed:
        return True, None, []
    return False, resolve_step(state).value, missing_steps(state)


async def list_onboarding_events(user_id: int, limit: int = 50) -> list[OnboardingEvent]:
    def _list(session: Session) -> list[OnboardingEvent]:
        return list(
            session.scalars(
                sa.select(OnboardingEvent)
                .where(OnboardingEvent.user_id == user_id)
                .order_by(OnboardingEvent.ts.desc(), OnboardingEvent.id.desc())
                .limit(limit)
            )
        )

    return await run_db(_list, sessionmaker=SessionLocal)
