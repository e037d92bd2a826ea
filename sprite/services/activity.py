"""Gamification ledger writes and reads."""

from __future__ import annotations

import logging

import sqlalchemy as sa
from sqlalchemy.orm import Session

from ..db import SessionLocal, run_db
from ..models.activity_event import ActivityEvent, ActivityEventType

logger = logging.getLogger(__name__)

__all__ = ["get_recent_activity", "get_total_points", "insert_activity_event"]


def insert_activity_event(
    session: Session,
    user_id: int,
    event_type: ActivityEventType,
    points_delta: int = 0,
    *,
    lesson_id: int | None = None,
    quiz_id: int | None = None,
    quiz_attempt_id: int | None = None,
    achievement_id: int | None = None,
) -> ActivityEvent:
    """Stage an :class:`ActivityEvent`; the caller owns the transaction."""

    event = ActivityEvent(
        user_id=user_id,
        event_type=event_type,
        points_delta=points_delta,
        lesson_id=lesson_id,
        quiz_id=quiz_id,
        quiz_attempt_id=quiz_attempt_id,
        achievement_id=achievement_id,
    )
    session.add(event)
    logger.debug("Activity %s (%+d) staged for user %s", event_type.value, points_delta, user_id)
    return event


async def get_total_points(user_id: int) -> int:
    def _sum(session: Session) -> int:
        total = session.execute(
            sa.select(sa.func.coalesce(sa.func.sum(ActivityEvent.points_delta), 0)).where(
                ActivityEvent.user_id == user_id
            )
        ).scalar_one()
        return int(total)

    return await run_db(_sum, sessionmaker=SessionLocal)


async def get_recent_activity(user_id: int, limit: int = 20) -> list[ActivityEvent]:
    def _recent(session: Session) -> list[ActivityEvent]:
        return list(
            session.scalars(
                sa.select(ActivityEvent)
                .where(ActivityEvent.user_id == user_id)
                .order_by(ActivityEvent.occurred_at.desc(), ActivityEvent.id.desc())
                .limit(limit)
            )
        )

    return await run_db(_recent, sessionmaker=SessionLocal)
