from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

import sqlalchemy as sa
from sqlalchemy import TIMESTAMP, BigInteger, ForeignKey, Integer
from sqlalchemy.orm import Mapped, mapped_column

from ..db import Base


class ActivityEventType(str, Enum):
    LESSON_STARTED = "lesson_started"
    LESSON_PROGRESSED = "lesson_progressed"
    LESSON_COMPLETED = "lesson_completed"
    QUIZ_STARTED = "quiz_started"
    QUIZ_SUBMITTED = "quiz_submitted"
    QUIZ_PERFECT = "quiz_perfect"
    ACHIEVEMENT_UNLOCKED = "achievement_unlocked"
    LEVEL_UP = "level_up"
    GOAL_MET = "goal_met"


class ActivityEvent(Base):
    """Append-only ledger row for gamification points."""

    __tablename__ = "activity_events"
    __table_args__ = (sa.Index("ix_activity_events__user_time", "user_id", "occurred_at"),)

    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True
    )
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    event_type: Mapped[ActivityEventType] = mapped_column(
        sa.Enum(
            ActivityEventType,
            name="activity_event_type",
            values_callable=lambda e: [i.value for i in e],
        ),
        nullable=False,
    )
    occurred_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()
    )
    points_delta: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")

    # Lessons and achievements live outside this service; keep plain ids.
    lesson_id: Mapped[Optional[int]] = mapped_column(Integer)
    quiz_id: Mapped[Optional[int]] = mapped_column(ForeignKey("quizzes.id", ondelete="SET NULL"), index=True)
    quiz_attempt_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("quiz_attempts.id", ondelete="SET NULL"), index=True
    )
    achievement_id: Mapped[Optional[int]] = mapped_column(Integer)


__all__ = ["ActivityEvent", "ActivityEventType"]
