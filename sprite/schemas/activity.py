from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ..models.activity_event import ActivityEventType


class ActivityEventSchema(BaseModel):
    id: int
    eventType: ActivityEventType = Field(validation_alias="event_type")
    occurredAt: Optional[datetime] = Field(default=None, validation_alias="occurred_at")
    pointsDelta: int = Field(validation_alias="points_delta")
    quizId: Optional[int] = Field(default=None, validation_alias="quiz_id")

    model_config = ConfigDict(from_attributes=True)


class PointsResponse(BaseModel):
    total: int
    recent: list[ActivityEventSchema]
