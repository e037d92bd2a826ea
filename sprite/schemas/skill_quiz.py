from __future__ import annotations

from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from ..db import SkillLevel


class SkillQuizOptionSchema(BaseModel):
    id: int
    text: str
    orderIndex: int = Field(alias="orderIndex", validation_alias=AliasChoices("orderIndex", "order_index"))

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class SkillQuizQuestionSchema(BaseModel):
    id: int
    text: str
    orderIndex: int = Field(alias="orderIndex", validation_alias=AliasChoices("orderIndex", "order_index"))
    options: list[SkillQuizOptionSchema]

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class AnswerPayload(BaseModel):
    questionId: int = Field(alias="questionId", validation_alias=AliasChoices("questionId", "question_id"))
    selectedOptionId: int = Field(
        alias="selectedOptionId",
        validation_alias=AliasChoices("selectedOptionId", "optionId", "selected_option_id"),
    )
    timeTakenMs: Optional[int] = Field(
        default=None,
        ge=0,
        alias="timeTakenMs",
        validation_alias=AliasChoices("timeTakenMs", "time_taken_ms"),
    )

    model_config = ConfigDict(populate_by_name=True)


class SubmitRequest(BaseModel):
    answers: list[AnswerPayload] = Field(min_length=1)
    durationSec: Optional[int] = Field(
        default=None,
        ge=0,
        alias="durationSec",
        validation_alias=AliasChoices("durationSec", "duration_sec"),
    )

    model_config = ConfigDict(populate_by_name=True)


class SkillQuizResultSchema(BaseModel):
    score: int
    total: int
    level: SkillLevel
    suggestedCourse: str = Field(alias="suggestedCourse")
    next: str
    attemptNumber: int = Field(alias="attemptNumber")

    model_config = ConfigDict(populate_by_name=True)
