from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from ..db import AssistantGender, AssistantPersona, OnboardingStep, SkillLevel


class OnboardingStateSchema(BaseModel):
    userId: int = Field(alias="userId")
    name: str
    assistantId: Optional[int] = Field(default=None, alias="assistantId")
    assistantPersona: Optional[AssistantPersona] = Field(default=None, alias="assistantPersona")
    skillLevel: SkillLevel = Field(alias="skillLevel")
    onboardingStep: Optional[OnboardingStep] = Field(default=None, alias="onboardingStep")
    completedAt: Optional[datetime] = Field(default=None, alias="completedAt")
    currentStep: OnboardingStep = Field(alias="currentStep")
    currentHref: str = Field(alias="currentHref")

    model_config = ConfigDict(populate_by_name=True)


class StepAccessSchema(BaseModel):
    step: OnboardingStep
    allowed: bool
    redirect: Optional[str] = None


class StatusResponse(BaseModel):
    completed: bool
    step: str | None
    missing: list[str]


class AssistantOptionSchema(BaseModel):
    id: int
    name: str
    slug: str
    gender: Optional[AssistantGender] = None
    avatarUrl: Optional[str] = Field(
        default=None,
        alias="avatarUrl",
        validation_alias=AliasChoices("avatarUrl", "avatar_url"),
    )
    tagline: Optional[str] = None
    description: Optional[str] = None

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class AssistantSelection(BaseModel):
    assistantId: int = Field(alias="assistantId", validation_alias=AliasChoices("assistantId", "assistant_id"))

    model_config = ConfigDict(populate_by_name=True)


class PersonaSelection(BaseModel):
    persona: AssistantPersona


class StepRequest(BaseModel):
    step: str


class StepTransitionSchema(BaseModel):
    nextStep: OnboardingStep = Field(alias="nextStep")
    nextHref: str = Field(alias="nextHref")

    model_config = ConfigDict(populate_by_name=True)


class CompletionSchema(BaseModel):
    completed: bool
    redirectTo: str = Field(alias="redirectTo")

    model_config = ConfigDict(populate_by_name=True)


class NavigationSchema(BaseModel):
    allowed: bool
    nextHref: str = Field(alias="nextHref")

    model_config = ConfigDict(populate_by_name=True)


class PersistedStepSchema(BaseModel):
    step: OnboardingStep
