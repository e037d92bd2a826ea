"""Canonical onboarding step table and pure navigation helpers."""

from __future__ import annotations

from dataclasses import dataclass

from ..db import OnboardingStep
from .errors import UnknownStepError

ONBOARDING_BASE_PATH = "/onboarding"


@dataclass(frozen=True)
class StepDefinition:
    id: OnboardingStep
    title: str
    description: str
    segment: str


ONBOARDING_STEPS: tuple[StepDefinition, ...] = (
    StepDefinition(
        OnboardingStep.WELCOME,
        "Welcome",
        "Meet Sprite.exe and see how your study companion works.",
        "welcome",
    ),
    StepDefinition(
        OnboardingStep.GENDER,
        "Choose your assistant",
        "Pick the tutor whose energy you want in every study session.",
        "gender",
    ),
    StepDefinition(
        OnboardingStep.SKILL_QUIZ,
        "Quick skill check",
        "Answer a few questions so we can start at the right level.",
        "skill-quiz",
    ),
    StepDefinition(
        OnboardingStep.PERSONA,
        "Set the tone",
        "Decide how your assistant talks to you: calm, kind or direct.",
        "persona",
    ),
    StepDefinition(
        OnboardingStep.GUIDED_INTRO,
        "Guided intro",
        "Your assistant welcomes you and walks you into the app.",
        "guided-intro",
    ),
)

FIRST_STEP = ONBOARDING_STEPS[0].id
LAST_STEP = ONBOARDING_STEPS[-1].id

_INDEX = {definition.id: i for i, definition in enumerate(ONBOARDING_STEPS)}
_BY_SEGMENT = {definition.segment: definition.id for definition in ONBOARDING_STEPS}


def coerce_step(step: OnboardingStep | str) -> OnboardingStep:
    """Return ``step`` as an :class:`OnboardingStep` or raise ``UnknownStepError``."""

    if isinstance(step, OnboardingStep):
        return step
    try:
        return OnboardingStep(step)
    except ValueError as exc:
        raise UnknownStepError(step) from exc


def is_valid_step(value: object) -> bool:
    return isinstance(value, (str, OnboardingStep)) and value in _INDEX


def step_index(step: OnboardingStep | str) -> int:
    """Position of ``step`` in the canonical ordering."""

    return _INDEX[coerce_step(step)]


def get_step_definition(step: OnboardingStep | str) -> StepDefinition:
    return ONBOARDING_STEPS[step_index(step)]


def next_step(step: OnboardingStep | str) -> OnboardingStep | None:
    idx = step_index(step)
    if idx + 1 >= len(ONBOARDING_STEPS):
        return None
    return ONBOARDING_STEPS[idx + 1].id


def previous_step(step: OnboardingStep | str) -> OnboardingStep | None:
    idx = step_index(step)
    if idx == 0:
        return None
    return ONBOARDING_STEPS[idx - 1].id


def step_for_route_segment(segment: str) -> OnboardingStep | None:
    """Reverse lookup from a URL path fragment.

    Hyphenated segments (``skill-quiz``) are canonical; the enum value
    (``skill_quiz``) is accepted too so old links keep working.
    """

    cleaned = segment.strip().strip("/").lower()
    if cleaned in _BY_SEGMENT:
        return _BY_SEGMENT[cleaned]
    if is_valid_step(cleaned):
        return OnboardingStep(cleaned)
    return None


def step_href(step: OnboardingStep | str) -> str:
    return f"{ONBOARDING_BASE_PATH}/{get_step_definition(step).segment}"


__all__ = [
    "FIRST_STEP",
    "LAST_STEP",
    "ONBOARDING_BASE_PATH",
    "ONBOARDING_STEPS",
    "StepDefinition",
    "coerce_step",
    "get_step_definition",
    "is_valid_step",
    "next_step",
    "previous_step",
    "step_for_route_segment",
    "step_href",
    "step_index",
]
