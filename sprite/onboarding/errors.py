"""Errors raised by the onboarding flow and the skill quiz."""

from __future__ import annotations

LOGIN_REDIRECT = "/login?next=/onboarding"
HOME_REDIRECT = "/home"


class OnboardingError(Exception):
    """Base class for onboarding failures mapped to HTTP responses."""

    status_code = 400
    redirect: str | None = None

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)

    default_message = "onboarding request failed"

    @property
    def detail(self) -> str:
        return str(self)


class Unauthenticated(OnboardingError):
    status_code = 401
    redirect = LOGIN_REDIRECT
    default_message = "Not authenticated"


class AlreadyCompleted(OnboardingError):
    status_code = 409
    redirect = HOME_REDIRECT
    default_message = "Onboarding already completed"


class PrerequisiteNotMet(OnboardingError):
    status_code = 409
    default_message = "Complete the previous onboarding steps first"


class AssistantNotFound(OnboardingError):
    status_code = 404
    default_message = "Assistant option not found"

    def __init__(self, assistant_id: int) -> None:
        super().__init__(f"Assistant option {assistant_id} not found")
        self.assistant_id = assistant_id


class QuizNotFound(OnboardingError):
    """The seeded skill-assessment quiz is missing: a configuration error."""

    status_code = 503
    default_message = "Skill assessment quiz not found. Please run migrations and seed."


class MalformedSubmission(OnboardingError):
    status_code = 422
    default_message = "Quiz submission does not match the quiz"


class UnknownStepError(ValueError):
    """Raised for values that are not an onboarding step."""

    def __init__(self, step: object) -> None:
        super().__init__(f"Unknown onboarding step: {step!r}")
        self.step = step


__all__ = [
    "AlreadyCompleted",
    "AssistantNotFound",
    "HOME_REDIRECT",
    "LOGIN_REDIRECT",
    "MalformedSubmission",
    "OnboardingError",
    "PrerequisiteNotMet",
    "QuizNotFound",
    "Unauthenticated",
    "UnknownStepError",
]
