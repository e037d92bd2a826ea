from .activity_event import ActivityEvent, ActivityEventType
from .onboarding_event import OnboardingEvent
from .quiz import Quiz, QuizAttempt, QuizAttemptAnswer, QuizOption, QuizQuestion

__all__ = [
    "ActivityEvent",
    "ActivityEventType",
    "OnboardingEvent",
    "Quiz",
    "QuizAttempt",
    "QuizAttemptAnswer",
    "QuizOption",
    "QuizQuestion",
]
