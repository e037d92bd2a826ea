from .activity import ActivityEventSchema, PointsResponse
from .onboarding import (
    AssistantOptionSchema,
    AssistantSelection,
    CompletionSchema,
    NavigationSchema,
    OnboardingStateSchema,
    PersistedStepSchema,
    PersonaSelection,
    StatusResponse,
    StepAccessSchema,
    StepRequest,
    StepTransitionSchema,
)
from .skill_quiz import (
    AnswerPayload,
    SkillQuizOptionSchema,
    SkillQuizQuestionSchema,
    SkillQuizResultSchema,
    SubmitRequest,
)

__all__ = [
    "ActivityEventSchema",
    "AnswerPayload",
    "AssistantOptionSchema",
    "AssistantSelection",
    "CompletionSchema",
    "NavigationSchema",
    "OnboardingStateSchema",
    "PersistedStepSchema",
    "PersonaSelection",
    "PointsResponse",
    "SkillQuizOptionSchema",
    "SkillQuizQuestionSchema",
    "SkillQuizResultSchema",
    "StatusResponse",
    "StepAccessSchema",
    "StepRequest",
    "StepTransitionSchema",
    "SubmitRequest",
]
