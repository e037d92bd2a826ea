from __future__ import annotations

from fastapi import APIRouter, Depends

from ..schemas.skill_quiz import (
    SkillQuizQuestionSchema,
    SkillQuizResultSchema,
    SubmitRequest,
)
from ..services.skill_quiz import SubmittedAnswer, get_skill_quiz_questions, submit_skill_quiz
from ..session_auth import require_user_id

router = APIRouter(prefix="/api/skill-quiz")


@router.get("/questions", response_model=list[SkillQuizQuestionSchema])
async def get_questions(user_id: int = Depends(require_user_id)) -> list[SkillQuizQuestionSchema]:
    questions = await get_skill_quiz_questions()
    return [SkillQuizQuestionSchema.model_validate(q) for q in questions]


@router.post("/submit", response_model=SkillQuizResultSchema)
async def post_submit(data: SubmitRequest, user_id: int = Depends(require_user_id)) -> SkillQuizResultSchema:
    answers = [
        SubmittedAnswer(
            question_id=a.questionId,
            selected_option_id=a.selectedOptionId,
            time_taken_ms=a.timeTakenMs,
        )
        for a in data.answers
    ]
    result = await submit_skill_quiz(user_id, answers, duration_sec=data.durationSec)
    return SkillQuizResultSchema(
        score=result.score,
        total=result.total,
        level=result.level,
        suggestedCourse=result.suggested_course,
        next=result.next,
        attemptNumber=result.attempt_number,
    )
