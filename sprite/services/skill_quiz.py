"""Skill assessment quiz: grading, level placement and submission."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Iterable, Mapping, Sequence, cast

import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from .. import config
from ..db import OnboardingStep, SessionLocal, SkillLevel, User, run_db
from ..models.activity_event import ActivityEventType
from ..models.quiz import Quiz, QuizAttempt, QuizAttemptAnswer, QuizOption, QuizQuestion
from ..onboarding.cache import revalidate_path
from ..onboarding.errors import MalformedSubmission, QuizNotFound, Unauthenticated
from ..onboarding.guard import OnboardingSnapshot, prerequisites_met
from ..onboarding.steps import step_href, step_index
from ..repository import transactional
from .activity import insert_activity_event

logger = logging.getLogger(__name__)

__all__ = [
    "PERFECT_SCORE_BONUS",
    "POINTS_PER_CORRECT_ANSWER",
    "SUGGESTED_COURSES",
    "SkillQuizOptionView",
    "SkillQuizQuestionView",
    "SkillQuizResult",
    "SubmittedAnswer",
    "get_skill_quiz",
    "get_skill_quiz_questions",
    "grade_answers",
    "map_score_to_level",
    "next_attempt_number",
    "submit_skill_quiz",
    "suggested_course_for",
    "validate_answer_set",
]

POINTS_PER_CORRECT_ANSWER = 10
PERFECT_SCORE_BONUS = 20

SUGGESTED_COURSES: dict[SkillLevel, str] = {
    SkillLevel.BEGINNER: "Python Intro",
    SkillLevel.INTERMEDIATE: "Python Fundamentals + Projects",
    SkillLevel.ADVANCED: "Data Structures & Algorithms in Python",
}


@dataclass(frozen=True)
class SubmittedAnswer:
    question_id: int
    selected_option_id: int
    time_taken_ms: int | None = None


@dataclass(frozen=True)
class SkillQuizOptionView:
    id: int
    text: str
    order_index: int


@dataclass(frozen=True)
class SkillQuizQuestionView:
    id: int
    text: str
    order_index: int
    options: list[SkillQuizOptionView] = field(default_factory=list)


@dataclass(frozen=True)
class SkillQuizResult:
    score: int
    total: int
    level: SkillLevel
    suggested_course: str
    next: str
    attempt_number: int


# ────────── pure scoring ──────────


def map_score_to_level(score: int, total: int) -> SkillLevel:
    """Place a raw score into a skill tier.

    Up to 40% is beginner, up to 70% intermediate, anything above advanced.
    Integer comparison keeps the 40% and 70% boundaries exact.
    """
    if total <= 0:
        raise ValueError("total must be positive")
    if score < 0 or score > total:
        raise ValueError("score must be between 0 and total")
    if score * 100 <= 40 * total:
        return SkillLevel.BEGINNER
    if score * 100 <= 70 * total:
        return SkillLevel.INTERMEDIATE
    return SkillLevel.ADVANCED


def suggested_course_for(level: SkillLevel | str) -> str:
    return SUGGESTED_COURSES[SkillLevel(level)]


def grade_answers(answers: Iterable[SubmittedAnswer], correct_option_ids: Iterable[int]) -> int:
    correct = set(correct_option_ids)
    return sum(1 for answer in answers if answer.selected_option_id in correct)


def validate_answer_set(
    answers: Sequence[SubmittedAnswer],
    question_options: Mapping[int, Iterable[int]],
) -> None:
    """Ensure exactly one answer per quiz question with a valid option.

    ``question_options`` maps each question of the quiz to its option ids.
    """
    if not answers:
        raise MalformedSubmission("No answers submitted")

    seen: set[int] = set()
    for answer in answers:
        if answer.question_id in seen:
            raise MalformedSubmission(f"Question {answer.question_id} answered more than once")
        seen.add(answer.question_id)
        options = question_options.get(answer.question_id)
        if options is None:
            raise MalformedSubmission(f"Question {answer.question_id} is not part of this quiz")
        if answer.selected_option_id not in set(options):
            raise MalformedSubmission(
                f"Option {answer.selected_option_id} does not belong to question {answer.question_id}"
            )

    missing = sorted(set(question_options) - seen)
    if missing:
        raise MalformedSubmission(f"Missing answers for questions {missing}")


# ────────── persistence ──────────


def get_skill_quiz(session: Session) -> tuple[Quiz, list[QuizQuestion]]:
    settings = config.get_settings()
    quiz = session.scalars(
        sa.select(Quiz).where(Quiz.topic == settings.skill_quiz_topic).order_by(Quiz.id.asc())
    ).first()
    if quiz is None:
        logger.error("Skill assessment quiz %r is missing; seed the database", settings.skill_quiz_topic)
        raise QuizNotFound()
    questions = list(
        session.scalars(
            sa.select(QuizQuestion)
            .where(QuizQuestion.quiz_id == quiz.id)
            .options(selectinload(QuizQuestion.options))
            .order_by(QuizQuestion.order_index.asc(), QuizQuestion.id.asc())
            .limit(settings.skill_quiz_question_limit)
        )
    )
    if not questions:
        logger.error("Skill assessment quiz %s has no questions", quiz.id)
        raise QuizNotFound()
    return quiz, questions


def next_attempt_number(session: Session, user_id: int, quiz_id: int) -> int:
    current = session.execute(
        sa.select(sa.func.max(QuizAttempt.attempt_number)).where(
            QuizAttempt.user_id == user_id, QuizAttempt.quiz_id == quiz_id
        )
    ).scalar_one_or_none()
    return int(current) + 1 if current is not None else 1


async def get_skill_quiz_questions() -> list[SkillQuizQuestionView]:
    """Questions of the skill-assessment quiz without their answers."""

    def _questions(session: Session) -> list[SkillQuizQuestionView]:
        _, questions = get_skill_quiz(session)
        return [
            SkillQuizQuestionView(
                id=q.id,
                text=q.text,
                order_index=q.order_index,
                options=[SkillQuizOptionView(id=o.id, text=o.text, order_index=o.order_index) for o in q.options],
            )
            for q in questions
        ]

    return await run_db(_questions, sessionmaker=SessionLocal)


def _advances_to_persona(state: OnboardingSnapshot) -> bool:
    """Whether a graded quiz may move the checkpoint on to ``persona``.

    Retakes after onboarding keep the user out of the flow, and a checkpoint
    is never moved backwards or past what the guard would grant.
    """
    if state.completed or not prerequisites_met(state, OnboardingStep.PERSONA):
        return False
    return state.onboarding_step is None or step_index(state.onboarding_step) < step_index(OnboardingStep.PERSONA)


def _submit(
    session: Session,
    user_id: int,
    answers: Sequence[SubmittedAnswer],
    duration_sec: int | None,
) -> SkillQuizResult:
    user = cast(User | None, session.get(User, user_id))
    if user is None:
        raise Unauthenticated("User not found")

    quiz, questions = get_skill_quiz(session)
    validate_answer_set(answers, {q.id: [o.id for o in q.options] for q in questions})

    option_ids = [a.selected_option_id for a in answers]
    correct_ids = session.scalars(
        sa.select(QuizOption.id).where(QuizOption.id.in_(option_ids), QuizOption.is_correct.is_(True))
    ).all()
    total = len(answers)
    score = grade_answers(answers, correct_ids)
    level = map_score_to_level(score, total)

    now = datetime.now(timezone.utc)
    with transactional(session):
        attempt = QuizAttempt(
            user_id=user_id,
            quiz_id=quiz.id,
            attempt_number=next_attempt_number(session, user_id, quiz.id),
            started_at=now - timedelta(seconds=duration_sec or 0),
            submitted_at=now,
            duration_sec=duration_sec or 0,
        )
        session.add(attempt)
        session.flush()
        session.add_all(
            QuizAttemptAnswer(
                attempt_id=attempt.id,
                question_id=a.question_id,
                selected_option_id=a.selected_option_id,
                time_taken_ms=a.time_taken_ms if a.time_taken_ms is not None else 0,
            )
            for a in answers
        )

        user.skill_level = level
        if _advances_to_persona(OnboardingSnapshot.from_user(user)):
            user.onboarding_step = OnboardingStep.PERSONA

        insert_activity_event(
            session,
            user_id,
            ActivityEventType.QUIZ_SUBMITTED,
            score * POINTS_PER_CORRECT_ANSWER,
            quiz_id=quiz.id,
            quiz_attempt_id=attempt.id,
        )
        if score == total:
            insert_activity_event(
                session,
                user_id,
                ActivityEventType.QUIZ_PERFECT,
                PERFECT_SCORE_BONUS,
                quiz_id=quiz.id,
                quiz_attempt_id=attempt.id,
            )
        attempt_number = attempt.attempt_number

    logger.info(
        "User %s scored %s/%s on skill quiz (attempt %s, level %s)",
        user_id,
        score,
        total,
        attempt_number,
        level.value,
    )
    return SkillQuizResult(
        score=score,
        total=total,
        level=level,
        suggested_course=suggested_course_for(level),
        next=step_href(OnboardingStep.PERSONA),
        attempt_number=attempt_number,
    )


async def submit_skill_quiz(
    user_id: int | None,
    answers: Sequence[SubmittedAnswer],
    *,
    duration_sec: int | None = None,
) -> SkillQuizResult:
    """Grade and persist a skill-quiz submission.

    The attempt, its answers, the user update and the activity events are
    written in one transaction. A concurrent submission that claims the same
    attempt number trips the unique constraint; the whole unit is retried.
    """
    if user_id is None:
        raise Unauthenticated()

    retries = config.get_settings().quiz_attempt_retries
    for attempt in range(1, retries + 1):
        try:
            result = await run_db(_submit, user_id, list(answers), duration_sec, sessionmaker=SessionLocal)
        except IntegrityError:
            if attempt >= retries:
                logger.error("Giving up on skill quiz submission for user %s after %s tries", user_id, attempt)
                raise
            logger.warning("Attempt number collision for user %s; retrying (%s/%s)", user_id, attempt, retries)
            continue
        break

    revalidate_path("/onboarding/skill-quiz")
    revalidate_path(step_href(OnboardingStep.PERSONA))
    return result
