from __future__ import annotations

from datetime import datetime, timezone

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from sprite.db import AssistantPersona, OnboardingStep, SkillLevel
from sprite.fixtures import reset_quizzes
from sprite.models.activity_event import ActivityEvent, ActivityEventType
from sprite.models.quiz import QuizAttempt, QuizAttemptAnswer
from sprite.onboarding.cache import register_invalidator
from sprite.onboarding.errors import MalformedSubmission, QuizNotFound, Unauthenticated
from sprite.onboarding.guard import can_access_step, current_step, load_active_user
from sprite.services import skill_quiz
from sprite.services.activity import get_total_points
from sprite.services.skill_quiz import SubmittedAnswer, get_skill_quiz_questions, submit_skill_quiz
from tests.helpers import assistant_id, at_step, load_user, quiz_answers, update_user


@pytest.mark.asyncio
async def test_questions_are_ordered_and_hide_answers(session_local: sessionmaker[Session]) -> None:
    questions = await get_skill_quiz_questions()
    assert len(questions) == 5
    assert [q.order_index for q in questions] == [0, 1, 2, 3, 4]
    assert all(len(q.options) == 4 for q in questions)
    assert not hasattr(questions[0].options[0], "is_correct")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "correct, level, points",
    [
        (0, SkillLevel.BEGINNER, 0),
        (2, SkillLevel.BEGINNER, 20),
        (3, SkillLevel.INTERMEDIATE, 30),
        (4, SkillLevel.ADVANCED, 40),
    ],
)
async def test_submission_places_user(
    session_local: sessionmaker[Session], correct: int, level: SkillLevel, points: int
) -> None:
    at_step(session_local, OnboardingStep.SKILL_QUIZ, assistant_id=assistant_id(session_local))

    result = await submit_skill_quiz(1, quiz_answers(session_local, correct))

    assert result.score == correct
    assert result.total == 5
    assert result.level is level
    assert result.next == "/onboarding/persona"
    assert result.attempt_number == 1
    user = load_user(session_local)
    assert user.skill_level is level
    assert user.onboarding_step is OnboardingStep.PERSONA
    with session_local() as session:
        events = session.query(ActivityEvent).all()
        assert [(e.event_type, e.points_delta) for e in events] == [(ActivityEventType.QUIZ_SUBMITTED, points)]


@pytest.mark.asyncio
async def test_perfect_score_awards_bonus(session_local: sessionmaker[Session]) -> None:
    paths: list[str] = []
    register_invalidator(paths.append)

    result = await submit_skill_quiz(1, quiz_answers(session_local, 5), duration_sec=90)

    assert result.level is SkillLevel.ADVANCED
    assert result.suggested_course == "Data Structures & Algorithms in Python"
    with session_local() as session:
        events = session.query(ActivityEvent).order_by(ActivityEvent.id).all()
        assert [(e.event_type, e.points_delta) for e in events] == [
            (ActivityEventType.QUIZ_SUBMITTED, 50),
            (ActivityEventType.QUIZ_PERFECT, 20),
        ]
        attempt = session.query(QuizAttempt).one()
        assert attempt.duration_sec == 90
        assert session.query(QuizAttemptAnswer).count() == 5
    assert await get_total_points(1) == 70
    assert paths == ["/onboarding/skill-quiz", "/onboarding/persona"]


@pytest.mark.asyncio
async def test_attempt_numbers_increment(session_local: sessionmaker[Session]) -> None:
    first = await submit_skill_quiz(1, quiz_answers(session_local, 1))
    second = await submit_skill_quiz(1, quiz_answers(session_local, 4))
    assert (first.attempt_number, second.attempt_number) == (1, 2)
    assert load_user(session_local).skill_level is SkillLevel.ADVANCED


@pytest.mark.asyncio
async def test_retake_after_completion_keeps_user_out_of_flow(session_local: sessionmaker[Session]) -> None:
    update_user(session_local, onboarding_completed_at=datetime.now(timezone.utc))
    await submit_skill_quiz(1, quiz_answers(session_local, 3))
    user = load_user(session_local)
    assert user.onboarding_step is None
    assert user.skill_level is SkillLevel.INTERMEDIATE


@pytest.mark.asyncio
async def test_submission_without_assistant_keeps_checkpoint(session_local: sessionmaker[Session]) -> None:
    result = await submit_skill_quiz(1, quiz_answers(session_local, 3))

    assert result.level is SkillLevel.INTERMEDIATE
    assert result.next == "/onboarding/persona"
    user = load_user(session_local)
    assert user.onboarding_step is None
    assert user.skill_level is SkillLevel.INTERMEDIATE
    state = await load_active_user(1)
    assert not can_access_step(state, OnboardingStep.PERSONA)
    assert current_step(state) is OnboardingStep.GENDER


@pytest.mark.asyncio
async def test_submission_does_not_move_checkpoint_back(session_local: sessionmaker[Session]) -> None:
    at_step(
        session_local,
        OnboardingStep.GUIDED_INTRO,
        assistant_id=assistant_id(session_local),
        assistant_persona=AssistantPersona.KIND,
    )
    await submit_skill_quiz(1, quiz_answers(session_local, 4))
    user = load_user(session_local)
    assert user.onboarding_step is OnboardingStep.GUIDED_INTRO
    assert user.skill_level is SkillLevel.ADVANCED


@pytest.mark.asyncio
async def test_malformed_submission_writes_nothing(session_local: sessionmaker[Session]) -> None:
    answers = quiz_answers(session_local, 5)
    with pytest.raises(MalformedSubmission):
        await submit_skill_quiz(1, answers[:-1])
    with pytest.raises(MalformedSubmission):
        await submit_skill_quiz(1, [*answers, answers[0]])
    with pytest.raises(MalformedSubmission):
        await submit_skill_quiz(
            1,
            [SubmittedAnswer(answers[0].question_id, answers[1].selected_option_id), *answers[1:]],
        )
    with session_local() as session:
        assert session.query(QuizAttempt).count() == 0
        assert session.query(ActivityEvent).count() == 0


@pytest.mark.asyncio
async def test_submission_requires_user(session_local: sessionmaker[Session]) -> None:
    answers = quiz_answers(session_local, 5)
    with pytest.raises(Unauthenticated):
        await submit_skill_quiz(None, answers)
    with pytest.raises(Unauthenticated):
        await submit_skill_quiz(7, answers)


@pytest.mark.asyncio
async def test_missing_quiz(session_local: sessionmaker[Session]) -> None:
    await reset_quizzes()
    with pytest.raises(QuizNotFound):
        await get_skill_quiz_questions()
    with pytest.raises(QuizNotFound):
        await submit_skill_quiz(1, [SubmittedAnswer(1, 1)])


@pytest.mark.asyncio
async def test_attempt_number_collision_is_retried(
    session_local: sessionmaker[Session], monkeypatch: pytest.MonkeyPatch
) -> None:
    await submit_skill_quiz(1, quiz_answers(session_local, 2))
    real = skill_quiz.next_attempt_number
    calls: list[int] = []

    def stale_then_real(session: Session, user_id: int, quiz_id: int) -> int:
        calls.append(user_id)
        if len(calls) == 1:
            return 1
        return real(session, user_id, quiz_id)

    monkeypatch.setattr(skill_quiz, "next_attempt_number", stale_then_real)

    result = await submit_skill_quiz(1, quiz_answers(session_local, 5))

    assert result.attempt_number == 2
    assert len(calls) == 2
    with session_local() as session:
        assert session.query(QuizAttempt).count() == 2
        assert session.query(ActivityEvent).count() == 3


@pytest.mark.asyncio
async def test_collision_retries_are_bounded(
    session_local: sessionmaker[Session], monkeypatch: pytest.MonkeyPatch
) -> None:
    await submit_skill_quiz(1, quiz_answers(session_local, 2))
    monkeypatch.setattr(skill_quiz, "next_attempt_number", lambda *_: 1)

    with pytest.raises(IntegrityError):
        await submit_skill_quiz(1, quiz_answers(session_local, 5))
    with session_local() as session:
        assert session.query(QuizAttempt).count() == 1
        assert session.query(ActivityEvent).count() == 1
