from __future__ import annotations

from sqlalchemy.orm import Session, sessionmaker

from sprite.db import Assistant, OnboardingStep, User
from sprite.models.quiz import Quiz, QuizQuestion
from sprite.services.skill_quiz import SubmittedAnswer


def assistant_id(session_local: sessionmaker[Session], slug: str = "nova-feminine") -> int:
    with session_local() as session:
        return session.query(Assistant).filter_by(slug=slug).one().id


def update_user(session_local: sessionmaker[Session], user_id: int = 1, **fields: object) -> None:
    with session_local() as session:
        user = session.get(User, user_id)
        assert user is not None
        for key, value in fields.items():
            setattr(user, key, value)
        session.commit()


def load_user(session_local: sessionmaker[Session], user_id: int = 1) -> User:
    with session_local() as session:
        user = session.get(User, user_id)
        assert user is not None
        session.expunge(user)
        return user


def quiz_answers(session_local: sessionmaker[Session], correct: int) -> list[SubmittedAnswer]:
    """Answers for the skill quiz with exactly ``correct`` right answers."""

    with session_local() as session:
        quiz = session.query(Quiz).filter_by(topic="Skill Assessment").one()
        questions = session.query(QuizQuestion).filter_by(quiz_id=quiz.id).order_by(QuizQuestion.order_index).all()
        answers = []
        for idx, question in enumerate(questions):
            right = next(o for o in question.options if o.is_correct)
            wrong = next(o for o in question.options if not o.is_correct)
            chosen = right if idx < correct else wrong
            answers.append(SubmittedAnswer(question_id=question.id, selected_option_id=chosen.id))
        return answers


def at_step(session_local: sessionmaker[Session], step: OnboardingStep, **fields: object) -> None:
    update_user(session_local, onboarding_step=step, **fields)
