"""Load onboarding seed content into the database.

Usage
-----
>>> import asyncio
>>> from sprite.fixtures import load_fixtures
>>> asyncio.run(load_fixtures())

This reads ``content/onboarding_v1.json`` and inserts the selectable
``Assistant`` rows and the skill-assessment ``Quiz`` with its questions and
options. Rows that already exist (same assistant slug, same quiz topic) are
left untouched.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path

import sqlalchemy as sa
from pydantic import BaseModel, field_validator, model_validator
from sqlalchemy.orm import Session

from .db import Assistant, AssistantGender, SessionLocal, SessionMaker, init_db, run_db
from .models.activity_event import ActivityEvent
from .models.quiz import Quiz, QuizAttempt, QuizAttemptAnswer, QuizOption, QuizQuestion
from .repository import CommitError, commit

logger = logging.getLogger(__name__)

__all__ = ["FixtureFile", "load_fixtures", "parse_fixtures", "reset_quizzes", "seed_fixtures"]


class AssistantModel(BaseModel):
    slug: str
    name: str
    gender: AssistantGender | None = None
    avatar_url: str | None = None
    tagline: str | None = None
    description: str | None = None


class QuestionModel(BaseModel):
    text: str
    options: list[str]
    answer: int

    @model_validator(mode="after")
    def answer_in_range(self) -> QuestionModel:
        if len(self.options) < 2:
            raise ValueError("a question needs at least two options")
        if not 0 <= self.answer < len(self.options):
            raise ValueError(f"answer index {self.answer} out of range")
        return self


class QuizModel(BaseModel):
    title: str
    topic: str
    description: str | None = None
    questions: list[QuestionModel]

    @field_validator("questions")
    @classmethod
    def not_empty(cls, v: list[QuestionModel]) -> list[QuestionModel]:
        if not v:
            raise ValueError("quiz has no questions")
        return v


class FixtureFile(BaseModel):
    assistants: list[AssistantModel] = []
    skill_quiz: QuizModel | None = None


DEFAULT_CONTENT_FILE = Path(__file__).resolve().parents[1] / "content" / "onboarding_v1.json"


def parse_fixtures(content_path: Path | str = DEFAULT_CONTENT_FILE) -> FixtureFile:
    path = Path(content_path)
    return FixtureFile.model_validate(json.loads(path.read_text(encoding="utf-8")))


def seed_fixtures(session: Session, fixtures: FixtureFile) -> tuple[int, int]:
    """Stage rows missing from the database; the caller commits."""

    existing = set(session.scalars(sa.select(Assistant.slug)))
    added_assistants = 0
    for item in fixtures.assistants:
        if item.slug in existing:
            continue
        session.add(Assistant(**item.model_dump()))
        added_assistants += 1

    added_questions = 0
    quiz_data = fixtures.skill_quiz
    if quiz_data is not None:
        quiz = session.scalars(sa.select(Quiz).where(Quiz.topic == quiz_data.topic)).first()
        if quiz is None:
            quiz = Quiz(title=quiz_data.title, topic=quiz_data.topic, description=quiz_data.description)
            session.add(quiz)
            session.flush()
            for q_idx, q in enumerate(quiz_data.questions):
                question = QuizQuestion(quiz_id=quiz.id, text=q.text, order_index=q_idx)
                session.add(question)
                session.flush()
                for o_idx, text in enumerate(q.options):
                    session.add(
                        QuizOption(
                            question_id=question.id,
                            text=text,
                            order_index=o_idx,
                            is_correct=o_idx == q.answer,
                        )
                    )
                added_questions += 1
    return added_assistants, added_questions


async def load_fixtures(
    content_path: Path | str = DEFAULT_CONTENT_FILE,
    *,
    sessionmaker: SessionMaker[Session] = SessionLocal,
) -> tuple[int, int]:
    """Insert assistants and the skill quiz from ``content_path``.

    Returns the number of assistants and quiz questions added.
    """

    fixtures = parse_fixtures(content_path)

    def _load(session: Session) -> tuple[int, int]:
        added = seed_fixtures(session, fixtures)
        try:
            commit(session)
        except CommitError:
            logger.exception("Failed to load fixtures from %s", content_path)
            raise
        return added

    assistants, questions = await run_db(_load, sessionmaker=sessionmaker)
    logger.info("Seeded %s assistants and %s quiz questions", assistants, questions)
    return assistants, questions


async def reset_quizzes(*, sessionmaker: SessionMaker[Session] = SessionLocal) -> None:
    """Remove all quizzes together with attempts and the events pointing at them."""

    def _reset(session: Session) -> None:
        session.execute(sa.delete(ActivityEvent).where(ActivityEvent.quiz_id.is_not(None)))
        session.execute(sa.delete(QuizAttemptAnswer))
        session.execute(sa.delete(QuizAttempt))
        session.execute(sa.delete(QuizOption))
        session.execute(sa.delete(QuizQuestion))
        session.execute(sa.delete(Quiz))
        commit(session)

    await run_db(_reset, sessionmaker=sessionmaker)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Load onboarding fixtures")
    parser.add_argument("path", nargs="?", default=DEFAULT_CONTENT_FILE)
    parser.add_argument("--reset", action="store_true", help="Clear existing quizzes before loading")
    return parser


async def main(argv: list[str] | None = None) -> None:
    args = _build_parser().parse_args(argv)
    init_db()
    if args.reset:
        await reset_quizzes()
    await load_fixtures(args.path)


if __name__ == "__main__":  # pragma: no cover - CLI utility
    logging.basicConfig(level=logging.INFO)
    asyncio.run(main())
