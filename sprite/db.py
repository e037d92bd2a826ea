"""Database engine, session helpers and core user models."""

from __future__ import annotations

import asyncio
import logging
import threading
from datetime import datetime
from enum import Enum
from typing import Callable, Optional, Protocol, TypeVar
from typing_extensions import Concatenate, ParamSpec

import sqlalchemy as sa
from sqlalchemy import (
    TIMESTAMP,
    ForeignKey,
    Integer,
    String,
    create_engine,
    func,
)
from sqlalchemy.engine import URL, Engine
from sqlalchemy.exc import SQLAlchemyError, UnboundExecutionError
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    Session,
    close_all_sessions,
    mapped_column,
    relationship,
    sessionmaker,
)

from . import config

logger = logging.getLogger(__name__)


# ────────────────── connection ──────────────────
engine: Engine | None = None
engine_lock = threading.Lock()
# SQLite in-memory DBs share a single connection which is not threadsafe for
# concurrent writes.
sqlite_memory_lock = threading.Lock()
SessionLocal: sessionmaker[Session] = sessionmaker(autoflush=False, autocommit=False)


class Base(DeclarativeBase):
    pass


T = TypeVar("T")
P = ParamSpec("P")
S = TypeVar("S", bound=Session)


class SessionMaker(Protocol[S]):
    def __call__(self) -> S: ...


async def run_db(
    fn: Callable[Concatenate[S, P], T],
    *args: P.args,
    sessionmaker: SessionMaker[S] | None = None,
    **kwargs: P.kwargs,
) -> T:
    """Execute blocking DB work in a thread and return the result.

    Parameters
    ----------
    fn:
        Callable accepting an active session as first argument.
    sessionmaker:
        Factory to create new :class:`~sqlalchemy.orm.Session` instances. Defaults
        to the module's ``SessionLocal`` so tests can inject their own.
    *args, **kwargs:
        Additional arguments forwarded to ``fn``.
    """

    if sessionmaker is None:
        sessionmaker = SessionLocal

    def wrapper() -> T:
        with sessionmaker() as session:
            return fn(session, *args, **kwargs)

    try:
        with sessionmaker() as _session:
            bind = _session.get_bind()
    except UnboundExecutionError as exc:
        logger.error("Database engine is not initialized. Call init_db() to configure it.")
        raise RuntimeError(
            "Database engine is not initialized; run init_db() before calling run_db()."
        ) from exc

    if bind.url.drivername == "sqlite" and bind.url.database in (None, "", ":memory:"):
        with sqlite_memory_lock:
            return wrapper()

    return await asyncio.to_thread(wrapper)


def dispose_engine(target: Engine | None = None) -> None:
    """Dispose of a SQLAlchemy engine.

    Parameters
    ----------
    target:
        The engine to dispose. If ``None`` the module's global engine is used
        and reset.
    """

    global engine
    with engine_lock:
        eng = target or engine
        if eng is None:
            return
        close_all_sessions()
        eng.dispose()
        if target is None and eng is engine:
            engine = None
            SessionLocal.configure(bind=None)


# ───────────────────────── enums ────────────────────────────


class OnboardingStep(str, Enum):
    WELCOME = "welcome"
    GENDER = "gender"
    SKILL_QUIZ = "skill_quiz"
    PERSONA = "persona"
    GUIDED_INTRO = "guided_intro"


class AssistantPersona(str, Enum):
    CALM = "calm"
    KIND = "kind"
    DIRECT = "direct"


class AssistantGender(str, Enum):
    FEMININE = "feminine"
    MASCULINE = "masculine"
    ANDROGYNOUS = "androgynous"


class SkillLevel(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


def _enum_column(enum_cls: type[Enum], name: str) -> sa.Enum:
    return sa.Enum(
        enum_cls,
        name=name,
        values_callable=lambda e: [i.value for i in e],
    )


# ───────────────────────── models ────────────────────────────


class Assistant(Base):
    __tablename__ = "assistants"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    slug: Mapped[str] = mapped_column(String(100), nullable=False, unique=True, index=True)
    gender: Mapped[Optional[AssistantGender]] = mapped_column(
        _enum_column(AssistantGender, "assistant_gender")
    )
    avatar_url: Mapped[Optional[str]] = mapped_column(String(500))
    tagline: Mapped[Optional[str]] = mapped_column(String(255))
    description: Mapped[Optional[str]] = mapped_column(sa.Text)


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    assistant_id: Mapped[Optional[int]] = mapped_column(ForeignKey("assistants.id"))
    assistant_persona: Mapped[Optional[AssistantPersona]] = mapped_column(
        _enum_column(AssistantPersona, "assistant_persona")
    )
    skill_level: Mapped[SkillLevel] = mapped_column(
        _enum_column(SkillLevel, "skill_level"),
        default=SkillLevel.BEGINNER,
        nullable=False,
    )
    onboarding_step: Mapped[Optional[OnboardingStep]] = mapped_column(
        _enum_column(OnboardingStep, "onboarding_step")
    )
    onboarding_completed_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True))
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    assistant: Mapped[Optional[Assistant]] = relationship("Assistant")


def _database_url() -> URL:
    settings = config.get_settings()
    url = sa.engine.make_url(settings.database_url)

    if url.drivername.startswith("sqlite"):
        return url

    password = url.password or config.get_db_password()
    if not password:
        raise ValueError("DB_PASSWORD environment variable must be set")
    return URL.create(
        "postgresql",
        username=url.username or settings.db_user,
        password=password,
        host=url.host or settings.db_host,
        port=url.port or int(settings.db_port),
        database=url.database or settings.db_name,
    )


def init_db() -> None:
    """Create the engine and any missing tables (for local runs)."""
    global engine

    database_url = _database_url()

    with engine_lock:
        if engine is None or engine.url != database_url:
            if engine is not None:
                engine.dispose()
            try:
                engine = create_engine(database_url)
            except SQLAlchemyError as exc:
                logger.error("Failed to initialize database engine: %s", exc)
                raise RuntimeError("Failed to initialize database engine") from exc
            SessionLocal.configure(bind=engine)

    if engine is None:
        raise RuntimeError("Database engine is not configured; call init_db()")

    # Register every mapped table before create_all.
    from . import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info("Database initialized at %s", database_url.render_as_string(hide_password=True))
