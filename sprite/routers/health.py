"""Liveness and readiness endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

import sqlalchemy as sa
from sqlalchemy.orm import Session

from .. import config
from ..db import SessionLocal, run_db
from ..models.quiz import Quiz


logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/health/ping")
async def ping() -> JSONResponse:
    """Readiness: the database answers and the skill-assessment quiz is seeded.

    Quiz submissions fail with 503 until the fixtures are loaded, so a
    missing quiz reports the service as degraded.
    """

    topic = config.get_settings().skill_quiz_topic

    def _quiz_seeded(session: Session) -> bool:
        return session.scalar(sa.select(Quiz.id).where(Quiz.topic == topic).limit(1)) is not None

    try:
        seeded = await run_db(_quiz_seeded, sessionmaker=SessionLocal)
    except Exception:
        logger.exception("Database ping failed")
        return JSONResponse({"status": "down"}, status_code=503)

    if not seeded:
        logger.warning("Skill assessment quiz %r is not seeded", topic)
        return JSONResponse({"status": "degraded", "skillQuiz": "missing"}, status_code=503)
    return JSONResponse({"status": "up", "skillQuiz": "seeded"})
