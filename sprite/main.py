from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
import logging

# ────────── std / 3-rd party ──────────
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

# ────────── local ──────────
from . import config
from .db import dispose_engine, init_db
from .onboarding.errors import OnboardingError, UnknownStepError
from .repository import CommitError
from .routers.activity import router as activity_router
from .routers.health import router as health_router
from .routers.onboarding import router as onboarding_router
from .routers.skill_quiz import router as skill_quiz_router

# ────────── init ──────────
logger = logging.getLogger(__name__)
settings = config.get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    logging.basicConfig(level=settings.log_level)
    try:
        init_db()
    except (ValueError, SQLAlchemyError) as exc:
        logger.error("Failed to initialize the database: %s", exc)
        raise RuntimeError("Database initialization failed. Please check your configuration and try again.") from exc
    try:
        yield
    finally:
        dispose_engine()


app = FastAPI(title="Sprite Onboarding API", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.public_origin] if settings.public_origin else [],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(OnboardingError)
async def onboarding_error_handler(_: Request, exc: OnboardingError) -> JSONResponse:
    content: dict[str, str] = {"detail": exc.detail}
    if exc.redirect is not None:
        content["redirect"] = exc.redirect
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(UnknownStepError)
async def unknown_step_handler(_: Request, exc: UnknownStepError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(CommitError)
async def commit_error_handler(_: Request, exc: CommitError) -> JSONResponse:
    return JSONResponse(status_code=500, content={"detail": "database error"})


@app.exception_handler(ValidationError)
async def pydantic_422(_: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=422, content={"detail": exc.errors()})


@app.exception_handler(ValueError)
async def value_error_handler(_: Request, exc: ValueError) -> JSONResponse:
    return JSONResponse(status_code=422, content={"detail": str(exc)})


# ────────── include router ──────────
app.include_router(health_router)
app.include_router(onboarding_router)
app.include_router(skill_quiz_router)
app.include_router(activity_router)

# ────────── run (for local testing) ──────────
if __name__ == "__main__":  # pragma: no cover
    import uvicorn

    uvicorn.run("sprite.main:app", host="0.0.0.0", port=8000)
