from __future__ import annotations

import logging
from collections.abc import Iterator

import pytest
from pydantic import ValidationError

from sprite import config


@pytest.fixture(autouse=True)
def _restore_settings() -> Iterator[None]:
    yield
    config.reload_settings()


def test_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("SKILL_QUIZ_TOPIC", "SKILL_QUIZ_QUESTION_LIMIT", "QUIZ_ATTEMPT_RETRIES", "SESSION_SECRET"):
        monkeypatch.delenv(name, raising=False)
    settings = config.reload_settings()
    assert settings.skill_quiz_topic == "Skill Assessment"
    assert settings.skill_quiz_question_limit == 5
    assert settings.quiz_attempt_retries == 3
    assert settings.session_secret is None
    assert config.get_settings() is settings


@pytest.mark.parametrize("raw, expected", [("debug", logging.DEBUG), ("warning", logging.WARNING), ("15", 15)])
def test_log_level_parsing(monkeypatch: pytest.MonkeyPatch, raw: str, expected: int) -> None:
    monkeypatch.setenv("LOG_LEVEL", raw)
    assert config.reload_settings().log_level == expected


def test_retries_must_be_positive(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("QUIZ_ATTEMPT_RETRIES", "0")
    with pytest.raises(ValidationError):
        config.reload_settings()


def test_db_password_read_live(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DB_PASSWORD", "s3cret")
    assert config.get_db_password() == "s3cret"
    monkeypatch.delenv("DB_PASSWORD")
    assert config.get_db_password() is None
