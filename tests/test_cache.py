from __future__ import annotations

import logging

import pytest

from sprite.onboarding import cache


def test_register_is_idempotent() -> None:
    paths: list[str] = []
    cache.register_invalidator(paths.append)
    cache.register_invalidator(paths.append)

    cache.revalidate_path("/onboarding")

    assert paths == ["/onboarding"]


def test_failing_invalidator_is_skipped(caplog: pytest.LogCaptureFixture) -> None:
    def broken(path: str) -> None:
        raise RuntimeError(path)

    paths: list[str] = []
    cache.register_invalidator(broken)
    cache.register_invalidator(paths.append)

    with caplog.at_level(logging.ERROR, logger="sprite.onboarding.cache"):
        cache.revalidate_path("/home")

    assert paths == ["/home"]
    assert "failed for /home" in caplog.text


def test_clear_invalidators() -> None:
    paths: list[str] = []
    cache.register_invalidator(paths.append)
    cache.clear_invalidators()

    cache.revalidate_path("/onboarding")

    assert paths == []
