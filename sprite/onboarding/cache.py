"""Invalidation hooks for cached onboarding views.

Rendering layers that cache pages per route register a callback here; the
onboarding actions call :func:`revalidate_path` after every write.
"""

from __future__ import annotations

import logging
from typing import Callable

logger = logging.getLogger(__name__)

Invalidator = Callable[[str], None]

_invalidators: list[Invalidator] = []


def register_invalidator(fn: Invalidator) -> None:
    """Register ``fn`` to be called with every revalidated path."""
    if fn not in _invalidators:
        _invalidators.append(fn)


def clear_invalidators() -> None:
    _invalidators.clear()


def revalidate_path(path: str) -> None:
    """Notify registered invalidators that views under ``path`` are stale.

    A failing invalidator is logged and skipped: the database write it
    follows has already been committed.
    """
    logger.debug("Revalidating %s", path)
    for fn in list(_invalidators):
        try:
            fn(path)
        except Exception:
            logger.exception("Invalidator %r failed for %s", fn, path)


__all__ = ["clear_invalidators", "register_invalidator", "revalidate_path"]
