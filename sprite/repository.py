from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

__all__ = ["CommitError", "commit", "transactional"]


class CommitError(RuntimeError):
    """Raised when a database commit fails."""


def commit(session: Session) -> None:
    """Commit an SQLAlchemy session, rolling back on failure.

    Raises
    ------
    CommitError
        If the commit fails.
    """
    try:
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        logger.exception("DB commit failed")
        raise CommitError from exc


@contextmanager
def transactional(session: Session) -> Iterator[Session]:
    """Commit on success and roll back on failure.

    Integrity errors are re-raised unchanged so callers can retry on key
    collisions; other database errors are wrapped in :class:`CommitError`.
    """
    try:
        yield session
        session.commit()
    except IntegrityError:
        session.rollback()
        logger.warning("DB transaction hit an integrity error; rolled back")
        raise
    except SQLAlchemyError as exc:
        session.rollback()
        logger.exception("DB transaction failed: %s", exc.__class__.__name__)
        raise CommitError from exc
    except Exception:
        session.rollback()
        raise
