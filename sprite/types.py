from __future__ import annotations

from typing import Protocol, TypeVar

T = TypeVar("T")


class SessionProtocol(Protocol):
    """The part of a DB session the onboarding guard reads through."""

    def get(self, entity: type[T], ident: object) -> T | None: ...
