from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from app.core.errors import AuthRequired

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Identity:
    user_id: str
    email: str = ""
    access_token: str = ""


SessionListener = Callable[["Identity | None"], None]


class SessionContext:
    """Current signed-in identity, handed explicitly to every service that needs it.

    Listeners registered with ``subscribe`` are called with the new identity
    (or ``None``) on every sign-in and sign-out.
    """

    def __init__(self, identity: Identity | None = None) -> None:
        self._identity = identity
        self._listeners: list[SessionListener] = []

    @property
    def identity(self) -> Identity | None:
        return self._identity

    @property
    def user_id(self) -> str | None:
        return self._identity.user_id if self._identity is not None else None

    def require(self) -> Identity:
        if self._identity is None:
            raise AuthRequired()
        return self._identity

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def sign_in(self, identity: Identity) -> None:
        self._identity = identity
        self._notify()

    def sign_out(self) -> None:
        if self._identity is None:
            return
        self._identity = None
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self._identity)
            except Exception:
                logger.exception("Session listener %r failed", listener)
