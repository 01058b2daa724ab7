"""Session state and its guard.

:class:`Session` is the immutable record produced by login.
:class:`SessionGuard` owns the current session and is the single place
where it is torn down: every component that sees a 401/403 calls
:meth:`SessionGuard.clear`, which releases the realtime channel, the
location reporter and the order store through registered callbacks.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from pyfoodime.exceptions import FoodimeAuthError

if TYPE_CHECKING:
    from pyfoodime._storage import SessionStorage

_logger = logging.getLogger(__name__)

TeardownCallback = Callable[[str], None]


class Session(BaseModel):
    """Authenticated partner session.

    Parameters
    ----------
    token : str
        Nonce sent with every authenticated request.
    user_id : int or None
        Partner account id.
    username : str
        Login name.
    full_name : str or None
        Display name.
    created_at : datetime
        UTC time the session was established.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        validate_default=True,
        str_strip_whitespace=True,
    )

    token: str = Field(min_length=1)
    user_id: int | None = None
    username: str = ""
    full_name: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def display_name(self) -> str:
        return self.full_name or self.username


class SessionGuard:
    """Owns the session token and gates every other component."""

    def __init__(self, storage: SessionStorage | None = None) -> None:
        self._storage = storage
        self._session: Session | None = None
        self._teardowns: list[TeardownCallback] = []
        # True while there is nothing left to release.
        self._torn_down = True

    @property
    def session(self) -> Session | None:
        return self._session

    @property
    def token(self) -> str:
        """Current token; raises :class:`FoodimeAuthError` when logged out."""
        if self._session is None:
            raise FoodimeAuthError("Not authenticated. Log in first.")
        return self._session.token

    def is_authenticated(self) -> bool:
        return self._session is not None

    def establish(self, session: Session, *, persist: bool = True) -> None:
        """Install *session* as the active one."""
        self._session = session
        self._torn_down = False
        if persist and self._storage is not None:
            try:
                self._storage.save(session)
            except OSError:
                _logger.warning("Could not persist session record", exc_info=True)
        _logger.info("Session established for %s", session.display_name or "partner")

    def restore(self) -> bool:
        """Load the persisted session, if any. Returns whether one was found."""
        if self._storage is None:
            return False
        session = self._storage.load()
        if session is None:
            return False
        self.establish(session, persist=False)
        return True

    def add_teardown(self, callback: TeardownCallback) -> Callable[[], None]:
        """Register *callback* to run on :meth:`clear`, in registration order.

        Returns a callable that unregisters it.
        """
        self._teardowns.append(callback)

        def _remove() -> None:
            if callback in self._teardowns:
                self._teardowns.remove(callback)

        return _remove

    def clear(self, reason: str = "logout") -> None:
        """Drop the session and release everything tied to it.

        Synchronous and idempotent: a second call, including one made
        re-entrantly from a teardown callback, is a no-op.
        """
        if self._torn_down:
            self._session = None
            return
        self._torn_down = True
        self._session = None
        _logger.info("Clearing session (%s)", reason)

        if self._storage is not None:
            try:
                self._storage.remove()
            except OSError:
                _logger.warning("Could not remove session record", exc_info=True)

        for callback in list(self._teardowns):
            try:
                callback(reason)
            except Exception:
                _logger.warning("Session teardown callback failed", exc_info=True)
