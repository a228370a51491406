"""
Authentication handshake.

The backend acknowledges CONNECTION_AUTH only through a generic
SYSTEM_MESSAGE, so success is recognised by marker text. That check lives in
``is_auth_success`` and nowhere else; it is a compatibility shim until the
backend grows a dedicated acknowledgement envelope.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Iterable, Optional, Sequence

from ..types.envelope import ConnectionAuth, SystemMessage
from .errors import AuthError

logger = logging.getLogger(__name__)

DEFAULT_SUCCESS_MARKERS: Sequence[str] = ("Authenticated successfully",)


def is_auth_success(notice: SystemMessage, markers: Iterable[str] = DEFAULT_SUCCESS_MARKERS) -> bool:
    """True when a system notice acknowledges the CONNECTION_AUTH envelope."""
    text = (notice.message or "").casefold()
    if not text:
        return False
    if (notice.level or "").lower() in {"error", "err"}:
        return False
    return any(marker.casefold() in text for marker in markers if marker)


class AuthHandshake:
    """Proves the wallet identity to the backend once per connection."""

    def __init__(
        self,
        send: Callable[[ConnectionAuth], Awaitable[None]],
        *,
        markers: Sequence[str] = DEFAULT_SUCCESS_MARKERS,
    ):
        self._send = send
        self.markers = tuple(markers)
        self.authenticated = False
        self.identity: Optional[str] = None
        self._attempted_for: Optional[str] = None

    @property
    def pending(self) -> bool:
        """An auth envelope was sent and not yet acknowledged."""
        return self._attempted_for is not None and not self.authenticated

    async def maybe_authenticate(self, connected: bool, identity: Optional[str]) -> bool:
        """Send CONNECTION_AUTH if this is a new connected+identity transition.

        Returns True when an auth envelope was sent.
        """
        if not connected or not identity:
            if self._attempted_for is not None and not identity:
                logger.info("Wallet identity lost, clearing authentication")
                self.reset()
            return False

        if self._attempted_for == identity:
            return False

        if self._attempted_for is not None:
            logger.info(f"Wallet identity changed to {identity}, re-authenticating")
            self.reset()

        self._attempted_for = identity
        self.identity = identity
        logger.info(f"Authenticating with account {identity}")
        try:
            await self._send(ConnectionAuth(user_account_id=identity))
        except Exception:
            self._attempted_for = None
            raise
        return True

    def observe(self, notice: SystemMessage) -> bool:
        """Inspect an inbound system notice; returns True when it completed auth."""
        if self.authenticated or self._attempted_for is None:
            return False
        if not is_auth_success(notice, self.markers):
            return False
        self.authenticated = True
        logger.info(f"Authenticated as {self._attempted_for}")
        return True

    def reset(self) -> None:
        if self.authenticated:
            logger.info("Authentication cleared")
        self.authenticated = False
        self._attempted_for = None

    def require_authenticated(self) -> str:
        """Return the authenticated identity or raise AuthError."""
        if not self.authenticated or not self.identity:
            raise AuthError()
        return self.identity
