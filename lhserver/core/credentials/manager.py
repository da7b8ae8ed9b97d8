from __future__ import annotations

import threading
from typing import Optional, Tuple

from lhserver.core.credentials.broker import CredentialBroker
from lhserver.core.errors import AuthError, NotInitializedError


class CredentialPair:
    """
    Service-account credentials held only in process memory.

    The secret lives in a bytearray so wipe() can overwrite the backing storage
    in place; the repr never shows it.
    """

    __slots__ = ("identifier", "_secret")

    def __init__(self, identifier: str, secret: bytes | bytearray | str):
        self.identifier = str(identifier)
        if isinstance(secret, str):
            secret = secret.encode("utf-8")
        self._secret = bytearray(secret)

    @property
    def secret(self) -> str:
        return self._secret.decode("utf-8")

    def is_wiped(self) -> bool:
        return not any(self._secret)

    def wipe(self) -> None:
        for i in range(len(self._secret)):
            self._secret[i] = 0
        self.identifier = ""

    def __repr__(self) -> str:
        return f"CredentialPair(identifier={self.identifier!r}, secret=***REDACTED***)"

    __str__ = __repr__


class CredentialManager:
    """
    Owns the credential pair for the device API client.

    acquire() makes one synchronous broker call. Failure leaves the manager
    uninitialized and raises AuthError; callers degrade instead of exiting.
    """

    def __init__(self, broker: CredentialBroker, *, account: str = "lh-server", logger=None, event_log=None):
        self.broker = broker
        self.account = str(account)
        self.logger = logger
        self.event_log = event_log
        self._lock = threading.Lock()
        self._pair: Optional[CredentialPair] = None

    def acquire(self) -> CredentialPair:
        # drop whatever we held before asking again
        self.clear()
        try:
            identifier, secret = self.broker.get_credentials(self.account)
        except AuthError as e:
            self._warn(f"Failed to acquire credentials via {self.broker.name}: {e.user_message}")
            raise
        except Exception as e:  # noqa: BLE001
            self._warn(f"Failed to acquire credentials via {self.broker.name}: {type(e).__name__}")
            raise AuthError("Credential broker error.", broker=self.broker.name) from e
        pair = CredentialPair(identifier, secret)
        del secret
        with self._lock:
            self._pair = pair
        if self.logger:
            self.logger.info("Device API credentials acquired")
        if self.event_log is not None:
            self.event_log.info("Device API credentials acquired")
        return pair

    def clear(self) -> None:
        with self._lock:
            pair = self._pair
            self._pair = None
        if pair is not None:
            pair.wipe()
            if self.logger:
                self.logger.info("Device API credentials cleared")

    def is_initialized(self) -> bool:
        with self._lock:
            return self._pair is not None

    def current(self) -> CredentialPair:
        with self._lock:
            if self._pair is None:
                raise NotInitializedError()
            return self._pair

    def auth_parts(self) -> Tuple[str, str]:
        with self._lock:
            if self._pair is None:
                raise NotInitializedError()
            return self._pair.identifier, self._pair.secret

    def _warn(self, msg: str) -> None:
        if self.logger:
            self.logger.warning(msg)
        if self.event_log is not None:
            self.event_log.warning(msg)
