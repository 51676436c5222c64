"""Provider session management with single-flight initialisation.

The remote imagery service needs one authenticated session per process.
``SessionManager`` guarantees that:

- the first caller starts the authentication attempt,
- callers arriving while that attempt is in flight wait on the same
  attempt instead of starting another one,
- callers arriving after it succeeded reuse the cached session,
- a failed or timed-out attempt is discarded, so the next caller
  starts a fresh one.

Each attempt runs on its own daemon thread so that callers can bound
their wait (``timeout_s``) even when the remote service stalls. An
attempt that outlives its waiters still caches its session if it
eventually succeeds.

Sessions never expire; there is no re-authentication policy.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from sentinel_preview.core.constants import DEFAULT_AUTH_TIMEOUT_S
from sentinel_preview.providers.base import (
    AuthenticationError,
    ProviderError,
    SessionTimeoutError,
)

if TYPE_CHECKING:
    from datetime import datetime

logger = logging.getLogger("sentinel_preview.providers.session")


@dataclass(frozen=True, slots=True)
class Session:
    """An established provider session.

    Attributes:
        provider: Name of the provider the session belongs to.
        established_at: When authentication completed.
        handle: Provider-specific client object (e.g. an opened STAC
            catalogue), or ``None`` when the provider library keeps the
            session in module state.
    """

    provider: str
    established_at: datetime
    handle: object | None = None


class Authenticator(Protocol):
    """Capability that establishes a provider session.

    Implementations perform the network round-trip and raise
    ``AuthenticationError`` when credentials are rejected. Tests
    substitute a fake.
    """

    def authenticate(self) -> Session: ...


class SessionManager:
    """Start-once guard around an ``Authenticator``."""

    def __init__(
        self,
        authenticator: Authenticator,
        *,
        timeout_s: float = DEFAULT_AUTH_TIMEOUT_S,
        provider: str = "",
    ) -> None:
        self._authenticator = authenticator
        self._timeout_s = timeout_s
        self._provider = provider
        self._lock = threading.Lock()
        self._session: Session | None = None
        self._in_flight: Future[Session] | None = None
        self._in_flight_deadline = 0.0
        self._attempts = 0

    @property
    def session(self) -> Session | None:
        """The cached session, or ``None`` before the first success."""
        with self._lock:
            return self._session

    @property
    def attempts(self) -> int:
        """Number of authentication attempts started so far."""
        with self._lock:
            return self._attempts

    def get(self) -> Session:
        """Return the session, establishing it on first use.

        Raises:
            AuthenticationError: If the attempt failed.
            SessionTimeoutError: If the attempt did not finish within
                ``timeout_s`` of when it started. Callers that joined an
                attempt late share its deadline.
        """
        with self._lock:
            if self._session is not None:
                return self._session
            future = self._in_flight
            if future is None:
                future = self._start_attempt()
            remaining = max(0.0, self._in_flight_deadline - time.monotonic())

        try:
            return future.result(timeout=remaining)
        except FutureTimeoutError as exc:
            self._discard(future)
            msg = f"Session establishment exceeded {self._timeout_s:g}s"
            logger.warning("Session timeout | provider=%s | timeout_s=%s", self._provider, self._timeout_s)
            raise SessionTimeoutError(self._provider, msg) from exc
        except ProviderError:
            self._discard(future)
            raise
        except Exception as exc:
            self._discard(future)
            msg = f"Session establishment failed: {exc}"
            raise AuthenticationError(self._provider, msg) from exc

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _start_attempt(self) -> Future[Session]:
        """Create the in-flight future and its worker thread. Lock must be held."""
        future: Future[Session] = Future()
        future.set_running_or_notify_cancel()
        self._in_flight = future
        self._in_flight_deadline = time.monotonic() + self._timeout_s
        self._attempts += 1

        logger.info(
            "Session establishment started | provider=%s | attempt=%d",
            self._provider,
            self._attempts,
        )
        worker = threading.Thread(
            target=self._run_attempt,
            args=(future,),
            name=f"{self._provider or 'provider'}-auth-{self._attempts}",
            daemon=True,
        )
        worker.start()
        return future

    def _run_attempt(self, future: Future[Session]) -> None:
        try:
            session = self._authenticator.authenticate()
        except Exception as exc:  # noqa: BLE001
            logger.warning("Session establishment failed | provider=%s | error=%s", self._provider, exc)
            future.set_exception(exc)
            return

        with self._lock:
            if self._session is None:
                self._session = session
            if self._in_flight is future:
                self._in_flight = None
            session = self._session

        logger.info("Session established | provider=%s", self._provider)
        future.set_result(session)

    def _discard(self, future: Future[Session]) -> None:
        with self._lock:
            if self._in_flight is future:
                self._in_flight = None
