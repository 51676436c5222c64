"""ImageryProvider abstract base class.

Defines the contract that every imagery provider adapter must implement.
The job tracker interacts exclusively with this interface; it never
knows which concrete provider is behind it.

Lifecycle:
    1. ``ensure_session()``: establish the provider session once.
    2. ``fetch_thumbnail(region)``: search the archive and request a
       rendered thumbnail, returning an ``ImageReference``.

Session establishment is delegated to a ``SessionManager`` built around
the adapter's ``Authenticator``, so concurrent first calls join a single
authentication attempt.
"""

from __future__ import annotations

import abc
from typing import TYPE_CHECKING

from sentinel_preview.core.exceptions import ServiceError
from sentinel_preview.models.imagery import ImageryFilters, RenderParams

if TYPE_CHECKING:
    from sentinel_preview.models.imagery import ImageReference, ProviderConfig
    from sentinel_preview.models.region import Region
    from sentinel_preview.providers.session import Authenticator, Session, SessionManager


class ImageryProvider(abc.ABC):
    """Abstract base class for imagery provider adapters.

    Concrete implementations must override ``create_authenticator`` and
    ``fetch_thumbnail``. The constructor receives a ``ProviderConfig``
    which carries the API URL, credentials, and the session timeout.

    Example usage::

        provider = get_provider("earth_engine", config)
        reference = provider.fetch_thumbnail(region)
    """

    def __init__(
        self,
        config: ProviderConfig,
        *,
        filters: ImageryFilters | None = None,
        render: RenderParams | None = None,
        authenticator: Authenticator | None = None,
    ) -> None:
        from sentinel_preview.providers.session import SessionManager

        self._config = config
        self._filters = filters or ImageryFilters()
        self._render = render or RenderParams()
        self._sessions: SessionManager = SessionManager(
            authenticator or self.create_authenticator(),
            timeout_s=config.auth_timeout_s,
            provider=config.name,
        )

    @property
    def name(self) -> str:
        """Return the provider name from configuration."""
        return self._config.name

    @property
    def config(self) -> ProviderConfig:
        """Return the provider configuration (read-only)."""
        return self._config

    @property
    def filters(self) -> ImageryFilters:
        return self._filters

    @property
    def render(self) -> RenderParams:
        return self._render

    @property
    def sessions(self) -> SessionManager:
        """Return the session manager owning this provider's session."""
        return self._sessions

    def ensure_session(self) -> Session:
        """Establish the provider session on first call; reuse it afterwards.

        Raises:
            AuthenticationError: If the provider rejects the credentials.
            SessionTimeoutError: If establishment exceeds the bounded wait.
        """
        return self._sessions.get()

    # ------------------------------------------------------------------
    # Abstract methods: every adapter must implement these
    # ------------------------------------------------------------------

    @abc.abstractmethod
    def create_authenticator(self) -> Authenticator:
        """Return the authenticator used to establish this provider's session."""

    @abc.abstractmethod
    def fetch_thumbnail(self, region: Region) -> ImageReference:
        """Find the least-cloudy scene over *region* and render a thumbnail.

        Implementations must call ``ensure_session()`` before talking to
        the remote service.

        Args:
            region: The polygon boundary to search.

        Returns:
            An ``ImageReference`` whose URL resolves to the rendered image.

        Raises:
            AuthenticationError / SessionTimeoutError: From ``ensure_session``.
            NoResultsError: If no scene matches the filters.
            RemoteServiceError: On any other transport or API failure.
        """


# ---------------------------------------------------------------------------
# Provider exceptions
# ---------------------------------------------------------------------------


class ProviderError(ServiceError):
    """Base exception for provider adapter errors.

    Attributes:
        provider: Name of the provider that raised the error.
        message: Human-readable error description.
        retryable: Whether a later submission could succeed.
    """

    default_stage = "provider"
    default_code = "PROVIDER_ERROR"

    def __init__(
        self,
        provider: str,
        message: str,
        *,
        retryable: bool = False,
    ) -> None:
        self.provider = provider
        super().__init__(
            message,
            retryable=retryable,
            code=self.default_code,
            stage=self.default_stage,
        )

    def __str__(self) -> str:
        return f"[{self.provider}] {self.message}"


class AuthenticationError(ProviderError):
    """The provider rejected (or was never given) valid credentials."""

    default_stage = "session"
    default_code = "PROVIDER_AUTH_FAILED"

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(provider, message, retryable=False)


class SessionTimeoutError(ProviderError):
    """Session establishment did not finish within the bounded wait."""

    default_stage = "session"
    default_code = "PROVIDER_SESSION_TIMEOUT"

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(provider, message, retryable=True)


class NoResultsError(ProviderError):
    """No archive scene matched the region, date window, and cloud filter."""

    default_stage = "fetch_thumbnail"
    default_code = "PROVIDER_NO_RESULTS"

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(provider, message, retryable=False)


class RemoteServiceError(ProviderError):
    """Any other transport or API failure reported by the remote service."""

    default_stage = "fetch_thumbnail"
    default_code = "PROVIDER_REMOTE_FAILED"
