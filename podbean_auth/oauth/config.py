"""
Podbean authentication options.

Loaded from environment variables at startup. The state protector and the
notification provider are code-level collaborators and may be swapped in
by the host application.
"""

import os
import logging
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache

from podbean_auth.core.ports import PodbeanAuthenticationProvider, StateDataFormat
from podbean_auth.core.services import DefaultPodbeanAuthenticationProvider
from podbean_auth.infrastructure.state_protection import state_data_format_from_env


logger = logging.getLogger(__name__)

DEFAULT_AUTHENTICATION_TYPE = "Podbean"
DEFAULT_CALLBACK_PATH = "/signin-podbean"
DEFAULT_SCOPES = ["podcast_read"]
DEFAULT_SIGN_IN_TYPE = "Cookies"
DEFAULT_FORWARDED_HOST_HEADER = "X-Original-Host"


class AuthenticationMode(str, Enum):
    """
    How the handler reacts to 401 responses.

    ACTIVE challenges any 401; PASSIVE only challenges when an endpoint
    explicitly asked for this authentication type.
    """

    ACTIVE = "active"
    PASSIVE = "passive"


def _parse_scopes(raw: str | None) -> list[str]:
    if not raw:
        return list(DEFAULT_SCOPES)
    return [s for s in raw.replace(",", " ").split() if s]


@dataclass
class PodbeanAuthenticationOptions:
    """
    Podbean authentication settings.

    Call ``validate()`` at startup to fail fast on missing credentials.
    """

    app_id: str | None
    app_secret: str | None
    scope: list[str] = field(default_factory=lambda: list(DEFAULT_SCOPES))
    # Full public path of the callback. An ASGI root_path is not prepended,
    # so an app mounted under /auth needs "/auth/signin-podbean" here.
    callback_path: str = DEFAULT_CALLBACK_PATH
    authentication_type: str = DEFAULT_AUTHENTICATION_TYPE
    authentication_mode: AuthenticationMode = AuthenticationMode.ACTIVE
    sign_in_as_authentication_type: str | None = DEFAULT_SIGN_IN_TYPE

    # Reverse proxy support: only enable behind a proxy that sets these headers
    trust_forwarded_headers: bool = False
    forwarded_host_header: str = DEFAULT_FORWARDED_HOST_HEADER

    state_data_format: StateDataFormat | None = None
    provider: PodbeanAuthenticationProvider = field(
        default_factory=DefaultPodbeanAuthenticationProvider
    )

    @classmethod
    def from_env(cls) -> "PodbeanAuthenticationOptions":
        """Load configuration from environment variables."""
        state_data_format = None
        if os.getenv("STATE_ENCRYPTION_KEY"):
            state_data_format = state_data_format_from_env()

        return cls(
            app_id=os.getenv("PODBEAN_APP_ID"),
            app_secret=os.getenv("PODBEAN_APP_SECRET"),
            scope=_parse_scopes(os.getenv("PODBEAN_SCOPES")),
            callback_path=os.getenv("PODBEAN_CALLBACK_PATH", DEFAULT_CALLBACK_PATH),
            authentication_mode=AuthenticationMode(
                os.getenv("PODBEAN_AUTHENTICATION_MODE", "active").lower()
            ),
            trust_forwarded_headers=(
                os.getenv("PODBEAN_TRUST_FORWARDED_HEADERS", "false").lower() == "true"
            ),
            forwarded_host_header=os.getenv(
                "PODBEAN_FORWARDED_HOST_HEADER", DEFAULT_FORWARDED_HOST_HEADER
            ),
            state_data_format=state_data_format,
        )

    @property
    def correlation_cookie_name(self) -> str:
        return f".podbean.correlation.{self.authentication_type}"

    def is_configured(self) -> bool:
        """Check if app credentials are present."""
        return bool(self.app_id and self.app_secret)

    def validate(self) -> None:
        """Validate required configuration. Call at startup to fail fast."""
        if not self.is_configured():
            raise ValueError(
                "PODBEAN_APP_ID and PODBEAN_APP_SECRET environment variables are required"
            )
        if not self.callback_path.startswith("/"):
            raise ValueError(
                f"Callback path must start with '/': {self.callback_path!r}"
            )
        if self.state_data_format is None:
            raise ValueError("STATE_ENCRYPTION_KEY environment variable is required")


@lru_cache()
def get_podbean_options() -> PodbeanAuthenticationOptions:
    """Get Podbean authentication options singleton."""
    options = PodbeanAuthenticationOptions.from_env()
    if options.is_configured():
        logger.info("Podbean authentication configured")
    else:
        logger.warning("Podbean authentication not configured (missing credentials)")
    return options
