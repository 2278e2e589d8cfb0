"""
Port definitions (interfaces) for the core domain.

Ports define the contracts between the authentication handler and the
things it is configured with. Infrastructure adapters implement them.
"""

from typing import Optional, Protocol

from podbean_auth.core.contexts import (
    PodbeanAuthenticatedContext,
    PodbeanReturnEndpointContext,
)
from podbean_auth.core.domain import (
    AuthenticationProperties,
    PodbeanDebugToken,
    PodbeanPodcast,
    PodbeanToken,
)


class StateDataFormat(Protocol):
    """
    Port for protecting the authorization state.

    Implemented by infrastructure adapters (e.g., FernetStateDataFormat).
    ``unprotect`` must return None rather than raise for corrupted,
    expired or foreign-issued data.
    """

    def protect(self, properties: AuthenticationProperties) -> str:
        ...

    def unprotect(self, protected: Optional[str]) -> Optional[AuthenticationProperties]:
        ...


class PodbeanApi(Protocol):
    """
    Port for the three Podbean calls made during a callback.

    Raises:
        PodbeanError: Subclasses describe what went wrong.
    """

    async def exchange_code(self, code: str, redirect_uri: str) -> PodbeanToken:
        """Exchange the authorization code for tokens."""
        ...

    async def get_podcast(self, access_token: str) -> PodbeanPodcast:
        """Fetch the podcast profile for the token."""
        ...

    async def debug_token(self, access_token: str) -> PodbeanDebugToken:
        """Introspect the token to learn the podcast id."""
        ...


class PodbeanAuthenticationProvider(Protocol):
    """
    Port for the host application's notification hooks.

    ``authenticated`` runs before the ticket is issued and may augment the
    identity; ``return_endpoint`` runs after and may take over the response.
    """

    async def authenticated(self, context: PodbeanAuthenticatedContext) -> None:
        ...

    async def return_endpoint(self, context: PodbeanReturnEndpointContext) -> None:
        ...
