"""
Contexts passed to the provider notification hooks.

A hook receives one of these, may inspect or replace the identity and
properties, and for the return endpoint may complete the response itself.
"""

from typing import Optional

from starlette.requests import Request
from starlette.responses import Response

from podbean_auth.core.domain import (
    AuthenticationProperties,
    AuthenticationTicket,
    ClaimsIdentity,
    PodbeanPodcast,
)


class PodbeanAuthenticatedContext:
    """Created once Podbean has vouched for the podcast, before the ticket is issued."""

    def __init__(
        self,
        request: Request,
        podcast: PodbeanPodcast,
        access_token: str,
        refresh_token: Optional[str],
        expires_in: Optional[str | int | float],
    ):
        self.request = request
        self.podcast = podcast
        self.access_token = access_token
        self.refresh_token = refresh_token
        self.expires_in = expires_in
        self.identity: Optional[ClaimsIdentity] = None
        self.properties = AuthenticationProperties()

    @property
    def id(self) -> Optional[str]:
        return self.podcast.id

    @property
    def name(self) -> Optional[str]:
        return self.podcast.display_name


class PodbeanReturnEndpointContext:
    """
    Created when the callback has produced a ticket.

    Hooks may change ``redirect_uri`` or ``sign_in_as_authentication_type``,
    or call ``complete()`` with their own response to stop the handler from
    redirecting.
    """

    def __init__(self, request: Request, ticket: AuthenticationTicket):
        self.request = request
        self.identity: Optional[ClaimsIdentity] = ticket.identity
        self.properties = ticket.properties
        self.sign_in_as_authentication_type: Optional[str] = None
        self.redirect_uri: Optional[str] = None
        self.response: Optional[Response] = None

    @property
    def is_request_completed(self) -> bool:
        return self.response is not None

    def complete(self, response: Response) -> None:
        """Finish the request with the given response."""
        self.response = response
