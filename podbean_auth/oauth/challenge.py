"""
Explicit authentication challenges.

Endpoints call ``challenge()`` to ask the middleware for a redirect to
Podbean, optionally with a redirect target and extra properties that will
survive the round trip.
"""

from dataclasses import dataclass, field

from fastapi import status
from starlette.requests import Request
from starlette.responses import Response

from podbean_auth.core.domain import AuthenticationProperties

CHALLENGE_STATE_KEY = "authentication_challenge"


@dataclass
class AuthenticationChallenge:
    """
    A pending challenge recorded on the request.

    An empty ``authentication_types`` means "challenge every active handler".
    """

    authentication_types: tuple[str, ...] = ()
    properties: AuthenticationProperties = field(
        default_factory=AuthenticationProperties
    )


def challenge(
    request: Request,
    *authentication_types: str,
    redirect_uri: str | None = None,
    items: dict[str, str] | None = None,
) -> Response:
    """
    Record a challenge and return the 401 response that triggers it.

    Args:
        request: The current request
        authentication_types: Handlers to challenge (all active ones if empty)
        redirect_uri: Where to return after sign-in (defaults to this URL)
        items: Extra properties carried through the round trip

    Returns:
        Empty 401 response for the endpoint to return
    """
    properties = AuthenticationProperties(
        redirect_uri=redirect_uri,
        items=dict(items or {}),
    )
    setattr(
        request.state,
        CHALLENGE_STATE_KEY,
        AuthenticationChallenge(tuple(authentication_types), properties),
    )
    return Response(status_code=status.HTTP_401_UNAUTHORIZED)


def get_challenge(request: Request) -> AuthenticationChallenge | None:
    """Return the challenge recorded on this request, if any."""
    return getattr(request.state, CHALLENGE_STATE_KEY, None)
