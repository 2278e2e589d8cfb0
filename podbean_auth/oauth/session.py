"""
Session sign-in for authenticated identities.

Identities are stored in the Starlette session (a signed cookie managed by
SessionMiddleware) under a key per sign-in authentication type.
"""

import logging

from pydantic import ValidationError
from starlette.requests import Request

from podbean_auth.core.domain import AuthenticationProperties, ClaimsIdentity


logger = logging.getLogger(__name__)


def _session_key(authentication_type: str) -> str:
    return f"auth.{authentication_type}"


def sign_in(
    request: Request,
    identity: ClaimsIdentity,
    properties: AuthenticationProperties | None = None,
) -> None:
    """
    Persist the identity in the session under its authentication type.

    Requires SessionMiddleware to be installed.
    """
    items = properties.items if properties else {}
    request.session[_session_key(identity.authentication_type)] = {
        "identity": identity.model_dump(mode="json"),
        "items": dict(items),
    }
    logger.info(
        "Signed in identity",
        extra={
            "authentication_type": identity.authentication_type,
            "name_identifier": identity.name_identifier,
        },
    )


def sign_out(request: Request, authentication_type: str) -> bool:
    """
    Remove the identity stored for the authentication type.

    Returns:
        True if an identity was removed
    """
    removed = request.session.pop(_session_key(authentication_type), None)
    return removed is not None


def get_signed_in_identity(
    request: Request, authentication_type: str
) -> ClaimsIdentity | None:
    """Load the identity stored for the authentication type, if any."""
    entry = request.session.get(_session_key(authentication_type))
    if not entry:
        return None
    try:
        return ClaimsIdentity.model_validate(entry.get("identity"))
    except (ValidationError, AttributeError) as e:
        logger.warning(f"Discarding unreadable session identity: {e}")
        sign_out(request, authentication_type)
        return None
