"""
FastAPI dependencies for Podbean sign-in.

Provides dependency injection for the options and the signed-in identity.
"""

import logging
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from podbean_auth.core.domain import ClaimsIdentity
from podbean_auth.oauth.config import PodbeanAuthenticationOptions, get_podbean_options
from podbean_auth.oauth.session import get_signed_in_identity


logger = logging.getLogger(__name__)


def get_options(request: Request) -> PodbeanAuthenticationOptions:
    """
    Provide the options the application was built with.

    Falls back to the environment-loaded singleton.
    """
    options = getattr(request.app.state, "podbean_options", None)
    if options is None:
        options = get_podbean_options()
    return options


async def get_current_identity(
    request: Request,
    options: Annotated[PodbeanAuthenticationOptions, Depends(get_options)],
) -> ClaimsIdentity:
    """
    Dependency to get the signed-in identity.

    Raises:
        HTTPException: 401 if nobody is signed in (which, in active mode,
            the middleware turns into a redirect to Podbean)
    """
    sign_in_type = options.sign_in_as_authentication_type or options.authentication_type
    identity = get_signed_in_identity(request, sign_in_type)
    if identity is None:
        logger.info("No signed-in identity in session")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return identity


# Type aliases for cleaner dependency injection
Options = Annotated[PodbeanAuthenticationOptions, Depends(get_options)]
CurrentIdentity = Annotated[ClaimsIdentity, Depends(get_current_identity)]
