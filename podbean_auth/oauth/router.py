"""
Sign-in API endpoints.

- GET /login - Challenge Podbean, then return to ``return_url``
- GET /logout - Forget the signed-in identity

The callback itself is served by the middleware, not by a route.
"""

import logging

from fastapi import APIRouter, Query, Request, status
from fastapi.responses import RedirectResponse, Response

from podbean_auth.oauth.challenge import challenge
from podbean_auth.oauth.dependencies import Options
from podbean_auth.oauth.session import sign_out


logger = logging.getLogger(__name__)

router = APIRouter(tags=["authentication"])


def _local_path(url: str) -> str:
    """Only allow same-site relative paths as return targets."""
    if not url.startswith("/") or url.startswith("//"):
        return "/"
    return url


@router.get("/login")
async def login(
    request: Request,
    options: Options,
    return_url: str = Query(default="/me"),
) -> Response:
    """
    Start the Podbean authorization flow.

    Responds 401 with a recorded challenge; the middleware turns it into
    the redirect to Podbean's consent screen.
    """
    target = _local_path(return_url)
    logger.info(f"Starting Podbean sign-in, returning to {target}")
    return challenge(request, options.authentication_type, redirect_uri=target)


@router.get("/logout")
async def logout(request: Request, options: Options) -> RedirectResponse:
    """Remove the signed-in identity and go home."""
    sign_in_type = options.sign_in_as_authentication_type or options.authentication_type
    if sign_out(request, sign_in_type):
        logger.info("Signed out")
    return RedirectResponse(url="/", status_code=status.HTTP_302_FOUND)
