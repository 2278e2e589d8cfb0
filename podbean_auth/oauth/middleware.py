"""
Starlette middleware that plugs the Podbean handler into the pipeline.

Requests to the callback path are answered by the handler; every other
request goes through the application and, if it comes back as a
challenged 401, is turned into a redirect to Podbean.
"""

import logging

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from podbean_auth.oauth.handler import PodbeanAuthenticationHandler


logger = logging.getLogger(__name__)


class PodbeanAuthenticationMiddleware(BaseHTTPMiddleware):
    """
    Install with ``app.add_middleware(PodbeanAuthenticationMiddleware, handler=...)``.

    SessionMiddleware must wrap this middleware (be added after it) so that
    sign-in on the callback can write to the session.
    """

    def __init__(self, app: ASGIApp, handler: PodbeanAuthenticationHandler):
        super().__init__(app)
        self.handler = handler

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        reply = await self.handler.invoke_reply_path(request)
        if reply is not None:
            return reply

        # Endpoints record challenges here; it must exist before call_next
        request.scope.setdefault("state", {})

        response = await call_next(request)
        if self.handler.is_callback_path(request):
            # Callback the handler let through: the correlation is spent
            response.delete_cookie(self.handler.options.correlation_cookie_name)
        return self.handler.apply_response_challenge(request, response)
