"""
Podbean OAuth2 authorization code flow.

The handler has two entry points, both driven by the middleware:

- ``apply_response_challenge``: turns a challenged 401 into a redirect to
  Podbean's consent screen. No network calls.
- ``invoke_reply_path``: handles Podbean redirecting the browser back,
  exchanges the code, looks up the podcast and signs the identity in.
"""

import logging
import secrets
from urllib.parse import quote

import anyio
from authlib.common.security import generate_token
from authlib.common.urls import add_params_to_uri
from fastapi import status
from starlette.requests import ClientDisconnect, Request
from starlette.responses import RedirectResponse, Response

from podbean_auth.core.contexts import (
    PodbeanAuthenticatedContext,
    PodbeanReturnEndpointContext,
)
from podbean_auth.core.domain import (
    NAME_IDENTIFIER_CLAIM,
    XML_SCHEMA_STRING,
    AuthenticationProperties,
    AuthenticationTicket,
    Claim,
    ClaimsIdentity,
)
from podbean_auth.core.exceptions import PodbeanError
from podbean_auth.core.ports import PodbeanApi
from podbean_auth.infrastructure.podbean_client import AUTHORIZATION_ENDPOINT
from podbean_auth.oauth.challenge import AuthenticationChallenge, get_challenge
from podbean_auth.oauth.config import AuthenticationMode, PodbeanAuthenticationOptions
from podbean_auth.oauth.session import sign_in


logger = logging.getLogger(__name__)

CORRELATION_COOKIE_MAX_AGE = 15 * 60

# nginx convention for a request the client abandoned
HTTP_CLIENT_CLOSED_REQUEST = 499


def _escape(value: str) -> str:
    """Percent-encode everything except RFC 3986 unreserved characters."""
    return quote(value, safe="")


def _single_query_value(request: Request, key: str) -> str | None:
    values = request.query_params.getlist(key)
    if len(values) != 1:
        return None
    return values[0]


class PodbeanAuthenticationHandler:
    """Runs the challenge and callback steps for one set of options."""

    def __init__(self, options: PodbeanAuthenticationOptions, api: PodbeanApi):
        self.options = options
        self.api = api

    # ------------------------------------------------------------------
    # URLs
    # ------------------------------------------------------------------

    def get_base_uri(self, request: Request) -> str:
        """
        Externally visible ``scheme://host`` of this server.

        Forwarded headers are used only when the operator opted in and
        both are present.
        """
        if self.options.trust_forwarded_headers:
            forwarded_proto = request.headers.get("X-Forwarded-Proto")
            forwarded_host = request.headers.get(self.options.forwarded_host_header)
            if forwarded_proto is not None and forwarded_host is not None:
                return f"{forwarded_proto}://{forwarded_host}"

        return f"{request.url.scheme}://{request.url.netloc}"

    def build_redirect_uri(self, request: Request) -> str:
        """Callback URL sent to Podbean; must be identical on both legs."""
        return self.get_base_uri(request) + self.options.callback_path

    def build_authorization_url(self, redirect_uri: str, state: str) -> str:
        scope = " ".join(self.options.scope)
        return (
            AUTHORIZATION_ENDPOINT
            + "?response_type=code"
            + "&client_id=" + _escape(self.options.app_id or "")
            + "&redirect_uri=" + _escape(redirect_uri)
            + "&scope=" + _escape(scope)
            + "&state=" + _escape(state)
        )

    # ------------------------------------------------------------------
    # Correlation (OAuth2 10.12 CSRF)
    # ------------------------------------------------------------------

    def generate_correlation_id(self, properties: AuthenticationProperties) -> str:
        correlation_id = generate_token(32)
        properties.correlation_id = correlation_id
        return correlation_id

    def set_correlation_cookie(
        self, request: Request, response: Response, correlation_id: str
    ) -> None:
        response.set_cookie(
            key=self.options.correlation_cookie_name,
            value=correlation_id,
            max_age=CORRELATION_COOKIE_MAX_AGE,
            httponly=True,
            secure=self.get_base_uri(request).startswith("https"),
            samesite="lax",
        )

    def validate_correlation_id(
        self, request: Request, properties: AuthenticationProperties
    ) -> bool:
        cookie = request.cookies.get(self.options.correlation_cookie_name)
        if not cookie:
            logger.warning(
                f"{self.options.correlation_cookie_name} cookie not found."
            )
            return False

        correlation_id = properties.correlation_id
        if not correlation_id:
            logger.warning("Correlation id missing from authorization state.")
            return False

        if not secrets.compare_digest(cookie, correlation_id):
            logger.warning(
                f"{self.options.correlation_cookie_name} state property mismatch."
            )
            return False

        properties.correlation_id = None
        return True

    # ------------------------------------------------------------------
    # Challenge step
    # ------------------------------------------------------------------

    def lookup_challenge(self, request: Request) -> AuthenticationChallenge | None:
        """Find the challenge that applies to this handler, if any."""
        challenge = get_challenge(request)
        active = self.options.authentication_mode is AuthenticationMode.ACTIVE

        if challenge is None:
            return AuthenticationChallenge() if active else None
        if not challenge.authentication_types:
            return challenge if active else None
        if self.options.authentication_type in challenge.authentication_types:
            return challenge
        return None

    def apply_response_challenge(self, request: Request, response: Response) -> Response:
        """
        Replace a challenged 401 with a redirect to Podbean.

        Returns the original response untouched when no challenge applies.
        """
        if response.status_code != status.HTTP_401_UNAUTHORIZED:
            return response

        challenge = self.lookup_challenge(request)
        if challenge is None:
            return response

        base_uri = self.get_base_uri(request)
        current_uri = base_uri + request.url.path
        if request.url.query:
            current_uri += "?" + request.url.query
        redirect_uri = self.build_redirect_uri(request)

        properties = challenge.properties.model_copy(deep=True)
        if not properties.redirect_uri:
            properties.redirect_uri = current_uri

        correlation_id = self.generate_correlation_id(properties)
        state = self.options.state_data_format.protect(properties)
        authorization_url = self.build_authorization_url(redirect_uri, state)

        redirect = RedirectResponse(
            url=authorization_url, status_code=status.HTTP_302_FOUND
        )
        self.set_correlation_cookie(request, redirect, correlation_id)

        logger.info(
            "Redirecting to Podbean for authorization",
            extra={"callback": redirect_uri},
        )
        return redirect

    # ------------------------------------------------------------------
    # Callback step
    # ------------------------------------------------------------------

    async def _exchange_and_lookup(self, code: str, redirect_uri: str):
        token = await self.api.exchange_code(code, redirect_uri)
        podcast = await self.api.get_podcast(token.access_token)
        debug_token = await self.api.debug_token(token.access_token)
        return token, podcast, debug_token

    async def _cancel_on_disconnect(
        self, request: Request, cancel_scope: anyio.CancelScope
    ) -> None:
        """Cancel ``cancel_scope`` once the client goes away."""
        try:
            # Buffer the body so the app downstream can still read it
            await request.body()
            while True:
                message = await request.receive()
                if message["type"] == "http.disconnect":
                    break
        except ClientDisconnect:
            pass
        logger.info("Client disconnected during sign-in, abandoning Podbean calls")
        cancel_scope.cancel()

    async def call_podbean(self, request: Request, code: str, redirect_uri: str):
        """
        Run the token exchange, podcast lookup and token introspection.

        The calls run while a watcher listens for ``http.disconnect``; if
        the client leaves first, the in-flight call is cancelled and
        ``ClientDisconnect`` is raised.

        Raises:
            PodbeanError: If one of the calls fails.
            ClientDisconnect: If the client disconnected first.
        """
        result = None
        error: PodbeanError | None = None
        async with anyio.create_task_group() as task_group:
            task_group.start_soon(
                self._cancel_on_disconnect, request, task_group.cancel_scope
            )
            try:
                result = await self._exchange_and_lookup(code, redirect_uri)
            except PodbeanError as e:
                error = e
            task_group.cancel_scope.cancel()

        if error is not None:
            raise error
        if result is None:
            raise ClientDisconnect()
        return result

    async def authenticate(self, request: Request) -> AuthenticationTicket | None:
        """
        Turn a Podbean callback into a ticket.

        Returns:
            None when the callback is malformed or the state is invalid;
            an identity-less ticket when the CSRF check or a Podbean call
            fails; otherwise a ticket carrying the podcast identity.

        Raises:
            ClientDisconnect: If the client went away during the Podbean calls.
        """
        code = _single_query_value(request, "code")
        state = _single_query_value(request, "state")
        if code is None or state is None:
            logger.warning("Callback without exactly one code and one state")
            return None

        properties = self.options.state_data_format.unprotect(state)
        if properties is None:
            return None

        if not self.validate_correlation_id(request, properties):
            return AuthenticationTicket(identity=None, properties=properties)

        redirect_uri = self.build_redirect_uri(request)

        try:
            token, podcast, debug_token = await self.call_podbean(
                request, code, redirect_uri
            )
        except PodbeanError as e:
            logger.error(
                f"Podbean {e.kind} error during sign-in: {e}",
                extra={"error_kind": e.kind, "endpoint": e.endpoint},
            )
            return AuthenticationTicket(identity=None, properties=properties)

        podcast = podcast.model_copy(update={"id": debug_token.podcast_id})

        context = PodbeanAuthenticatedContext(
            request,
            podcast,
            token.access_token,
            token.refresh_token,
            token.expires_in,
        )
        authentication_type = self.options.authentication_type
        context.identity = ClaimsIdentity(authentication_type=authentication_type)
        if context.id:
            context.identity.add_claim(
                Claim(
                    type=NAME_IDENTIFIER_CLAIM,
                    value=context.id,
                    value_type=XML_SCHEMA_STRING,
                    issuer=authentication_type,
                )
            )
        if context.name:
            context.identity.add_claim(
                Claim(
                    type=context.identity.name_claim_type,
                    value=context.name,
                    value_type=XML_SCHEMA_STRING,
                    issuer=authentication_type,
                )
            )
        context.properties = properties

        await self.options.provider.authenticated(context)

        return AuthenticationTicket(
            identity=context.identity, properties=context.properties
        )

    def is_callback_path(self, request: Request) -> bool:
        return request.url.path == self.options.callback_path

    async def invoke_reply_path(self, request: Request) -> Response | None:
        """
        Handle a request to the callback path.

        Returns:
            The response to send, or None to let the request continue
            through the rest of the application.
        """
        if not self.is_callback_path(request):
            return None

        try:
            ticket = await self.authenticate(request)
        except ClientDisconnect:
            # Nobody is listening; the response only unwinds the middleware
            response = Response(status_code=HTTP_CLIENT_CLOSED_REQUEST)
            response.delete_cookie(self.options.correlation_cookie_name)
            return response

        if ticket is None:
            logger.warning("Invalid return state, unable to redirect.")
            response = Response(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
            response.delete_cookie(self.options.correlation_cookie_name)
            return response

        context = PodbeanReturnEndpointContext(request, ticket)
        context.sign_in_as_authentication_type = (
            self.options.sign_in_as_authentication_type
        )
        context.redirect_uri = ticket.properties.redirect_uri

        await self.options.provider.return_endpoint(context)

        if context.sign_in_as_authentication_type and context.identity is not None:
            grant_identity = context.identity
            if (
                grant_identity.authentication_type
                != context.sign_in_as_authentication_type
            ):
                grant_identity = grant_identity.with_authentication_type(
                    context.sign_in_as_authentication_type
                )
            sign_in(request, grant_identity, context.properties)

        if context.is_request_completed:
            context.response.delete_cookie(self.options.correlation_cookie_name)
            return context.response
        if context.redirect_uri is None:
            return None

        redirect_uri = context.redirect_uri
        if context.identity is None:
            redirect_uri = add_params_to_uri(redirect_uri, [("error", "access_denied")])

        response = RedirectResponse(url=redirect_uri, status_code=status.HTTP_302_FOUND)
        response.delete_cookie(self.options.correlation_cookie_name)
        return response
