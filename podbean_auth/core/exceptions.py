"""
Domain exceptions for the Podbean sign-in flow.

Provider failures are caught by the authentication handler and turned into
an identity-less ticket. Anything outside this hierarchy is a bug and
propagates to the host application.
"""


class PodbeanError(Exception):
    """Base exception for errors talking to the Podbean API."""

    kind = "provider"

    def __init__(self, message: str, endpoint: str | None = None):
        super().__init__(message)
        self.endpoint = endpoint


class PodbeanHTTPError(PodbeanError):
    """Podbean answered with a non-2xx status code."""

    kind = "http"

    def __init__(self, message: str, status_code: int, endpoint: str | None = None):
        super().__init__(message, endpoint=endpoint)
        self.status_code = status_code


class PodbeanNetworkError(PodbeanError):
    """The request never produced a response (DNS, connect, read errors)."""

    kind = "network"


class PodbeanDecodeError(PodbeanError):
    """The response body was not the JSON shape we expected."""

    kind = "decode"


class StateProtectionError(Exception):
    """Raised when the authorization state cannot be protected or unprotected."""

    pass
