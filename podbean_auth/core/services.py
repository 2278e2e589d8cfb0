"""
Default notification provider.

Applications that only need to react to one of the two hooks can pass a
plain coroutine function instead of implementing the whole port.
"""

import logging
from typing import Awaitable, Callable, Optional

from podbean_auth.core.contexts import (
    PodbeanAuthenticatedContext,
    PodbeanReturnEndpointContext,
)

logger = logging.getLogger(__name__)

AuthenticatedHook = Callable[[PodbeanAuthenticatedContext], Awaitable[None]]
ReturnEndpointHook = Callable[[PodbeanReturnEndpointContext], Awaitable[None]]


class DefaultPodbeanAuthenticationProvider:
    """
    Provider whose hooks delegate to optional callbacks.

    With no callbacks configured the identity is accepted as built and the
    handler performs the default redirect.
    """

    def __init__(
        self,
        on_authenticated: Optional[AuthenticatedHook] = None,
        on_return_endpoint: Optional[ReturnEndpointHook] = None,
    ):
        self.on_authenticated = on_authenticated
        self.on_return_endpoint = on_return_endpoint

    async def authenticated(self, context: PodbeanAuthenticatedContext) -> None:
        if self.on_authenticated is not None:
            await self.on_authenticated(context)

    async def return_endpoint(self, context: PodbeanReturnEndpointContext) -> None:
        if self.on_return_endpoint is not None:
            await self.on_return_endpoint(context)
