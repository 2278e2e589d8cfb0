"""
FastAPI application demonstrating sign-in with Podbean.

This module wires dependencies and configures the application.
The sign-in flow lives in podbean_auth/oauth, Podbean API access in
podbean_auth/infrastructure.
"""

import logging
import os
from contextlib import asynccontextmanager
from datetime import UTC, datetime

# Configure logging FIRST, before other local imports
from podbean_auth.logging_config import setup_global_logging

setup_global_logging()

# Now import other modules (they will use the configured logging)
import httpx  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from starlette.middleware.sessions import SessionMiddleware  # noqa: E402

from podbean_auth.infrastructure.podbean_client import PodbeanClient  # noqa: E402
from podbean_auth.oauth import router as oauth_router  # noqa: E402
from podbean_auth.oauth.config import (  # noqa: E402
    PodbeanAuthenticationOptions,
    get_podbean_options,
)
from podbean_auth.oauth.dependencies import CurrentIdentity  # noqa: E402
from podbean_auth.oauth.handler import PodbeanAuthenticationHandler  # noqa: E402
from podbean_auth.oauth.middleware import PodbeanAuthenticationMiddleware  # noqa: E402

logger = logging.getLogger(__name__)


# ============================================================================
# Application Factory
# ============================================================================


def create_app(
    options: PodbeanAuthenticationOptions | None = None,
    http_client: httpx.AsyncClient | None = None,
    session_secret_key: str | None = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        options: Podbean options (loaded from the environment if omitted)
        http_client: Shared client for Podbean calls (created if omitted)
        session_secret_key: Session signing key (SESSION_SECRET_KEY if omitted)

    Raises:
        ValueError: If required configuration is missing
    """
    if options is None:
        options = get_podbean_options()
    options.validate()

    session_secret_key = session_secret_key or os.getenv("SESSION_SECRET_KEY")
    if not session_secret_key:
        raise ValueError("SESSION_SECRET_KEY is not set in the environment.")

    # One client for all requests; httpx clients are safe to share
    if http_client is None:
        http_client = httpx.AsyncClient()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan context manager.

        Closes the shared HTTP client on shutdown.
        """
        logger.info("Application starting up...")
        yield
        logger.info("Shutting down application...")
        try:
            await http_client.aclose()
        except Exception as e:
            logger.warning(f"Error closing HTTP client during shutdown: {e}")

    app = FastAPI(
        title="Podbean Sign-In",
        description="Signs podcasters in with their Podbean account",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.podbean_options = options
    app.state.http_client = http_client

    handler = PodbeanAuthenticationHandler(
        options,
        PodbeanClient(http_client, options.app_id, options.app_secret),
    )

    # Added last so it wraps the Podbean middleware: sign-in writes the session
    app.add_middleware(PodbeanAuthenticationMiddleware, handler=handler)
    app.add_middleware(SessionMiddleware, secret_key=session_secret_key)

    # ========================================================================
    # Health Check Endpoints
    # ========================================================================

    @app.get("/")
    async def root():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "service": "podbean-auth",
            "timestamp": datetime.now(UTC).isoformat(),
        }

    @app.get("/health")
    async def health():
        """Health check endpoint for Cloud Run."""
        return {"status": "healthy"}

    # ========================================================================
    # Protected Endpoints
    # ========================================================================

    @app.get("/me")
    async def me(identity: CurrentIdentity):
        """
        Protected endpoint returning the signed-in podcast.

        Unauthenticated requests are redirected to Podbean.
        """
        logger.info(f"Profile accessed by podcast: {identity.name_identifier}")
        return {
            "status": "success",
            "podcast": {
                "id": identity.name_identifier,
                "name": identity.name,
            },
        }

    app.include_router(oauth_router.router)

    return app


# ============================================================================
# Main Entry Point
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", 8080))
    uvicorn.run(create_app(), host="0.0.0.0", port=port)
