"""FastAPI application factory for the OAuth session relay."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from starlette.responses import Response

from relay.core.settings import OAuthSettings
from relay.crypto.keys import KeyStore
from relay.errors import RelayError
from relay.flow.controller import FlowController
from relay.flow.routes import router as auth_router
from relay.provider.client import ProviderClient

logger = logging.getLogger(__name__)


async def _relay_error_handler(_request: Request, exc: Exception) -> Response:
    assert isinstance(exc, RelayError)
    logger.error("Request failed: %s %s", exc.status_code, exc, exc_info=exc)
    return exc.to_response()


def create_app(
    settings: OAuthSettings | None = None,
    provider: ProviderClient | None = None,
) -> FastAPI:
    """Build and configure the FastAPI application."""
    settings = settings or OAuthSettings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    key_store = KeyStore(settings.key_paths())
    provider = provider or ProviderClient(settings.endpoints())
    controller = FlowController(settings, key_store, provider)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        # Resolve keys before serving so concurrent first requests share one pair.
        key_store.get_or_init()
        yield

    app = FastAPI(
        title="OAuth Session Relay",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.flow_controller = controller
    app.add_exception_handler(RelayError, _relay_error_handler)

    app.include_router(auth_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app
