"""
Gateway API routes and application factory.

Provides:
- Document processing       (POST /functions/v1/process-document)
- Additional sources        (POST /functions/v1/process-additional-sources)
- Notebook content          (POST /functions/v1/generate-notebook-content)
- Chat relay                (POST /functions/v1/send-chat-message)
- Health check              (GET  /health)

Each job route also answers OPTIONS preflight requests; any other method
gets a 405 carrying the CORS headers.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Dict, Optional

import httpx
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from notebook_backend.core.logging_config import get_logger
from notebook_backend.core.middleware import CorrelationIdMiddleware, ErrorBoundaryMiddleware
from notebook_backend.gateway.auth import IdentityVerifier
from notebook_backend.gateway.dispatcher import JobDispatcher
from notebook_backend.gateway.handlers import (
    AdditionalSourcesGateway,
    ChatRelayGateway,
    ContentGenerationGateway,
    DocumentProcessingGateway,
    JobGateway,
)
from notebook_backend.gateway.settings import GatewaySettings
from notebook_backend.gateway.status import StatusRecorder
from notebook_backend.gateway.store import ResourceStore

logger = get_logger(__name__)

FUNCTIONS_PREFIX = "/functions/v1"

GATEWAY_CLASSES = {
    "process-document": DocumentProcessingGateway,
    "process-additional-sources": AdditionalSourcesGateway,
    "generate-notebook-content": ContentGenerationGateway,
    "send-chat-message": ChatRelayGateway,
}


def build_gateways(
    settings: GatewaySettings, client: httpx.AsyncClient
) -> Dict[str, JobGateway]:
    """Wire one gateway per job kind around shared collaborators."""
    verifier = IdentityVerifier(settings, client)
    store = ResourceStore(settings, client)
    dispatcher = JobDispatcher(client, timeout=settings.dispatch_timeout)
    recorder = StatusRecorder(store)
    return {
        name: cls(settings, verifier, store, dispatcher, recorder)
        for name, cls in GATEWAY_CLASSES.items()
    }


def health_endpoint(settings: GatewaySettings):
    """
    Configuration health check.

    GET /health

    No authentication. Reports which deployment settings are present,
    never their values. Unhealthy (503) when any is missing.
    """

    async def api_health(request: Request) -> JSONResponse:
        configured = settings.configured()
        healthy = all(configured.values())
        return JSONResponse(
            {
                "healthy": healthy,
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "settings": configured,
            },
            status_code=200 if healthy else 503,
            headers=settings.cors_headers,
        )

    return api_health


def build_routes(settings: GatewaySettings, gateways: Dict[str, JobGateway]) -> list:
    routes = [
        Route(f"{FUNCTIONS_PREFIX}/{name}", gateway.handle)
        for name, gateway in gateways.items()
    ]
    routes.append(Route("/health", health_endpoint(settings), methods=["GET"]))
    return routes


def create_app(
    settings: Optional[GatewaySettings] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> Starlette:
    """
    Build the ASGI application.

    Args:
        settings: Gateway settings; loaded from notebook.toml and the
            environment when omitted.
        http_client: Shared client for the identity service, the store and
            the processors. Created here (and closed on shutdown) when omitted.
    """
    settings = settings or GatewaySettings.load()
    owns_client = http_client is None
    client = http_client or httpx.AsyncClient(timeout=settings.dispatch_timeout)

    @asynccontextmanager
    async def lifespan(app):
        logger.info("Gateway started")
        yield
        if owns_client:
            await client.aclose()
        logger.info("Gateway stopped")

    gateways = build_gateways(settings, client)

    return Starlette(
        routes=build_routes(settings, gateways),
        middleware=[
            Middleware(CorrelationIdMiddleware),
            Middleware(ErrorBoundaryMiddleware, cors_headers=settings.cors_headers),
        ],
        lifespan=lifespan,
    )
