"""
ASGI middleware for correlation ID propagation and request error boundaries.

Extracts or generates x-correlation-id on each request, sets it in the
logging context, and returns it in the response. Also provides an error
boundary that logs full error details while returning sanitized responses.
"""

import json
import traceback
from typing import Dict, Optional

from notebook_backend.core.logging_config import (
    CORRELATION_HEADER,
    generate_correlation_id,
    get_correlation_id,
    get_logger,
    is_production,
    set_correlation_id,
)

logger = get_logger("middleware")


class CorrelationIdMiddleware:
    """ASGI middleware that manages x-correlation-id for every request.

    - Reads x-correlation-id from incoming request headers.
    - Generates a new one if absent.
    - Sets it in the logging context (contextvars).
    - Injects it into the response headers.
    """

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] not in ("http", "websocket"):
            await self.app(scope, receive, send)
            return

        headers = dict(scope.get("headers", []))
        cid_header = CORRELATION_HEADER.encode("utf-8")
        cid = headers.get(cid_header, b"").decode("utf-8")
        if not cid:
            cid = generate_correlation_id()
        set_correlation_id(cid)

        async def send_with_correlation(message):
            if message["type"] == "http.response.start":
                response_headers = list(message.get("headers", []))
                response_headers.append((cid_header, cid.encode("utf-8")))
                message = {**message, "headers": response_headers}
            await send(message)

        await self.app(scope, receive, send_with_correlation)


class ErrorBoundaryMiddleware:
    """ASGI middleware that catches unhandled exceptions at the entrypoint.

    - Logs the full error with stack trace and correlation ID.
    - Returns a sanitized JSON error (no internals leaked in production).
    - In development, includes the error message and stack trace.
    - Always carries the cross-origin headers so browsers can read the error.
    """

    def __init__(self, app, cors_headers: Optional[Dict[str, str]] = None):
        self.app = app
        self.cors_headers = cors_headers or {}

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def tracking_send(message):
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, receive, tracking_send)
        except Exception as exc:
            cid = get_correlation_id()
            logger.error(f"Unhandled exception: {exc}", exc_info=True)

            if response_started:
                raise

            if is_production():
                body = {"error": "Internal server error", "success": False, "correlationId": cid}
            else:
                body = {
                    "error": str(exc),
                    "success": False,
                    "correlationId": cid,
                    "stackTrace": traceback.format_exc(),
                }

            headers = [
                (b"content-type", b"application/json"),
                (CORRELATION_HEADER.encode(), cid.encode()),
            ]
            headers.extend(
                (name.lower().encode(), value.encode())
                for name, value in self.cors_headers.items()
            )

            await send({
                "type": "http.response.start",
                "status": 500,
                "headers": headers,
            })
            await send({
                "type": "http.response.body",
                "body": json.dumps(body).encode(),
            })
