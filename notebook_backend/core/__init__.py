"""
Core infrastructure shared by the gateway.

This module provides:
- Configuration loading (config.py)
- Centralized logging (logging_config.py)
- ASGI middleware (middleware.py)
"""

from notebook_backend.core.config import get, get_env, require_env
from notebook_backend.core.logging_config import (
    configure_logging,
    get_logger,
    get_correlation_id,
    set_correlation_id,
    generate_correlation_id,
    is_production,
    is_development,
    CORRELATION_HEADER,
)
from notebook_backend.core.middleware import CorrelationIdMiddleware, ErrorBoundaryMiddleware

__all__ = [
    # config
    "get",
    "get_env",
    "require_env",
    # logging
    "configure_logging",
    "get_logger",
    "get_correlation_id",
    "set_correlation_id",
    "generate_correlation_id",
    "is_production",
    "is_development",
    "CORRELATION_HEADER",
    # middleware
    "CorrelationIdMiddleware",
    "ErrorBoundaryMiddleware",
]
