"""
Authorization-scoped job-dispatch gateway.

Authenticates callers, checks they own the notebook or source a job targets,
forwards the job to an external processor and records the status outcome.

Components:
- settings.py    - GatewaySettings built once at startup
- errors.py      - GatewayError hierarchy mapped to HTTP statuses
- schemas.py     - Pydantic job request models and status enums
- auth.py        - Bearer extraction and identity verification
- store.py       - Notebook/source store client
- ownership.py   - Owner resolution for notebooks and sources
- payloads.py    - Pure outbound payload builders
- dispatcher.py  - Single-attempt processor dispatch
- status.py      - Best-effort status writes
- handlers.py    - One gateway per job kind
- api.py         - Routes and application factory
"""

from notebook_backend.gateway.settings import GatewaySettings
from notebook_backend.gateway.errors import (
    GatewayError,
    Unauthenticated,
    InvalidRequest,
    NotFound,
    Forbidden,
    MethodNotAllowed,
    Misconfigured,
    DispatchFailure,
    UpstreamInvalidResponse,
)
from notebook_backend.gateway.handlers import (
    JobGateway,
    DocumentProcessingGateway,
    AdditionalSourcesGateway,
    ContentGenerationGateway,
    ChatRelayGateway,
)
from notebook_backend.gateway.api import create_app

__all__ = [
    # Settings
    "GatewaySettings",
    # Errors
    "GatewayError",
    "Unauthenticated",
    "InvalidRequest",
    "NotFound",
    "Forbidden",
    "MethodNotAllowed",
    "Misconfigured",
    "DispatchFailure",
    "UpstreamInvalidResponse",
    # Gateways
    "JobGateway",
    "DocumentProcessingGateway",
    "AdditionalSourcesGateway",
    "ContentGenerationGateway",
    "ChatRelayGateway",
    # App
    "create_app",
]
