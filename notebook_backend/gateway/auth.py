"""
Caller authentication for the gateway.

Provides:
- Bearer credential extraction from the Authorization header
- Identity verification against the auth service (/auth/v1/user)

The verified user id is the only identity the gateway ever acts on.
"""

from dataclasses import dataclass
from typing import Optional

import httpx
from starlette.requests import Request

from notebook_backend.core.logging_config import get_logger
from notebook_backend.gateway.errors import Unauthenticated
from notebook_backend.gateway.settings import GatewaySettings

logger = get_logger(__name__)


@dataclass(frozen=True)
class CallerIdentity:
    """Verified caller, derived from the bearer credential."""
    user_id: str
    email: Optional[str] = None


def get_bearer_credential(request: Request) -> str:
    """Return the full ``Bearer <token>`` header value or raise Unauthenticated."""
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.lower().startswith("bearer ") or not auth_header[7:].strip():
        raise Unauthenticated("Missing authorization header")
    return auth_header


class IdentityVerifier:
    """
    Verifies bearer credentials with the auth service.

    Calls GET {store_url}/auth/v1/user using the caller-scoped (anon) key and
    the caller's own Authorization header. Any failure (non-2xx, network
    error, missing user id) is an Unauthenticated error.
    """

    def __init__(self, settings: GatewaySettings, client: httpx.AsyncClient):
        self.settings = settings
        self.client = client

    async def verify(self, credential: str) -> CallerIdentity:
        base_url = self.settings.base_url
        (anon_key,) = self.settings.require("anon_key")

        try:
            response = await self.client.get(
                f"{base_url}/auth/v1/user",
                headers={"apikey": anon_key, "Authorization": credential},
            )
        except httpx.RequestError as e:
            logger.error(f"Auth error: identity service unreachable: {e}")
            raise Unauthenticated("Unauthorized - invalid or expired token") from e

        if not response.is_success:
            logger.error(f"Auth error: identity service returned {response.status_code}")
            raise Unauthenticated("Unauthorized - invalid or expired token")

        try:
            user = response.json()
        except ValueError:
            user = None

        user_id = user.get("id") if isinstance(user, dict) else None
        if not user_id:
            logger.error("Auth error: no user in identity response")
            raise Unauthenticated("Unauthorized - invalid or expired token")

        logger.info(f"Authenticated user: {user_id}")
        return CallerIdentity(user_id=str(user_id), email=user.get("email"))
