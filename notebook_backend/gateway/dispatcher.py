"""
Job dispatch to external processors.

Sends a single POST per job with the shared secret as the Authorization
header and records the outcome. There are no retries: a non-2xx status or a
network error is reported back to the gateway as a failed outcome.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import httpx

from notebook_backend.core.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class DispatchOutcome:
    """Record of one dispatch attempt."""
    endpoint: str
    success: bool = False
    status_code: Optional[int] = None
    body_text: str = ""
    error: Optional[str] = None
    sent_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def network_failure(self) -> bool:
        """True when no HTTP response was received at all."""
        return not self.success and self.status_code is None

    def json(self) -> Any:
        """Decoded response body; raises ValueError if it is not JSON."""
        return json.loads(self.body_text)

    def data(self) -> Any:
        """Decoded JSON body, or the raw text when the body is not JSON."""
        try:
            return self.json()
        except ValueError:
            return self.body_text


class JobDispatcher:
    """Posts job payloads to processor endpoints."""

    def __init__(self, client: httpx.AsyncClient, timeout: float = 30.0):
        self.client = client
        self.timeout = timeout

    async def dispatch(
        self,
        endpoint: str,
        secret: str,
        payload: Dict[str, Any],
    ) -> DispatchOutcome:
        outcome = DispatchOutcome(endpoint=endpoint)
        headers = {
            "Content-Type": "application/json",
            "Authorization": secret,
        }

        try:
            response = await self.client.post(
                endpoint,
                json=payload,
                headers=headers,
                timeout=self.timeout,
            )
        except httpx.TimeoutException:
            outcome.error = "Timeout"
            logger.warning(f"Dispatch timeout to {endpoint}")
            return outcome
        except httpx.RequestError as e:
            outcome.error = str(e) or type(e).__name__
            logger.warning(f"Dispatch error to {endpoint}: {outcome.error}")
            return outcome

        outcome.status_code = response.status_code
        outcome.body_text = response.text

        if response.is_success:
            outcome.success = True
            logger.info(f"Dispatched to {endpoint} (status: {response.status_code})")
        else:
            logger.error(
                f"Dispatch to {endpoint} failed (status: {response.status_code}): "
                f"{outcome.body_text[:1000]}"
            )

        return outcome
