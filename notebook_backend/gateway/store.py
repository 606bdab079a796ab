"""
Resource store client.

Reads and updates notebooks and sources through the store's REST interface
({store_url}/rest/v1/<table>) using the privileged service-role key.
Ownership checks happen in the gateway before any update is issued here.
"""

from typing import Any, Dict, List, Optional, Set

import httpx

from notebook_backend.core.logging_config import get_logger
from notebook_backend.gateway.errors import StoreError
from notebook_backend.gateway.settings import GatewaySettings

logger = get_logger(__name__)

NOTEBOOKS = "notebooks"
SOURCES = "sources"


class ResourceStore:
    """Thin async client over the store's REST tables."""

    def __init__(self, settings: GatewaySettings, client: httpx.AsyncClient):
        self.settings = settings
        self.client = client

    def _endpoint(self, table: str) -> str:
        return f"{self.settings.base_url}/rest/v1/{table}"

    def _headers(self) -> Dict[str, str]:
        (key,) = self.settings.require("service_role_key")
        return {
            "apikey": key,
            "Authorization": f"Bearer {key}",
            "Content-Type": "application/json",
        }

    async def _request(self, method: str, table: str, **kwargs) -> httpx.Response:
        url = self._endpoint(table)
        headers = {**self._headers(), **kwargs.pop("headers", {})}
        try:
            response = await self.client.request(method, url, headers=headers, **kwargs)
        except httpx.RequestError as e:
            raise StoreError(f"{method} {table} failed: {e}") from e

        if not response.is_success:
            raise StoreError(
                f"{method} {table} returned {response.status_code}: {response.text[:500]}",
                status_code=response.status_code,
            )
        return response

    async def select(
        self,
        table: str,
        columns: str,
        filters: Dict[str, str],
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Select rows where every filter column equals its value."""
        params = {"select": columns}
        params.update({column: f"eq.{value}" for column, value in filters.items()})
        if limit is not None:
            params["limit"] = str(limit)

        response = await self._request("GET", table, params=params)
        rows = response.json()
        if not isinstance(rows, list):
            raise StoreError(f"Unexpected response shape from {table}")
        return rows

    async def select_one(
        self, table: str, columns: str, filters: Dict[str, str]
    ) -> Optional[Dict[str, Any]]:
        rows = await self.select(table, columns, filters, limit=1)
        return rows[0] if rows else None

    async def update(self, table: str, resource_id: str, values: Dict[str, Any]) -> None:
        """Apply ``values`` to the row with ``id = resource_id``.

        PATCH with the same values is idempotent.
        """
        await self._request(
            "PATCH",
            table,
            params={"id": f"eq.{resource_id}"},
            json=values,
            headers={"Prefer": "return=minimal"},
        )

    # -------------------------------------------------------------------------
    # Typed lookups
    # -------------------------------------------------------------------------

    async def get_notebook(self, notebook_id: str) -> Optional[Dict[str, Any]]:
        return await self.select_one(NOTEBOOKS, "id,user_id", {"id": notebook_id})

    async def get_source_with_owner(self, source_id: str) -> Optional[Dict[str, Any]]:
        """Source row joined with its parent notebook's owner."""
        return await self.select_one(
            SOURCES, "id,notebook_id,notebooks!inner(user_id)", {"id": source_id}
        )

    async def get_notebook_content(self, notebook_id: str) -> Optional[str]:
        """Stored text content of the notebook's first source, if any."""
        row = await self.select_one(SOURCES, "content", {"notebook_id": notebook_id})
        return row.get("content") if row else None

    async def get_notebook_source_ids(self, notebook_id: str) -> Set[str]:
        rows = await self.select(SOURCES, "id", {"notebook_id": notebook_id})
        return {str(row["id"]) for row in rows if row.get("id") is not None}
