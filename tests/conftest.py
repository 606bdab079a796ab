"""
Shared test fixtures for the notebook gateway test suite.

FakeBackend stands in for every HTTP collaborator of the gateway (identity
service, resource store, processors) behind an httpx.MockTransport, and
records what the gateway sent so tests can assert on writes and dispatches.
"""

import json
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import httpx
import pytest
from starlette.testclient import TestClient

from notebook_backend.gateway.api import create_app
from notebook_backend.gateway.settings import GatewaySettings

STORE_URL = "https://store.test"

ProcessorReply = Union[httpx.Response, Callable[[httpx.Request], httpx.Response]]


class FakeBackend:
    """In-memory identity service, REST store and processor endpoints."""

    def __init__(self):
        self.tokens: Dict[str, Dict[str, Any]] = {}
        self.notebooks: Dict[str, Dict[str, Any]] = {}
        self.sources: Dict[str, Dict[str, Any]] = {}
        self.processor_replies: Dict[str, ProcessorReply] = {}
        self.unreachable: set = set()
        self.fail_store_writes = False
        self.fail_store_reads = False

        self.writes: List[Tuple[str, str, Dict[str, Any]]] = []
        self.dispatched: List[Dict[str, Any]] = []
        self.auth_calls: List[httpx.Request] = []

    # -------------------------------------------------------------------------
    # Seeding helpers
    # -------------------------------------------------------------------------

    def add_user(self, token: str, user_id: str, email: Optional[str] = None):
        self.tokens[token] = {"id": user_id, "email": email}

    def add_notebook(self, notebook_id: str, user_id: str, **fields):
        self.notebooks[notebook_id] = {"id": notebook_id, "user_id": user_id, **fields}

    def add_source(self, source_id: str, notebook_id: str, **fields):
        self.sources[source_id] = {"id": source_id, "notebook_id": notebook_id, **fields}

    def reply(self, url: str, status_code: int = 200, **kwargs):
        self.processor_replies[url] = httpx.Response(status_code, **kwargs)

    def writes_to(self, table: str, resource_id: str) -> List[Dict[str, Any]]:
        return [values for t, rid, values in self.writes if t == table and rid == resource_id]

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    def handle(self, request: httpx.Request) -> httpx.Response:
        url = f"{request.url.scheme}://{request.url.host}{request.url.path}"

        if request.url.path == "/auth/v1/user":
            return self._auth(request)
        if request.url.path.startswith("/rest/v1/"):
            return self._rest(request)
        return self._processor(url, request)

    def _auth(self, request: httpx.Request) -> httpx.Response:
        self.auth_calls.append(request)
        header = request.headers.get("Authorization", "")
        token = header[7:] if header.startswith("Bearer ") else ""
        user = self.tokens.get(token)
        if not user:
            return httpx.Response(401, json={"msg": "invalid JWT"})
        return httpx.Response(200, json=user)

    def _rest(self, request: httpx.Request) -> httpx.Response:
        table_name = request.url.path.rsplit("/", 1)[-1]
        table = {"notebooks": self.notebooks, "sources": self.sources}[table_name]
        filters = {
            key: value[3:]
            for key, value in request.url.params.items()
            if value.startswith("eq.")
        }

        if request.method == "PATCH":
            if self.fail_store_writes:
                return httpx.Response(500, json={"message": "write failed"})
            values = json.loads(request.content)
            row_id = filters["id"]
            self.writes.append((table_name, row_id, values))
            if row_id in table:
                table[row_id].update(values)
            return httpx.Response(204)

        if self.fail_store_reads:
            return httpx.Response(500, json={"message": "read failed"})

        rows = [
            row for row in table.values()
            if all(str(row.get(col)) == val for col, val in filters.items())
        ]
        select = request.url.params.get("select", "*")
        result = []
        for row in rows:
            if "notebooks!inner" in select:
                notebook = self.notebooks.get(row["notebook_id"])
                if notebook is None:
                    continue
                result.append({
                    "id": row["id"],
                    "notebook_id": row["notebook_id"],
                    "notebooks": {"user_id": notebook["user_id"]},
                })
            else:
                columns = select.split(",")
                result.append({col: row.get(col) for col in columns})

        limit = request.url.params.get("limit")
        if limit:
            result = result[: int(limit)]
        return httpx.Response(200, json=result)

    def _processor(self, url: str, request: httpx.Request) -> httpx.Response:
        if url in self.unreachable:
            raise httpx.ConnectError("connection refused", request=request)

        self.dispatched.append({
            "url": url,
            "headers": dict(request.headers),
            "payload": json.loads(request.content),
            "raw": request.content,
        })
        reply = self.processor_replies.get(url)
        if reply is None:
            return httpx.Response(200, json={"accepted": True})
        if callable(reply):
            return reply(request)
        return reply


@pytest.fixture
def settings() -> GatewaySettings:
    """Fully configured settings pointing at the fake backend."""
    return GatewaySettings(
        store_url=STORE_URL,
        anon_key="anon-key-0001",
        service_role_key="service-role-key-0002",
        dispatch_secret="dispatch-secret-0003",
        document_processing_url="https://processor.test/document",
        additional_sources_url="https://processor.test/sources",
        notebook_generation_url="https://processor.test/generate",
        chat_url="https://processor.test/chat",
    )


@pytest.fixture
def backend() -> FakeBackend:
    """Backend seeded with two users, one notebook each and a source."""
    fake = FakeBackend()
    fake.add_user("alice-token", "user-alice", "alice@example.com")
    fake.add_user("bob-token", "user-bob")
    fake.add_notebook("nb-alice", "user-alice", generation_status="idle")
    fake.add_notebook("nb-bob", "user-bob", generation_status="idle")
    fake.add_source("s1", "nb-alice", processing_status="pending", content="stored text")
    fake.add_source("s-bob", "nb-bob", processing_status="pending")
    return fake


@pytest.fixture
def http_client(backend: FakeBackend) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(backend.handle))


@pytest.fixture
def make_client(backend: FakeBackend) -> Callable[[GatewaySettings], TestClient]:
    """Build a TestClient for the app with the given settings."""

    def _make(app_settings: GatewaySettings) -> TestClient:
        client = httpx.AsyncClient(transport=httpx.MockTransport(backend.handle))
        return TestClient(create_app(app_settings, http_client=client))

    return _make


@pytest.fixture
def client(make_client, settings) -> TestClient:
    return make_client(settings)


@pytest.fixture
def alice() -> Dict[str, str]:
    return {"Authorization": "Bearer alice-token"}


@pytest.fixture
def bob() -> Dict[str, str]:
    return {"Authorization": "Bearer bob-token"}
