"""
Integration Test Fixtures.

An in-memory backend served through httpx.MockTransport, so the real
HttpTransport, retry policy and ModelAPI run end to end without a network.
"""

import json
from collections.abc import AsyncGenerator

import httpx
import pytest

from hastily.api.orchestrator import ApiContext, ModelAPI
from hastily.api.transport import HttpTransport
from tests.support.resources import User


class FakeBackend:
    """Minimal REST backend for one model: list, create, replace, delete."""

    def __init__(self, model: str, objects: list[dict]) -> None:
        self.model = model
        self.objects = {obj["id"]: dict(obj) for obj in objects}
        self.calls: list[tuple[str, str]] = []
        self.fail_ids: set[int] = set()
        self.token = "t0k3n"

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append((request.method, request.url.path))

        if request.headers.get("Authorization") != f"bearer {self.token}":
            return httpx.Response(401)

        parts = request.url.path.strip("/").split("/")
        if parts[-1] == self.model:
            if request.method == "GET":
                return httpx.Response(200, json=list(self.objects.values()))
            if request.method == "POST":
                body = json.loads(request.content)
                body["id"] = max(self.objects, default=0) + 1
                self.objects[body["id"]] = body
                return httpx.Response(200, json=body)
            return httpx.Response(405)

        object_id = int(parts[-1])
        if object_id in self.fail_ids:
            return httpx.Response(500)
        if object_id not in self.objects:
            return httpx.Response(404)
        if request.method == "PUT":
            self.objects[object_id] = json.loads(request.content)
            return httpx.Response(200)
        if request.method == "DELETE":
            del self.objects[object_id]
            return httpx.Response(200)
        return httpx.Response(405)

    def requests(self, method: str) -> list[str]:
        return [path for verb, path in self.calls if verb == method]


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend("users", [
        {"id": 1, "name": "a", "email": "a@example.com", "active": True, "age": 30, "settings": {}},
        {"id": 2, "name": "b", "email": "b@example.com", "active": False, "age": 41, "settings": {}},
        {"id": 3, "name": "a", "email": "c@example.com", "active": True, "age": 25, "settings": {}},
    ])


@pytest.fixture
async def model_api(backend: FakeBackend) -> AsyncGenerator[ModelAPI, None]:
    """ModelAPI over the real HttpTransport, wired to the fake backend."""
    context = ApiContext(
        endpoint="http://backend.test/api/v2",
        model="users",
        token="t0k3n",
        concurrency=2,
        retry_min_wait=0,
        retry_max_wait=0,
    )
    transport = HttpTransport(
        context.endpoint,
        context.model,
        token=context.token,
        retry_min_wait=0,
        retry_max_wait=0,
        client=httpx.AsyncClient(transport=httpx.MockTransport(backend)),
    )
    api = ModelAPI(context, transport=transport, resource_type=User)
    yield api
    await api.close()
