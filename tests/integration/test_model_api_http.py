"""
Integration Tests for ModelAPI over HTTP.

Exercises fetch, partial update and bulk operations through the real
HttpTransport against an in-memory backend.
"""

import pytest

from hastily.api.model import Meta
from hastily.api.status import NO_CHANGE
from hastily.api.transport import NON_OK_MESSAGE
from hastily.core.exceptions import TransportError
from tests.support.resources import User


@pytest.mark.integration
class TestModelApiOverHttp:

    @pytest.mark.asyncio
    async def test_get_filtered(self, model_api):
        users = await model_api.get_filtered({"name": "a"})
        assert [user.id for user in users] == [1, 3]

    @pytest.mark.asyncio
    async def test_bad_token(self, model_api, backend):
        backend.token = "other"

        with pytest.raises(TransportError) as exc_info:
            await model_api.get()

        assert exc_info.value.status_code == 401
        assert exc_info.value.message == NON_OK_MESSAGE

    @pytest.mark.asyncio
    async def test_create(self, model_api, backend):
        await model_api.create(User(name="d", email="d@example.com"))

        assert backend.objects[4]["name"] == "d"
        assert backend.requests("POST") == ["/api/v2/users"]

    @pytest.mark.asyncio
    async def test_partial_update_round_trip(self, model_api, backend):
        users = await model_api.get_filtered({"active": True})
        updated, merged = model_api.list_update(
            users, Meta.from_bytes(b'{"settings": {"theme": "dark"}, "age": 30}', User),
        )

        results = await model_api.update_many(updated, merged)

        assert results.size() == 2
        assert results.get("1").success is True
        assert results.get("3").success is True
        assert backend.objects[1]["settings"] == {"theme": "dark"}
        assert backend.objects[3]["age"] == 30
        assert backend.objects[2]["settings"] == {}
        assert sorted(backend.requests("PUT")) == ["/api/v2/users/1", "/api/v2/users/3"]

    @pytest.mark.asyncio
    async def test_unchanged_objects_are_skipped(self, model_api, backend):
        users = await model_api.get()
        updated, merged = model_api.list_update(users, Meta.from_bytes(b"name: b", User))

        results = await model_api.update_many(updated, merged)

        assert sorted(backend.requests("PUT")) == ["/api/v2/users/1", "/api/v2/users/3"]
        assert results.get("2").skipped is True
        assert results.get("2").message == NO_CHANGE

    @pytest.mark.asyncio
    async def test_delete_many_partial_failure(self, model_api, backend):
        backend.fail_ids = {2}
        users = await model_api.get()

        results = await model_api.delete_many(users)

        assert results.size() == 3
        assert results.failures() == 1
        assert results.get("2").status_code == 500
        assert sorted(backend.objects) == [2]
