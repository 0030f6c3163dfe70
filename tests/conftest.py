"""
Root Pytest Fixtures.

Shared fixtures available to all test types.
"""

from collections.abc import Callable

import pytest

from hastily.api.orchestrator import ApiContext, ModelAPI
from hastily.api.transport import Request, Response
from hastily.core.config import get_app_config, get_settings
from tests.support.resources import RecordingTransport, User


@pytest.fixture(autouse=True)
def _clear_config_cache():
    """Clear lru_cache between tests so each test gets a fresh load."""
    get_settings.cache_clear()
    get_app_config.cache_clear()
    yield
    get_settings.cache_clear()
    get_app_config.cache_clear()


@pytest.fixture
def users() -> list[User]:
    """Three users as the backend would return them."""
    return [
        User(id=1, name="a", email="a@example.com", active=True, age=30),
        User(id=2, name="b", email="b@example.com", active=False, age=41),
        User(id=3, name="a", email="c@example.com", active=True, age=25),
    ]


@pytest.fixture
def api_context() -> ApiContext:
    return ApiContext(endpoint="http://backend.test/api", model="users", token="t0k3n")


@pytest.fixture
def make_api(api_context: ApiContext) -> Callable[..., tuple[ModelAPI, RecordingTransport]]:
    """
    Build a ModelAPI over a RecordingTransport.

    Usage:
        api, transport = make_api(lambda request: Response(success=True, status_code=200))
    """

    def factory(
        handler: Callable[[Request], Response] | None = None,
        **context_overrides,
    ) -> tuple[ModelAPI, RecordingTransport]:
        transport = RecordingTransport(handler)
        context = api_context.model_copy(update=context_overrides)
        return ModelAPI(context, transport=transport, resource_type=User), transport

    return factory
