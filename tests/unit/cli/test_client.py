"""Unit tests for the CLI's ApiContext factory."""

from unittest.mock import MagicMock, patch

import pytest

from hastily.api.orchestrator import ModelAPI
from hastily.cli.client import get_api_context, get_model_api, resolve_token
from hastily.core.credentials import Credentials
from hastily.core.exceptions import ValidationError


@pytest.fixture
def no_env_token(monkeypatch):
    monkeypatch.delenv("HASTILY_API_TOKEN", raising=False)


def config_with_login(login: str) -> MagicMock:
    config = MagicMock()
    config.application.api.login = login
    return config


class TestResolveToken:
    """Tests for bearer token precedence."""

    def test_environment_token_wins(self, monkeypatch):
        monkeypatch.setenv("HASTILY_API_TOKEN", "from-env")

        with patch("hastily.cli.client.load_credentials") as load:
            assert resolve_token() == "from-env"

        load.assert_not_called()

    def test_no_login_endpoint_means_anonymous(self, no_env_token):
        with patch("hastily.cli.client.get_app_config", return_value=config_with_login("")):
            assert resolve_token() == ""

    def test_saved_credentials(self, no_env_token):
        with patch("hastily.cli.client.get_app_config", return_value=config_with_login("http://auth.test")), \
             patch("hastily.cli.client.load_credentials", return_value=Credentials(access_token="saved")):
            assert resolve_token() == "saved"

    def test_not_logged_in(self, no_env_token):
        with patch("hastily.cli.client.get_app_config", return_value=config_with_login("http://auth.test")), \
             patch("hastily.cli.client.load_credentials", side_effect=FileNotFoundError):
            with pytest.raises(ValidationError, match="Not logged in"):
                resolve_token()


class TestGetApiContext:
    def test_built_from_shipped_config(self, monkeypatch):
        monkeypatch.setenv("HASTILY_API_TOKEN", "t0k3n")

        context = get_api_context("users")

        assert context.model == "users"
        assert context.endpoint == "http://localhost:8000/api/v2"
        assert context.token == "t0k3n"
        assert context.concurrency == 10
        assert context.workers == 4
        assert context.timeout == 60
        assert context.retry_attempts == 3

    @pytest.mark.asyncio
    async def test_get_model_api(self, monkeypatch):
        monkeypatch.setenv("HASTILY_API_TOKEN", "t0k3n")

        api = get_model_api("teams")

        assert isinstance(api, ModelAPI)
        assert api.name == "teams"
        assert api.transport.token == "t0k3n"
        await api.close()
