"""
Credential Storage.

OAuth credentials for the backend API: password-grant acquisition,
validation, and persistence in the user's home directory.

Usage:
    from hastily.core.credentials import get_credentials, load_credentials

    creds = await get_credentials(login_url, "user", "secret")
    creds.save()

    creds = load_credentials()
"""

import json
from pathlib import Path

import httpx
from pydantic import BaseModel, ConfigDict

from hastily.core.exceptions import ValidationError
from hastily.core.logging import get_logger, log_with_source

logger = get_logger(__name__)

CREDENTIALS_FILENAME = ".hastily.json"


def credentials_path() -> Path:
    """Location where credentials are saved and loaded from."""
    return Path.home() / CREDENTIALS_FILENAME


class TokenResponse(BaseModel):
    """Token payload returned by the login endpoint."""

    model_config = ConfigDict(extra="ignore")

    access_token: str = ""
    id_token: str = ""
    refresh_token: str = ""
    token_type: str = ""
    expires_in: int = 0
    scope: str = ""


class Credentials(BaseModel):
    """Bearer credentials used by every backend request."""

    model_config = ConfigDict(extra="ignore")

    access_token: str = ""
    refresh_token: str = ""
    id_token: str = ""
    token_type: str = ""
    endpoint: str = ""
    path: str = ""
    username: str = ""

    def validate_token(self) -> None:
        """Raise ValidationError unless an access token is present."""
        if not self.access_token:
            raise ValidationError(
                "Invalid login credentials. Please provide valid authentication data."
            )

    def save(self, path: Path | None = None) -> Path:
        """Write credentials as JSON and record where they were written."""
        target = path or credentials_path()
        self.path = str(target)
        try:
            target.write_text(self.model_dump_json(), encoding="utf-8")
        except OSError:
            self.path = ""
            raise
        target.chmod(0o600)
        return target


def load_credentials(path: Path | None = None) -> Credentials:
    """
    Load saved credentials.

    Raises:
        FileNotFoundError: If no credentials were saved
        ValidationError: If the file is unreadable or holds no access token
    """
    source = path or credentials_path()
    raw = source.read_text(encoding="utf-8")
    try:
        credentials = Credentials.model_validate(json.loads(raw))
    except ValueError as e:
        raise ValidationError(f"Corrupt credentials file {source}: {e}") from e

    credentials.validate_token()
    return credentials


def delete_credentials(path: Path | None = None) -> bool:
    """Remove saved credentials. Returns False when there was nothing to remove."""
    target = path or credentials_path()
    if not target.exists():
        return False
    target.unlink()
    return True


async def get_credentials(
    endpoint: str,
    username: str,
    password: str,
    client: httpx.AsyncClient | None = None,
) -> Credentials:
    """
    Obtain an OAuth token with the resource-owner password grant.

    Args:
        endpoint: Token endpoint URL
        username: Account name
        password: Account password
        client: Optional preconfigured client (tests inject a mock transport)

    Raises:
        ValidationError: If the endpoint rejects the login or returns no token
    """
    form = {
        "grant_type": "password",
        "username": username,
        "password": password,
    }
    headers = {"Accept": "application/json", "Authorization": "Basic"}

    owns_client = client is None
    http = client or httpx.AsyncClient()
    try:
        log_with_source(logger, "api", "debug", "Requesting token", endpoint=endpoint, username=username)
        response = await http.post(endpoint, data=form, headers=headers)
    except httpx.HTTPError as e:
        raise ValidationError(f"Login request failed: {e}") from e
    finally:
        if owns_client:
            await http.aclose()

    try:
        token = TokenResponse.model_validate(response.json())
    except ValueError as e:
        raise ValidationError(
            f"Login endpoint returned an unreadable response (HTTP {response.status_code})"
        ) from e

    credentials = Credentials(
        access_token=token.access_token,
        refresh_token=token.refresh_token,
        id_token=token.id_token,
        token_type=token.token_type,
        username=username,
        endpoint=endpoint,
    )
    credentials.validate_token()
    return credentials
