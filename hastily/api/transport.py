"""
HTTP Transport.

Performs one backend request per call and reports the result as a
Response instead of raising. Endpoints are built as

    {endpoint}/{model}/{id}?{query}     by default
    {endpoint}/{path}?{query}           when a path is given
    {uri}?{query}                       when an absolute URI is given

All requests carry JSON Accept/Content-Type headers and a bearer token.
Only status 200 counts as success.

Usage:
    transport = HttpTransport("https://api.example.com/v2", "users", token="abc")
    response = await transport.get(Request(decode=True))
    await transport.close()
"""

import abc
import dataclasses
import json
from typing import Any, Protocol

import httpx
from pydantic import BaseModel

from hastily.api.status import Outcome
from hastily.core.logging import get_logger, log_with_source
from hastily.core.resilience import create_retrying, retryable_errors

logger = get_logger(__name__)

NON_OK_MESSAGE = "Non-OK HTTP Status code"


@dataclasses.dataclass
class Request:
    """Backend request form."""

    id: str = ""
    path: str = ""
    uri: str = ""
    query: dict[str, str] = dataclasses.field(default_factory=dict)
    body: Any = None
    decode: bool = False
    method: str = "GET"


@dataclasses.dataclass
class Response:
    """Generalized request result."""

    success: bool
    message: str = ""
    status_code: int = 0
    data: Any = None

    def to_outcome(self) -> Outcome:
        return Outcome(success=self.success, message=self.message, status_code=self.status_code)


def default_response(message: str = "", error: BaseException | None = None) -> Response:
    """Build a Response from an optional error; message overrides the error text."""
    if error is not None:
        return Response(success=False, message=message or str(error), status_code=0)
    return Response(success=True, message=message, status_code=200)


class Transport(Protocol):
    """Request/response channel to the backend."""

    async def request(self, request: Request) -> Response: ...

    async def close(self) -> None: ...


class TransportMixin(abc.ABC):
    """HTTP verb helpers shared by transport implementations."""

    @abc.abstractmethod
    async def request(self, request: Request) -> Response: ...

    @abc.abstractmethod
    async def close(self) -> None: ...

    async def get(self, request: Request) -> Response:
        return await self.request(dataclasses.replace(request, method="GET"))

    async def put(self, request: Request) -> Response:
        return await self.request(dataclasses.replace(request, method="PUT"))

    async def post(self, request: Request) -> Response:
        return await self.request(dataclasses.replace(request, method="POST"))

    async def delete(self, request: Request) -> Response:
        return await self.request(dataclasses.replace(request, method="DELETE"))


def _encode_body(body: Any) -> bytes:
    if isinstance(body, BaseModel):
        return body.model_dump_json().encode("utf-8")
    return json.dumps(body).encode("utf-8")


class HttpTransport(TransportMixin):
    """
    httpx-backed transport for one backend model.

    Transport-level failures are retried according to the retry policy.
    POST is only retried when the connection was never established, so a
    create is never sent twice. Non-200 answers are returned immediately as
    failed responses.
    """

    def __init__(
        self,
        endpoint: str,
        model: str,
        token: str = "",
        timeout: float = 30.0,
        retry_attempts: int = 3,
        retry_min_wait: float = 0.5,
        retry_max_wait: float = 5.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.endpoint = endpoint.rstrip("/")
        self.model = model.strip("/")
        self.token = token
        self.timeout = timeout
        self.retry_attempts = retry_attempts
        self.retry_min_wait = retry_min_wait
        self.retry_max_wait = retry_max_wait
        self._client = client

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "Authorization": f"bearer {self.token}",
        }

    def endpoint_for_id(self, id: str) -> str:
        """e.g. {https://api.example.com} / {v2/users} / {1}"""
        base = f"{self.endpoint}/{self.model}"
        return f"{base}/{id}" if id else base

    def endpoint_for_path(self, path: str) -> str:
        """e.g. {https://api.example.com} / {v2/users}"""
        return f"{self.endpoint}/{path.lstrip('/')}"

    def build_url(self, request: Request) -> httpx.URL:
        """Full request URL including query parameters."""
        if request.uri:
            base = request.uri
        elif request.path:
            base = self.endpoint_for_path(request.path)
        else:
            base = self.endpoint_for_id(request.id)

        url = httpx.URL(base)
        if request.query:
            url = url.copy_merge_params(request.query)
        return url

    async def request(self, request: Request) -> Response:
        """Send one request; never raises for request-level failures."""
        try:
            content = _encode_body(request.body) if request.body is not None else None
        except (TypeError, ValueError) as e:
            return default_response(error=e)

        try:
            url = self.build_url(request)
        except httpx.InvalidURL as e:
            return default_response(error=e)

        log_with_source(logger, "api", "debug", "API request", method=request.method, url=str(url))

        try:
            async for attempt in create_retrying(
                self.retry_attempts, self.retry_min_wait, self.retry_max_wait,
                retry_on=retryable_errors(request.method),
            ):
                with attempt:
                    resp = await self._get_client().request(
                        request.method, url, content=content, headers=self.headers,
                    )
        except httpx.HTTPError as e:
            log_with_source(
                logger, "api", "error", "API request failed",
                method=request.method, url=str(url), error=str(e),
            )
            return default_response(error=e)

        log_with_source(
            logger, "api", "debug", "API response",
            method=request.method, url=str(url), status_code=resp.status_code,
        )

        if resp.status_code != httpx.codes.OK:
            return Response(success=False, message=NON_OK_MESSAGE, status_code=resp.status_code)

        data = None
        if request.decode:
            try:
                data = resp.json()
            except ValueError as e:
                return Response(
                    success=False,
                    message=f"Undecodable response body: {e}",
                    status_code=resp.status_code,
                )

        return Response(success=True, status_code=resp.status_code, data=data)

    async def check_connection(self, verify_uri: str) -> Response:
        """Verify endpoint and credentials against a user-listing endpoint."""
        response = await self.get(Request(uri=verify_uri, decode=True))

        users = response.data if isinstance(response.data, list) else []
        first = users[0] if users and isinstance(users[0], dict) else {}
        if not response.success or not first.get("email"):
            return default_response(
                "Invalid or expired credentials. Please login again.",
                RuntimeError(response.message),
            )
        return default_response()
