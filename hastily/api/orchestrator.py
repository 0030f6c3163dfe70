"""
Model API.

Fetch, filter, create, update and delete operations for one backend
model, including bulk variants that fan out one unit of work per item.

Bulk contract:
    - every item gets exactly one entry in the returned ResultList,
      keyed by its identity, whatever happened to it
    - a failing item never aborts its siblings
    - the call returns only after every item has finished
    - no ordering between items

Concurrency is capped by ApiContext.concurrency. An optional per-item
timeout (ApiContext.timeout) turns a stuck request into a failed outcome
for that item instead of stalling the whole batch.

Usage:
    context = ApiContext(endpoint="https://api.example.com/v2", model="users", token="abc")
    async with ModelAPI(context) as api:
        users = await api.get_filtered({"active": True})
        updated, merged = api.list_update(users, Meta.from_file("patch.yaml"))
        results = await api.update_many(updated, merged)
"""

import asyncio
from collections.abc import Awaitable, Callable, Iterable, Mapping
from typing import Any, Generic, TypeVar

import structlog
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from hastily.api.export import ExportModel, export_table
from hastily.api.model import GenericResource, Meta, Resource, filter_resources
from hastily.api.status import Outcome, ResultList
from hastily.api.transport import HttpTransport, Request, Transport
from hastily.core.concurrency import fan_out, run_in_threads
from hastily.core.exceptions import ApplicationError, ParseError, TransportError
from hastily.core.logging import get_logger, log_with_source

logger = get_logger(__name__)

ResourceT = TypeVar("ResourceT", bound=Resource)


class ApiContext(BaseModel):
    """Everything a ModelAPI needs to reach its backend model."""

    model_config = ConfigDict(frozen=True)

    endpoint: str
    model: str
    token: str = ""
    concurrency: int = Field(default=10, ge=1)
    workers: int = Field(default=4, ge=1)
    timeout: float | None = Field(default=None, gt=0)
    request_timeout: float = 30.0
    retry_attempts: int = 3
    retry_min_wait: float = 0.5
    retry_max_wait: float = 5.0


class ModelAPI(Generic[ResourceT]):
    """Operations on one backend model."""

    def __init__(
        self,
        context: ApiContext,
        transport: Transport | None = None,
        resource_type: type[ResourceT] = GenericResource,
    ) -> None:
        self.context = context
        self.resource_type = resource_type
        self.transport = transport or HttpTransport(
            context.endpoint,
            context.model,
            token=context.token,
            timeout=context.request_timeout,
            retry_attempts=context.retry_attempts,
            retry_min_wait=context.retry_min_wait,
            retry_max_wait=context.retry_max_wait,
        )

    @property
    def name(self) -> str:
        return self.context.model

    async def close(self) -> None:
        await self.transport.close()

    async def __aenter__(self) -> "ModelAPI[ResourceT]":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # -------------------------------------------------------------------------
    # Fetch
    # -------------------------------------------------------------------------

    async def get(self) -> list[ResourceT]:
        """Fetch all objects from the backend."""
        return await self.get_filtered(None)

    async def get_filtered(
        self,
        filter: Resource | Mapping[str, Any] | None,
    ) -> list[ResourceT]:
        """
        Fetch all objects, then keep those matching the filter.

        The backend is not asked to filter; matching happens client-side.

        Raises:
            TransportError: If the request fails
            ParseError: If the body is not a list of resources
        """
        response = await self.transport.request(Request(method="GET", decode=True))
        if not response.success:
            raise TransportError(response.message, status_code=response.status_code)

        resources = self._parse_list(response.data)
        matched = filter_resources(resources, filter)
        log_with_source(
            logger, "api", "debug", "Fetched objects",
            model=self.name, fetched=len(resources), matched=len(matched),
        )
        return matched

    def _parse_list(self, data: Any) -> list[ResourceT]:
        if not isinstance(data, list):
            raise ParseError(
                f"Expected a list of {self.name} objects, got {type(data).__name__}"
            )
        try:
            return [self.resource_type.model_validate(item) for item in data]
        except PydanticValidationError as e:
            raise ParseError(f"Invalid {self.name} object in response: {e}") from e

    # -------------------------------------------------------------------------
    # Single-item operations
    # -------------------------------------------------------------------------

    async def create(self, resource: ResourceT) -> None:
        """
        Create an object on the backend.

        Raises:
            TransportError: With the transport's message if creation fails
        """
        response = await self.transport.request(Request(method="POST", body=resource))
        if not response.success:
            raise TransportError(response.message, status_code=response.status_code)

    async def delete(self, resource: ResourceT) -> Outcome:
        """Delete one object; the transport's result is returned as-is."""
        response = await self.transport.request(Request(method="DELETE", id=resource.key))
        return response.to_outcome()

    async def update(self, resource: ResourceT) -> Outcome:
        """Replace one object on the backend with its local state."""
        response = await self.transport.request(
            Request(method="PUT", id=resource.key, body=resource),
        )
        return response.to_outcome()

    # -------------------------------------------------------------------------
    # Bulk operations
    # -------------------------------------------------------------------------

    async def _attempt(self, call: Callable[[], Awaitable[Outcome]]) -> Outcome:
        """Run one item's request, converting timeouts and typed errors to outcomes."""
        try:
            async with asyncio.timeout(self.context.timeout):
                return await call()
        except TimeoutError:
            return Outcome.failed(f"Timed out after {self.context.timeout}s")
        except ApplicationError as e:
            return Outcome.failed(e.message)

    def _finished(self, results: ResultList) -> None:
        log_with_source(
            logger, "api", "info", "Bulk operation finished",
            total=results.size(), successes=results.successes(),
        )

    async def delete_many(self, resources: Iterable[ResourceT]) -> ResultList:
        """Delete every object concurrently and collect one outcome per object."""
        results = ResultList()

        async def _delete_one(resource: ResourceT) -> None:
            outcome = await self._attempt(lambda: self.delete(resource))
            results.insert(resource.key, outcome)

        with structlog.contextvars.bound_contextvars(model=self.name, operation="delete_many"):
            await fan_out(resources, _delete_one, limit=self.context.concurrency)
            self._finished(results)
        return results

    async def update_many(
        self,
        resources: Iterable[ResourceT],
        statuses: ResultList | None = None,
    ) -> ResultList:
        """
        Update every object concurrently and collect one outcome per object.

        When ``statuses`` holds a failed outcome for an object (for example
        a merge that produced no change), that object is not sent; its entry
        is a skipped outcome carrying the earlier message.
        """
        results = ResultList()

        async def _update_one(resource: ResourceT) -> None:
            prior = statuses.get(resource.key) if statuses is not None else None
            if prior is not None and not prior.success:
                outcome = Outcome.skip(prior.message)
            else:
                outcome = await self._attempt(lambda: self.update(resource))
            results.insert(resource.key, outcome)

        with structlog.contextvars.bound_contextvars(model=self.name, operation="update_many"):
            await fan_out(resources, _update_one, limit=self.context.concurrency)
            self._finished(results)
        return results

    # -------------------------------------------------------------------------
    # Local object management
    # -------------------------------------------------------------------------

    def list_filter(
        self,
        resources: Iterable[ResourceT],
        filter: Resource | Mapping[str, Any] | None,
    ) -> list[ResourceT]:
        """Objects from a local list that match the filter."""
        return filter_resources(resources, filter)

    def list_update(
        self,
        resources: Iterable[ResourceT],
        source: Meta,
    ) -> tuple[list[ResourceT], ResultList]:
        """
        Apply a partial update to copies of the given objects.

        The inputs are deep-copied first and left untouched. Returns the
        updated copies together with one merge outcome per object.
        """
        copies = [resource.model_copy(deep=True) for resource in resources]
        results = ResultList()

        def _merge_one(resource: ResourceT) -> None:
            results.insert(resource.key, resource.update(source))

        with structlog.contextvars.bound_contextvars(model=self.name, operation="list_update"):
            run_in_threads(copies, _merge_one, max_workers=self.context.workers)
            self._finished(results)
        return copies, results

    # -------------------------------------------------------------------------
    # Output
    # -------------------------------------------------------------------------

    def export(self, export: ExportModel) -> None:
        """Render objects, plus optional per-object extra columns, as a table."""
        export_table(export)
