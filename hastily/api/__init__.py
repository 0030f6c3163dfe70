"""
Backend API Layer.

Generic model CRUD orchestration over a REST-style backend.

- transport:    one HTTP request per call, returns a Response
- status:       Outcome records and the concurrency-safe ResultList
- model:        Resource base, Meta envelope, filter/merge/diff/update
- orchestrator: ModelAPI with single and bulk operations
- export:       table rendering of resources plus extra columns
"""

from hastily.api.model import GenericResource, Meta, Resource
from hastily.api.orchestrator import ApiContext, ModelAPI
from hastily.api.status import Outcome, ResultList

__all__ = [
    "ApiContext",
    "GenericResource",
    "Meta",
    "ModelAPI",
    "Outcome",
    "Resource",
    "ResultList",
]
