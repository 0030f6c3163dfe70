"""
Resource Model.

Generic backend resources and the partial-update algorithm.

A Resource exposes its state through ``field_map()``, an ordered mapping
of field name to value. Filtering, merging and diffing all work on that
projection, so they apply to any resource type.

Partial updates arrive as a Meta: the parsed resource (if the payload
describes one) plus the raw payload bytes. Merging always reads the raw
bytes, because a parsed resource cannot tell an absent field from one
explicitly set to its zero value.

Lossy reconstitution: after merging, the candidate state is validated
back into the resource's own type. Typed resources ignore unknown fields,
so payload fields the type does not declare are dropped without error.
GenericResource keeps every field.
"""

import dataclasses
import re
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any, ClassVar, TypeVar

import yaml
from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError

from hastily.api.generic import is_zero
from hastily.api.status import NO_CHANGE, Outcome
from hastily.core.exceptions import DiffError, MergeError, ParseError

ResourceT = TypeVar("ResourceT", bound="Resource")

_MISSING = object()

_YAML_BOOL = "tag:yaml.org,2002:bool"
_YAML_INT = "tag:yaml.org,2002:int"
_YAML_FLOAT = "tag:yaml.org,2002:float"
_YAML_TIMESTAMP = "tag:yaml.org,2002:timestamp"


class PayloadLoader(yaml.SafeLoader):
    """
    SafeLoader whose implicit scalar types match JSON.

    YAML 1.1 would read ``2024-01-01`` as a date, ``yes``/``on`` as
    booleans and ``12:30`` as a base-60 integer, values a JSON backend
    never sends back. Here those stay strings.
    """


PayloadLoader.yaml_implicit_resolvers = {
    first: [
        (tag, regexp) for tag, regexp in resolvers
        if tag not in (_YAML_BOOL, _YAML_INT, _YAML_FLOAT, _YAML_TIMESTAMP)
    ]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}
PayloadLoader.add_implicit_resolver(
    _YAML_BOOL, re.compile(r"^(?:true|True|TRUE|false|False|FALSE)$"), list("tTfF"),
)
# int before float: the first matching resolver wins
PayloadLoader.add_implicit_resolver(
    _YAML_INT, re.compile(r"^-?(?:0|[1-9][0-9]*)$"), list("-0123456789"),
)
PayloadLoader.add_implicit_resolver(
    _YAML_FLOAT,
    re.compile(r"^-?(?:0|[1-9][0-9]*)(?:\.[0-9]+)?(?:[eE][-+]?[0-9]+)?$"),
    list("-0123456789"),
)


def load_yaml(raw: bytes | str) -> Any:
    """Parse YAML (or JSON) with JSON scalar typing."""
    return yaml.load(raw, Loader=PayloadLoader)


def parse_payload(raw: bytes | str) -> dict[str, Any]:
    """
    Parse a serialized payload into a field mapping.

    Accepts YAML, and therefore JSON. Scalars are typed as JSON would type
    them, so unquoted dates stay strings. An empty payload is an empty mapping.

    Raises:
        ParseError: If the payload is not valid YAML or not a mapping of names
    """
    try:
        data = load_yaml(raw)
    except yaml.YAMLError as e:
        raise ParseError(f"Payload is not valid YAML or JSON: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ParseError(f"Payload must be a mapping of fields, got {type(data).__name__}")
    if not all(isinstance(key, str) for key in data):
        raise ParseError("Payload field names must be strings")
    return data


def _overlay(base: dict[str, Any], overlay: Mapping[str, Any]) -> dict[str, Any]:
    """Override base with overlay; nested mappings are merged key by key."""
    merged = dict(base)
    for key, value in overlay.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = _overlay(current, value)
        else:
            merged[key] = value
    return merged


@dataclasses.dataclass(frozen=True)
class FieldChange:
    """One differing field between two resource states."""

    name: str
    old: Any
    new: Any

    def __str__(self) -> str:
        old = "<unset>" if self.old is _MISSING else repr(self.old)
        new = "<unset>" if self.new is _MISSING else repr(self.new)
        return f"{self.name}: {old} -> {new}"


def summarize(changes: Iterable[FieldChange]) -> str:
    return "; ".join(str(change) for change in changes)


class Resource(BaseModel):
    """
    Addressable backend entity.

    Subclasses declare their fields with zero-value defaults so that a
    partially populated instance can double as a filter.
    """

    model_config = ConfigDict(extra="ignore")

    IDENTITY_FIELD: ClassVar[str] = "id"

    id: int | str = 0

    @property
    def key(self) -> str:
        """Identity as used for result bookkeeping."""
        return str(getattr(self, self.IDENTITY_FIELD))

    def field_map(self) -> dict[str, Any]:
        """Ordered projection of field name to value."""
        return self.model_dump()

    def valid_for_filter(self, filter: "Resource | Mapping[str, Any] | None") -> bool:
        """
        Check the resource against a sparse filter.

        Every non-zero filter field must equal the resource's field of the
        same name. Zero-valued filter fields and a None filter impose no
        constraint.
        """
        wanted = {
            name: value
            for name, value in filter_fields(filter).items()
            if not is_zero(value)
        }
        if not wanted:
            return True

        fields = self.field_map()
        return all(
            name in fields and fields[name] == value
            for name, value in wanted.items()
        )

    def merge(self: ResourceT, meta: "Meta") -> ResourceT:
        """
        Build the candidate state of this resource with a partial update applied.

        Fields present in the payload override, including explicit nulls;
        absent fields are kept. The identity field is never taken from the
        payload. The resource itself is not modified.

        Raises:
            MergeError: If the payload cannot be parsed or the merged state
                is not a valid instance of this resource type
        """
        try:
            overlay = parse_payload(meta.raw)
        except ParseError as e:
            raise MergeError(f"Unable to merge partial update: {e.message}") from e

        overlay.pop(self.IDENTITY_FIELD, None)
        candidate = _overlay(self.field_map(), overlay)
        candidate[self.IDENTITY_FIELD] = getattr(self, self.IDENTITY_FIELD)

        try:
            return type(self).model_validate(candidate)
        except PydanticValidationError as e:
            raise MergeError(
                f"Merged state is not a valid {type(self).__name__}: "
                f"{e.error_count()} invalid field(s)"
            ) from e

    def diff(self, other: "Resource") -> list[FieldChange]:
        """
        Compare this resource with another state, field by field.

        Raises:
            DiffError: If two field values cannot be compared
        """
        mine = self.field_map()
        theirs = other.field_map()
        names = list(mine) + [name for name in theirs if name not in mine]

        changes = []
        for name in names:
            old = mine.get(name, _MISSING)
            new = theirs.get(name, _MISSING)
            try:
                differs = bool(old != new)
            except (TypeError, ValueError) as e:
                raise DiffError(f"Cannot compare field '{name}': {e}") from e
            if differs:
                changes.append(FieldChange(name, old, new))
        return changes

    def update(self, meta: "Meta") -> Outcome:
        """
        Apply a partial update in place.

        Returns:
            failed Outcome with the error if merging or diffing fails,
            failed Outcome "no change" if the update changes nothing,
            successful Outcome with a change summary otherwise
        """
        try:
            candidate = self.merge(meta)
            changes = self.diff(candidate)
        except (MergeError, DiffError) as e:
            return Outcome.failed(e.message)

        if not changes:
            return Outcome.failed(NO_CHANGE)

        for change in changes:
            setattr(self, change.name, getattr(candidate, change.name))
        return Outcome.ok(summarize(changes), status_code=0)


class GenericResource(Resource):
    """Resource of any shape; keeps every field the backend sends."""

    model_config = ConfigDict(extra="allow")


def filter_fields(filter: "Resource | Mapping[str, Any] | None") -> dict[str, Any]:
    """Field projection of a filter given as a resource or a mapping."""
    if filter is None:
        return {}
    if isinstance(filter, Resource):
        return filter.field_map()
    return dict(filter)


def filter_resources(
    resources: Iterable[ResourceT],
    filter: "Resource | Mapping[str, Any] | None",
) -> list[ResourceT]:
    """Resources matching the filter, in input order."""
    return [resource for resource in resources if resource.valid_for_filter(filter)]


@dataclasses.dataclass(frozen=True)
class Meta:
    """Partial update envelope: parsed resource plus the authoritative raw payload."""

    raw: bytes
    resource: Resource | None = None

    @classmethod
    def from_bytes(
        cls,
        raw: bytes | str,
        resource_type: type[Resource] = GenericResource,
    ) -> "Meta":
        """
        Build a Meta from a serialized payload.

        Raises:
            ParseError: If the payload is not a mapping of fields
        """
        if isinstance(raw, str):
            raw = raw.encode("utf-8")
        payload = parse_payload(raw)
        try:
            resource = resource_type.model_validate(payload)
        except PydanticValidationError:
            resource = None
        return cls(raw=raw, resource=resource)

    @classmethod
    def from_file(
        cls,
        path: str | Path,
        resource_type: type[Resource] = GenericResource,
    ) -> "Meta":
        """Load a partial update source file."""
        try:
            raw = Path(path).read_bytes()
        except OSError as e:
            raise ParseError(f"Cannot read update source {path}: {e}") from e
        return cls.from_bytes(raw, resource_type)

    def fields(self) -> dict[str, Any]:
        """Fields explicitly present in the raw payload."""
        return parse_payload(self.raw)
