"""
Generic Projections.

Flattens objects into parallel lists of field names and display strings,
used to turn outcomes and resources into extra table columns.
"""

import dataclasses
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel


@dataclasses.dataclass
class Generic:
    """Field names and their rendered values, in declaration order."""

    keys: list[str] = dataclasses.field(default_factory=list)
    values: list[str] = dataclasses.field(default_factory=list)


def is_zero(value: Any) -> bool:
    """True for unset values: None, False, 0, empty strings and empty containers."""
    if value is None:
        return True
    if isinstance(value, (bool, int, float, complex)):
        return not value
    if isinstance(value, (str, bytes, Mapping, list, tuple, set, frozenset)):
        return len(value) == 0
    return False


def object_fields(obj: Any) -> dict[str, Any]:
    """Ordered mapping of public field name to value for models, dataclasses and mappings."""
    if hasattr(obj, "field_map"):
        return dict(obj.field_map())
    if isinstance(obj, BaseModel):
        return obj.model_dump()
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: getattr(obj, f.name) for f in dataclasses.fields(obj)}
    if isinstance(obj, Mapping):
        return dict(obj)
    return {k: v for k, v in vars(obj).items() if not k.startswith("_")}


def render_value(value: Any) -> str:
    """Display form of a single field value."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def object_to_generic(obj: Any, skip_zero: bool = False) -> Generic:
    """Project an object into a Generic, optionally omitting unset fields."""
    result = Generic()
    for key, value in object_fields(obj).items():
        if skip_zero and is_zero(value):
            continue
        result.keys.append(key)
        result.values.append(render_value(value))
    return result
