"""
Operation Outcomes.

Outcome is the per-item result of an attempted operation. ResultList
maps item keys to outcomes for one bulk call; inserts are serialized by
a single lock so asyncio tasks and pool threads can share one list.

Reads are only meaningful after the bulk call that owns the list has
returned.
"""

import dataclasses
import threading
from collections.abc import Iterator

from hastily.api.generic import Generic, object_to_generic

NO_CHANGE = "no change"


@dataclasses.dataclass(frozen=True)
class Outcome:
    """Result of one attempted item operation."""

    success: bool
    message: str = ""
    status_code: int = 0
    skipped: bool = False

    @classmethod
    def ok(cls, message: str = "", status_code: int = 200) -> "Outcome":
        return cls(success=True, message=message, status_code=status_code)

    @classmethod
    def failed(cls, message: str, status_code: int = 0) -> "Outcome":
        return cls(success=False, message=message, status_code=status_code)

    @classmethod
    def skip(cls, message: str) -> "Outcome":
        """Outcome for an item whose operation was not attempted."""
        return cls(success=False, message=message, skipped=True)

    @property
    def state(self) -> str:
        if self.skipped:
            return "skipped"
        return "success" if self.success else "failed"


class ResultList:
    """Key to Outcome mapping for a single bulk call."""

    def __init__(self) -> None:
        self._data: dict[str, Outcome] = {}
        self._lock = threading.Lock()

    def insert(self, key: str, outcome: Outcome) -> None:
        """Record an outcome, replacing any previous one for the key."""
        with self._lock:
            self._data[key] = outcome

    def get(self, key: str) -> Outcome | None:
        return self._data.get(key)

    def has_key(self, key: str) -> bool:
        return key in self._data

    def size(self) -> int:
        return len(self._data)

    def successes(self) -> int:
        """Number of successful outcomes."""
        return sum(1 for outcome in self._data.values() if outcome.success)

    def failures(self) -> int:
        return self.size() - self.successes()

    def items(self) -> Iterator[tuple[str, Outcome]]:
        return iter(list(self._data.items()))

    def to_generic(self) -> dict[str, Generic]:
        """Project every outcome for display as extra table columns."""
        return {key: object_to_generic(outcome) for key, outcome in self._data.items()}

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __repr__(self) -> str:
        return f"ResultList(size={self.size()}, successes={self.successes()})"
