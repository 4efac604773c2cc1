"""
Result — uniform success/failure value returned by engine operations.

Every public engine and service operation returns a ``Result`` instead of
raising. Callers turn it into a JSON body with ``to_wire()``:

    result = engine.optimize(42, path, config)
    if result.is_failure():
        return jsonify(result.to_wire()), 400

``success`` and ``message`` are reserved: data carrying either key is
rejected at construction, so flattening can never overwrite them.
"""

from __future__ import annotations

from collections import abc
from typing import Any, Dict, Iterator, Mapping, Optional

from ..errors import ImmutableViolation

RESERVED_KEYS = frozenset({"success", "message"})
DEFAULT_SUCCESS_MESSAGE = "Operation completed successfully"


class FrozenData(abc.Mapping):
    """Read-only view over a Result's data; writes raise ImmutableViolation."""

    __slots__ = ("_items",)

    def __init__(self, items: Mapping[str, Any]):
        object.__setattr__(self, "_items", dict(items))

    def __getitem__(self, key: str) -> Any:
        return self._items[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __setitem__(self, key: str, value: Any) -> None:
        raise ImmutableViolation(f"Result data is immutable (tried to set '{key}')")

    def __delitem__(self, key: str) -> None:
        raise ImmutableViolation(f"Result data is immutable (tried to delete '{key}')")

    def __setattr__(self, name: str, value: Any) -> None:
        raise ImmutableViolation(f"Result data is immutable (tried to set '{name}')")

    def __repr__(self) -> str:
        return f"FrozenData({self._items!r})"


class Result:
    """Immutable tagged union of success (with data) or failure (with message)."""

    __slots__ = ("_ok", "_message", "_data")

    def __init__(
        self,
        ok: bool,
        message: str = "",
        data: Optional[Mapping[str, Any]] = None,
    ):
        data = dict(data or {})
        clashes = RESERVED_KEYS.intersection(data)
        if clashes:
            raise ValueError(f"Result data may not use reserved keys: {sorted(clashes)}")
        object.__setattr__(self, "_ok", bool(ok))
        object.__setattr__(self, "_message", message)
        object.__setattr__(self, "_data", FrozenData(data))

    # ── Factories ────────────────────────────────────────────────

    @classmethod
    def success(cls, data: Optional[Mapping[str, Any]] = None, message: str = "") -> "Result":
        return cls(True, message or DEFAULT_SUCCESS_MESSAGE, data)

    @classmethod
    def failure(cls, message: str, data: Optional[Mapping[str, Any]] = None) -> "Result":
        return cls(False, message, data)

    @classmethod
    def from_exception(cls, exc: BaseException, data: Optional[Mapping[str, Any]] = None) -> "Result":
        """Build a failure carrying the exception's message and type."""
        merged = dict(data or {})
        merged.setdefault("error_type", type(exc).__name__)
        return cls(False, str(exc) or type(exc).__name__, merged)

    # ── Accessors ────────────────────────────────────────────────

    def is_success(self) -> bool:
        return self._ok

    def is_failure(self) -> bool:
        return not self._ok

    @property
    def message(self) -> str:
        return self._message

    @property
    def data(self) -> Mapping[str, Any]:
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def to_wire(self) -> Dict[str, Any]:
        """Flatten into ``{"success", "message", **data}`` for JSON responses."""
        response: Dict[str, Any] = {"success": self._ok, "message": self._message}
        response.update(self._data)
        return response

    # ── Immutability ─────────────────────────────────────────────

    def __setattr__(self, name: str, value: Any) -> None:
        raise ImmutableViolation(f"Result is immutable (tried to set '{name}')")

    def __delattr__(self, name: str) -> None:
        raise ImmutableViolation(f"Result is immutable (tried to delete '{name}')")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Result):
            return NotImplemented
        return (self._ok, self._message, dict(self._data)) == (
            other._ok, other._message, dict(other._data)
        )

    def __repr__(self) -> str:
        kind = "success" if self._ok else "failure"
        return f"Result.{kind}(message={self._message!r}, data={dict(self._data)!r})"
