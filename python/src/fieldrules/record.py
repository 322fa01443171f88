"""Minimal host record with lifecycle hooks.

A ``Record`` holds field values and lets collaborators attach handlers to
named hook spots. ``Validator`` binds itself to ``HOOK_VALIDATE``; any object
satisfying ``HostRecord`` can be used in its place.
"""
from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from .exceptions import ValidationException

if TYPE_CHECKING:
    from .validator import Validator

HOOK_VALIDATE = "validate"


class _Missing:
    """Sentinel type for a field the record does not have."""

    _instance: _Missing | None = None

    def __new__(cls) -> _Missing:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


@runtime_checkable
class HostRecord(Protocol):
    """What ``Validator`` needs from the record it validates."""

    def get(self, field: str | None = None) -> Any: ...
    def on_hook(self, spot: str, fn: Callable[..., Any]) -> None: ...


class Record:
    """A mutable set of field values with hook spots.

    Args:
        data: Initial field values.
        fields: Declared field names. Declared fields without a value read as
            ``None``; reading an undeclared, unset field raises ``KeyError``.
    """

    def __init__(
        self,
        data: Mapping[str, Any] | None = None,
        *,
        fields: Iterable[str] | None = None,
    ) -> None:
        self._data: dict[str, Any] = dict(data or {})
        self._fields: tuple[str, ...] = tuple(fields or ())
        self._hooks: dict[str, list[Callable[..., Any]]] = {}
        self.validator: Validator | None = None

    # -- Field access -------------------------------------------------------

    def get(self, field: str | None = None) -> Any:
        """Return one field's value, or a snapshot of all values when called bare."""
        if field is None:
            snapshot = {name: None for name in self._fields}
            snapshot.update(self._data)
            return snapshot
        if field in self._data:
            return self._data[field]
        if field in self._fields:
            return None
        raise KeyError(field)

    def set(self, field: str, value: Any) -> Record:
        self._data[field] = value
        return self

    def __getitem__(self, field: str) -> Any:
        return self.get(field)

    def __setitem__(self, field: str, value: Any) -> None:
        self.set(field, value)

    def __contains__(self, field: object) -> bool:
        return field in self._data or field in self._fields

    # -- Hooks --------------------------------------------------------------

    def on_hook(self, spot: str, fn: Callable[..., Any]) -> None:
        """Register ``fn(record, *args)`` to run when ``spot`` fires."""
        self._hooks.setdefault(spot, []).append(fn)

    def hook(self, spot: str, *args: Any) -> list[Any]:
        """Fire ``spot`` and return each handler's result in registration order."""
        return [fn(self, *args) for fn in self._hooks.get(spot, [])]

    # -- Validation ---------------------------------------------------------

    def validate(self, intent: str | None = None) -> dict[str, str]:
        """Run all validate handlers and merge their ``{field: message}`` results.

        Later handlers win when two report the same field. An empty dict
        means the record is valid.
        """
        errors: dict[str, str] = {}
        for result in self.hook(HOOK_VALIDATE, intent):
            if result:
                errors.update(result)
        return errors

    def assert_valid(self, intent: str | None = None) -> None:
        """Raise ``ValidationException`` if ``validate()`` reports any error."""
        errors = self.validate(intent)
        if errors:
            raise ValidationException(errors, intent=intent)

    def __repr__(self) -> str:
        return f"<Record: {len(self.get())} fields>"
