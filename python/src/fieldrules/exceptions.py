"""Typed exceptions for fieldrules."""

from __future__ import annotations

from typing import Any


class FieldRulesError(Exception):
    """Base exception for all fieldrules errors."""


class InvalidRuleFormat(FieldRulesError, ValueError):
    """A rule entry could not be read as a rule name plus arguments."""

    def __init__(self, message: str, *, rule: Any = None) -> None:
        super().__init__(message)
        self.rule = rule


class RegistrationClosedError(FieldRulesError, RuntimeError):
    """Rules were registered on a validator that has already run."""


class EngineError(FieldRulesError):
    """The rule engine failed while executing rules (not a data problem)."""


class UnknownRuleError(EngineError, KeyError):
    """A rule name has no built-in or custom implementation."""

    def __init__(self, name: str, field: str | None = None) -> None:
        msg = f"Unknown validation rule {name!r}"
        if field is not None:
            msg += f" on field {field!r}"
        super().__init__(msg)
        self.name = name
        self.field = field

    def __str__(self) -> str:
        return str(self.args[0])


class ValidationException(FieldRulesError):
    """Raised by ``Record.assert_valid()`` when a record fails validation."""

    def __init__(self, errors: dict[str, str], *, intent: str | None = None) -> None:
        fields = ", ".join(sorted(errors))
        super().__init__(f"Validation failed for: {fields}")
        self.errors = errors
        self.intent = intent
