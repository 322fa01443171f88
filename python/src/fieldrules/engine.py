"""Rule engine - executes named field rules and collects per-field messages.

Rule names and default messages follow the Valitron conventions
(``required``, ``integer``, ``lengthBetween`` ...). Each built-in rule is
expressed as a JSON Schema fragment and checked with ``jsonschema``; custom
rules are plain callables.

Usage::

    engine = RuleEngine({"zip": "12"})
    engine.map_fields_rules({"zip": [RuleSpec.of("lengthBetween", 4, 4)]})
    if not engine.validate():
        engine.errors()  # {"zip": ["Zip must be between 4 and 4 characters"]}
"""
from __future__ import annotations

import datetime as _dt
import logging
from collections.abc import Callable, Mapping
from typing import Any, ClassVar

from jsonschema import Draft202012Validator, FormatChecker
from jsonschema.validators import extend

from .exceptions import EngineError, UnknownRuleError
from .record import MISSING
from .rules import RuleSet, RuleSpec

logger = logging.getLogger(__name__)

DEFAULT_MESSAGES: dict[str, str] = {
    "required": "is required",
    "accepted": "must be accepted",
    "equals": "must be the same as '{0}'",
    "different": "must be different than '{0}'",
    "numeric": "must be numeric",
    "integer": "must be an integer",
    "boolean": "must be a boolean",
    "array": "must be array",
    "length": "must be {0} characters long",
    "lengthBetween": "must be between {0} and {1} characters",
    "lengthMin": "must be at least {0} characters long",
    "lengthMax": "must not exceed {0} characters",
    "min": "must be at least {0}",
    "max": "must be no more than {0}",
    "between": "must be between {0} and {1}",
    "in": "contains invalid value",
    "notIn": "contains invalid value",
    "ip": "is not a valid IP address",
    "ipv4": "is not a valid IPv4 address",
    "ipv6": "is not a valid IPv6 address",
    "email": "is not a valid email address",
    "url": "is not a valid URL",
    "alpha": "must contain only letters a-z",
    "alphaNum": "must contain only letters a-z and/or numbers 0-9",
    "slug": "must contain only letters a-z, numbers 0-9, dashes and underscores",
    "regex": "contains invalid characters",
    "date": "is not a valid date",
}
DEFAULT_CUSTOM_MESSAGE = "is invalid"

# Rules that still run when an optional field is empty.
_ALWAYS_RUN = frozenset({"required", "accepted"})

_EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s.]+$"
_URL_PATTERN = r"^(https?|ftp)://[^\s/$.?#][^\s]*$"

# Python values the records hold are not JSON: tuples count as arrays and
# ``date`` gets its own type so date objects pass the ``date`` rule.
_TYPE_CHECKER = Draft202012Validator.TYPE_CHECKER.redefine_many({
    "array": lambda _checker, inst: isinstance(inst, (list, tuple)),
    "date": lambda _checker, inst: isinstance(inst, _dt.date),
})
_RuleValidator = extend(Draft202012Validator, type_checker=_TYPE_CHECKER)

SchemaBuilder = Callable[..., dict[str, Any]]


def _other(data: Mapping[str, Any], field: str) -> Any:
    return data.get(field, MISSING)


def _length(lo: int | None = None, hi: int | None = None) -> dict[str, Any]:
    schema: dict[str, Any] = {"type": "string"}
    if lo is not None:
        schema["minLength"] = lo
    if hi is not None:
        schema["maxLength"] = hi
    return schema


def _range(lo: Any = None, hi: Any = None) -> dict[str, Any]:
    schema: dict[str, Any] = {"type": "number"}
    if lo is not None:
        schema["minimum"] = lo
    if hi is not None:
        schema["maximum"] = hi
    return schema


def _pattern(pattern: str) -> dict[str, Any]:
    return {"type": "string", "pattern": pattern}


def _different(data: Mapping[str, Any], other: str) -> dict[str, Any]:
    value = _other(data, other)
    if value is MISSING:
        return {"not": {}}
    return {"not": {"const": value}}


# Builders are called as ``builder(data, *rule.args)``.
_SCHEMAS: dict[str, SchemaBuilder] = {
    "accepted": lambda data: {"enum": ["yes", "on", 1, "1", True, "true"]},
    "equals": lambda data, other: {"const": _other(data, other)},
    "different": _different,
    "numeric": lambda data: {"type": "number"},
    "integer": lambda data: {"type": "integer"},
    "boolean": lambda data: {"type": "boolean"},
    "array": lambda data: {"type": ["array", "object"]},
    "length": lambda data, n: _length(n, n),
    "lengthBetween": lambda data, lo, hi=None: _length(lo, hi),
    "lengthMin": lambda data, n: _length(lo=n),
    "lengthMax": lambda data, n: _length(hi=n),
    "min": lambda data, n: _range(lo=n),
    "max": lambda data, n: _range(hi=n),
    "between": lambda data, lo, hi: _range(lo, hi),
    "in": lambda data, choices: {"enum": list(choices)},
    "notIn": lambda data, choices: {"not": {"enum": list(choices)}},
    "ip": lambda data: {
        "type": "string",
        "anyOf": [{"format": "ipv4"}, {"format": "ipv6"}],
    },
    "ipv4": lambda data: {"type": "string", "format": "ipv4"},
    "ipv6": lambda data: {"type": "string", "format": "ipv6"},
    "email": lambda data: {"type": "string", "format": "email", "pattern": _EMAIL_PATTERN},
    "url": lambda data: _pattern(_URL_PATTERN),
    "alpha": lambda data: _pattern(r"^[a-zA-Z]+$"),
    "alphaNum": lambda data: _pattern(r"^[a-zA-Z0-9]+$"),
    "slug": lambda data: _pattern(r"^[-a-zA-Z0-9_]+$"),
    "regex": lambda data, pattern: _pattern(pattern),
    "date": lambda data: {"anyOf": [{"type": "date"}, {"type": "string", "format": "date"}]},
}

# fn(field, value, args, data, **kwargs) -> bool
CustomRule = Callable[..., bool]


def _is_blank(value: Any) -> bool:
    if value is MISSING or value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict, set)):
        return len(value) == 0
    return False


def _is_empty(value: Any) -> bool:
    return value is MISSING or value is None or value == ""


def default_label(field: str) -> str:
    """``"zip_code"`` -> ``"Zip Code"``; other characters are left as-is."""
    return " ".join(w[:1].upper() + w[1:] for w in field.replace("_", " ").split(" "))


class RuleEngine:
    """Runs rules against one snapshot of field values.

    Args:
        data: Field values to validate. Fields not present are treated as
            missing.
        messages: Per-rule message templates overriding ``DEFAULT_MESSAGES``.
        labels: Display names for fields used in messages.
    """

    _custom_rules: ClassVar[dict[str, tuple[CustomRule, str]]] = {}

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        # each subclass registers into its own dict; lookups walk the MRO
        cls._custom_rules = {}

    def __init__(
        self,
        data: Mapping[str, Any],
        *,
        messages: Mapping[str, str] | None = None,
        labels: Mapping[str, str] | None = None,
    ) -> None:
        self._data = dict(data)
        self._message_overrides = dict(messages or {})
        self._labels = dict(labels or {})
        self._instance_rules: dict[str, tuple[CustomRule, str]] = {}
        self._validations: list[tuple[str, RuleSpec]] = []
        self._errors: dict[str, list[str]] = {}
        self._format_checker = FormatChecker()

    # -- Custom rules -------------------------------------------------------

    @classmethod
    def add_rule(cls, name: str, fn: CustomRule, message: str = DEFAULT_CUSTOM_MESSAGE) -> None:
        """Register a custom rule for every engine of this class and its subclasses."""
        cls._custom_rules[name] = (fn, message)

    @classmethod
    def remove_rule(cls, name: str) -> None:
        cls._custom_rules.pop(name, None)

    def add_instance_rule(
        self, name: str, fn: CustomRule, message: str = DEFAULT_CUSTOM_MESSAGE
    ) -> RuleEngine:
        """Register a custom rule for this engine only."""
        self._instance_rules[name] = (fn, message)
        return self

    def _find_custom(self, name: str) -> tuple[CustomRule, str] | None:
        if name in self._instance_rules:
            return self._instance_rules[name]
        for klass in type(self).__mro__:
            registry = klass.__dict__.get("_custom_rules")
            if registry and name in registry:
                return registry[name]
        return None

    def has_rule_implementation(self, name: str) -> bool:
        return (
            name == "required"
            or name in _SCHEMAS
            or name in self._instance_rules
            or self._find_custom(name) is not None
        )

    # -- Rule mapping -------------------------------------------------------

    def rule(
        self, name: str, field: str, *args: Any, message: str | None = None, **kwargs: Any
    ) -> RuleEngine:
        self._validations.append((field, RuleSpec.of(name, *args, message=message, **kwargs)))
        return self

    def map_field_rules(self, field: str, rules: list[RuleSpec]) -> RuleEngine:
        for spec in rules:
            self._validations.append((field, spec))
        return self

    def map_fields_rules(self, rule_set: RuleSet) -> RuleEngine:
        for field, rules in rule_set.items():
            self.map_field_rules(field, rules)
        return self

    # -- Execution ----------------------------------------------------------

    def validate(self) -> bool:
        """Run every mapped rule; return ``True`` when all pass.

        Raises:
            UnknownRuleError: A mapped rule has no implementation.
            EngineError: A built-in rule was given the wrong arguments.
        """
        self._errors = {}
        required = {field for field, spec in self._validations if spec.name == "required"}
        for field, spec in self._validations:
            if not self.has_rule_implementation(spec.name):
                raise UnknownRuleError(spec.name, field)
            value = self._data.get(field, MISSING)
            if field not in required and spec.name not in _ALWAYS_RUN and _is_empty(value):
                continue
            if not self._check(field, value, spec):
                self._errors.setdefault(field, []).append(self._message(field, spec))
        logger.debug(
            "Ran %d rules, %d fields failed", len(self._validations), len(self._errors)
        )
        return not self._errors

    def errors(self, field: str | None = None) -> Any:
        """All messages as ``{field: [message, ...]}``, or one field's list."""
        if field is not None:
            return list(self._errors.get(field, []))
        return {name: list(msgs) for name, msgs in self._errors.items()}

    def _check(self, field: str, value: Any, spec: RuleSpec) -> bool:
        custom = self._find_custom(spec.name)
        if custom is not None:
            fn, _ = custom
            return bool(fn(field, value, spec.args, self._data, **spec.kwargs))
        if spec.name == "required":
            return not _is_blank(value)
        try:
            schema = _SCHEMAS[spec.name](self._data, *spec.args)
        except TypeError as exc:
            raise EngineError(
                f"Rule {spec.name!r} on field {field!r} got invalid arguments {spec.args!r}"
            ) from exc
        return _RuleValidator(schema, format_checker=self._format_checker).is_valid(value)

    def _message(self, field: str, spec: RuleSpec) -> str:
        if spec.message is not None:
            template = spec.message
        else:
            custom = self._find_custom(spec.name)
            if spec.name in self._message_overrides:
                text = self._message_overrides[spec.name]
            elif custom is not None:
                text = custom[1]
            else:
                text = DEFAULT_MESSAGES[spec.name]
            template = "{field} " + text
        message = template.replace("{field}", self._labels.get(field) or default_label(field))
        for i, arg in enumerate(spec.args):
            message = message.replace("{%d}" % i, str(arg))
        return message
