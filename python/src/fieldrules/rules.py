"""Rule specifications, rule sets and conditional blocks.

Rules can be written in several shorthand forms and are normalized into a
canonical ``{field: [RuleSpec, ...]}`` mapping::

    "required"                              # one rule, no arguments
    ("lengthBetween", 4, 10)                # one rule with positional args
    ("email", {"message": "Bad {field}"})   # named args; ``message`` is special
    ["required", ("lengthMax", 64)]         # a list of rules

Normalizing an already-normalized value returns an equal value.
"""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from .exceptions import InvalidRuleFormat


class RuleSpec(BaseModel):
    """One validation rule: a name plus its arguments and optional message."""

    model_config = ConfigDict(frozen=True)

    name: str
    args: tuple[Any, ...] = ()
    kwargs: dict[str, Any] = {}
    message: str | None = None

    @field_validator("name")
    @classmethod
    def _name_not_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("rule name must not be empty")
        return v

    @classmethod
    def of(cls, name: str, *args: Any, message: str | None = None, **kwargs: Any) -> RuleSpec:
        """Build a rule from call-style arguments: ``RuleSpec.of("min", 18)``."""
        try:
            return cls(name=name, args=args, kwargs=kwargs, message=message)
        except ValidationError as exc:
            raise InvalidRuleFormat(
                f"Invalid rule {name!r}: {exc.errors()[0]['msg']}", rule=name
            ) from None

    def __repr__(self) -> str:
        parts = [repr(self.name), *(repr(a) for a in self.args)]
        parts.extend(f"{k}={v!r}" for k, v in self.kwargs.items())
        if self.message is not None:
            parts.append(f"message={self.message!r}")
        return f"RuleSpec({', '.join(parts)})"


RuleSet = dict[str, list[RuleSpec]]


@dataclass(frozen=True)
class ConditionalBlock:
    """Rules applied when ``condition`` holds (``then_rules``) or not (``else_rules``).

    Attributes:
        condition: ``{field: expected_value}``; every pair must match. Empty
            means always true.
        then_rules: Normalized rule set merged when the condition holds.
        else_rules: Normalized rule set merged otherwise.
    """

    condition: dict[str, Any]
    then_rules: RuleSet = field(default_factory=dict)
    else_rules: RuleSet = field(default_factory=dict)

    def select(self, holds: bool) -> RuleSet:
        return self.then_rules if holds else self.else_rules


# -- Normalization ----------------------------------------------------------


def _entry_to_spec(entry: Any) -> RuleSpec:
    if isinstance(entry, RuleSpec):
        return entry
    if isinstance(entry, str):
        if not entry:
            raise InvalidRuleFormat("Rule name must not be empty", rule=entry)
        return RuleSpec(name=entry)
    if isinstance(entry, (tuple, list)):
        if not entry:
            raise InvalidRuleFormat("Empty rule specification", rule=entry)
        name, *rest = entry
        if not isinstance(name, str) or not name:
            raise InvalidRuleFormat(
                f"Rule specification must start with a rule name, got {name!r}",
                rule=entry,
            )
        args: list[Any] = []
        kwargs: dict[str, Any] = {}
        for item in rest:
            if isinstance(item, Mapping):
                kwargs.update(item)
            else:
                args.append(item)
        message = kwargs.pop("message", None)
        if message is not None and not isinstance(message, str):
            raise InvalidRuleFormat(
                f"Rule message must be a string, got {type(message).__name__}",
                rule=entry,
            )
        return RuleSpec.of(name, *args, message=message, **kwargs)
    raise InvalidRuleFormat(
        f"Cannot interpret {type(entry).__name__} as a rule", rule=entry
    )


def normalize_rules(rules: Any) -> list[RuleSpec]:
    """Normalize the rules of a single field into an ordered list of ``RuleSpec``.

    A ``str``, ``RuleSpec`` or ``tuple`` is one rule; a ``list`` is a sequence
    of rules, where each nested list or tuple is itself one rule.

    Raises:
        InvalidRuleFormat: If ``rules`` is empty or an entry has no rule name.
    """
    if isinstance(rules, list):
        if not rules:
            raise InvalidRuleFormat("Empty rule specification", rule=rules)
        return [_entry_to_spec(entry) for entry in rules]
    if isinstance(rules, Mapping):
        raise InvalidRuleFormat(
            "Expected rules for one field, got a mapping (use rules() for several fields)",
            rule=rules,
        )
    if rules is None:
        raise InvalidRuleFormat("Empty rule specification", rule=rules)
    return [_entry_to_spec(rules)]


def normalize_rule_set(rule_set: Mapping[str, Any] | None) -> RuleSet:
    """Normalize a ``{field: rules}`` mapping into a ``RuleSet``.

    ``None`` and ``{}`` both yield an empty rule set.
    """
    if rule_set is None:
        return {}
    if not isinstance(rule_set, Mapping):
        raise InvalidRuleFormat(
            f"Expected a mapping of field to rules, got {type(rule_set).__name__}",
            rule=rule_set,
        )
    normalized: RuleSet = {}
    for field_name, rules in rule_set.items():
        check_field_name(field_name)
        normalized.setdefault(field_name, []).extend(normalize_rules(rules))
    return normalized


def check_field_name(field_name: Any) -> None:
    if not isinstance(field_name, str) or not field_name:
        raise InvalidRuleFormat(
            f"Field name must be a non-empty string, got {field_name!r}",
            rule=field_name,
        )


def merge_rule_sets(target: RuleSet, extra: RuleSet) -> RuleSet:
    """Return a new rule set with ``extra``'s lists appended per field.

    Neither argument is modified. Duplicate rules are kept.
    """
    merged: RuleSet = {name: list(specs) for name, specs in target.items()}
    for name, specs in extra.items():
        merged.setdefault(name, []).extend(specs)
    return merged
