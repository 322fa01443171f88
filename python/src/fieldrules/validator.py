"""Validator - declares field rules on a record and validates it on demand.

Usage::

    record = Record({"country": "US", "age": 30, "zip": ""})
    v = Validator(record)
    v.rule("age", "integer")
    v.if_({"country": "US"}, {"zip": "required"}, {"zip": [("lengthBetween", 4, 4)]})

    record.validate()  # {"zip": "Zip is required"}

The validator hooks itself into the record at construction, so calling
``record.validate()`` runs it. Rules must all be registered before the first
validation pass.
"""
from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from .engine import RuleEngine
from .exceptions import InvalidRuleFormat, RegistrationClosedError
from .record import HOOK_VALIDATE, MISSING, HostRecord
from .resolver import FieldLookup, resolve
from .rules import (
    ConditionalBlock,
    RuleSet,
    check_field_name,
    normalize_rule_set,
    normalize_rules,
)

logger = logging.getLogger(__name__)


class Validator:
    """Per-record rule registry bound to the record's validate hook.

    Args:
        record: The record to validate. Must provide ``get()`` and
            ``on_hook()``; if it has an unset ``validator`` attribute it is
            pointed at this instance.
        messages: Per-rule message templates passed to the engine.
        labels: Field display names passed to the engine.
        engine_cls: Engine implementation, ``RuleEngine`` by default.
    """

    def __init__(
        self,
        record: HostRecord,
        *,
        messages: Mapping[str, str] | None = None,
        labels: Mapping[str, str] | None = None,
        engine_cls: type[RuleEngine] = RuleEngine,
    ) -> None:
        self.record = record
        self.field_rules: RuleSet = {}
        self.if_rules: list[ConditionalBlock] = []
        self._messages = dict(messages or {})
        self._labels = dict(labels or {})
        self._engine_cls = engine_cls
        self._sealed = False

        if hasattr(record, "validator") and getattr(record, "validator") is None:
            record.validator = self  # type: ignore[attr-defined]

        record.on_hook(HOOK_VALIDATE, self.validate)

    # -- Registration -------------------------------------------------------

    def _ensure_open(self) -> None:
        if self._sealed:
            raise RegistrationClosedError(
                "Rules cannot be added after the validator has run"
            )

    def rule(self, field: str, rules: Any) -> Validator:
        """Append ``rules`` to ``field``'s rule list."""
        self._ensure_open()
        check_field_name(field)
        specs = normalize_rules(rules)
        self.field_rules.setdefault(field, []).extend(specs)
        logger.debug("Registered %s on %r", self.field_rules[field], field)
        return self

    def rules(self, mapping: Mapping[str, Any]) -> Validator:
        """Append rules for every ``field: rules`` pair.

        Nothing is registered if any entry is invalid.
        """
        self._ensure_open()
        if not isinstance(mapping, Mapping):
            raise InvalidRuleFormat(
                f"Expected a mapping of field to rules, got {type(mapping).__name__}",
                rule=mapping,
            )
        for field, specs in normalize_rule_set(mapping).items():
            self.field_rules.setdefault(field, []).extend(specs)
            logger.debug("Registered %s on %r", specs, field)
        return self

    def if_(
        self,
        condition: Mapping[str, Any],
        then_rules: Mapping[str, Any],
        else_rules: Mapping[str, Any] | None = None,
    ) -> Validator:
        """Add rules that depend on current field values.

        ``then_rules`` apply when every ``field: value`` pair in ``condition``
        matches the record, ``else_rules`` otherwise.
        """
        self._ensure_open()
        if not isinstance(condition, Mapping):
            raise InvalidRuleFormat(
                f"Condition must be a mapping of field to value, got {type(condition).__name__}",
                rule=condition,
            )
        for field in condition:
            check_field_name(field)
        block = ConditionalBlock(
            condition=dict(condition),
            then_rules=normalize_rule_set(then_rules),
            else_rules=normalize_rule_set(else_rules),
        )
        self.if_rules.append(block)
        return self

    # -- Validation ---------------------------------------------------------

    def _lookup(self, record: HostRecord) -> FieldLookup:
        def lookup(field: str) -> Any:
            try:
                return record.get(field)
            except KeyError:
                return MISSING

        return lookup

    def effective_rules(self, record: HostRecord | None = None) -> RuleSet:
        """Rules that apply to ``record`` (default: the bound record) right now."""
        record = self.record if record is None else record
        return resolve(self.field_rules, self.if_rules, self._lookup(record))

    def validate(self, record: HostRecord, intent: str | None = None) -> dict[str, str] | None:
        """Validate ``record``; return ``{field: message}`` or ``None`` when valid.

        When a field fails several rules, the message of the last failing rule
        is kept. Engine errors (unknown rule, bad rule arguments) propagate.
        """
        self._sealed = True
        all_rules = self.effective_rules(record)

        engine = self._engine_cls(record.get(), messages=self._messages, labels=self._labels)
        engine.map_fields_rules(all_rules)
        if engine.validate():
            logger.debug("Record valid (intent=%s)", intent)
            return None

        errors = {field: messages[-1] for field, messages in engine.errors().items() if messages}
        logger.debug("Record invalid (intent=%s): %s", intent, sorted(errors))
        return errors

    def __repr__(self) -> str:
        return (
            f"<Validator: {len(self.field_rules)} fields, "
            f"{len(self.if_rules)} conditional blocks>"
        )
