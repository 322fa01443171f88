"""fieldrules - declarative, conditional field validation for records."""

from .engine import RuleEngine
from .exceptions import (
    EngineError,
    FieldRulesError,
    InvalidRuleFormat,
    RegistrationClosedError,
    UnknownRuleError,
    ValidationException,
)
from .record import HOOK_VALIDATE, MISSING, HostRecord, Record
from .resolver import condition_holds, resolve
from .rules import ConditionalBlock, RuleSet, RuleSpec, normalize_rule_set, normalize_rules
from .validator import Validator

__version__ = "0.1.0"

__all__ = [
    "Validator",
    "Record",
    "HostRecord",
    "HOOK_VALIDATE",
    "MISSING",
    "RuleSpec",
    "RuleSet",
    "ConditionalBlock",
    "RuleEngine",
    "normalize_rules",
    "normalize_rule_set",
    "resolve",
    "condition_holds",
    "FieldRulesError",
    "InvalidRuleFormat",
    "RegistrationClosedError",
    "EngineError",
    "UnknownRuleError",
    "ValidationException",
]
