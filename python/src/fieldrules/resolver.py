"""Conditional rule resolution - builds the effective rule set for one pass."""
from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from .rules import ConditionalBlock, RuleSet, merge_rule_sets

logger = logging.getLogger(__name__)

FieldLookup = Callable[[str], Any]


def _same(actual: Any, expected: Any) -> bool:
    # identity-style comparison: 1 does not match True or 1.0
    return type(actual) is type(expected) and actual == expected


def condition_holds(condition: Mapping[str, Any], lookup: FieldLookup) -> bool:
    """True when every ``field: expected`` pair matches the looked-up value.

    An empty condition always holds.
    """
    return all(_same(lookup(name), expected) for name, expected in condition.items())


def resolve(
    base: RuleSet,
    blocks: Iterable[ConditionalBlock],
    lookup: FieldLookup,
) -> RuleSet:
    """Compute the effective rule set for one validation pass.

    Starts from a copy of ``base`` and, for each block in registration order,
    appends the rules of the branch selected by the block's condition. Rule
    lists are concatenated per field, so rules from several blocks accumulate
    and duplicates are preserved.

    Args:
        base: Unconditional rules.
        blocks: Conditional blocks in registration order.
        lookup: Returns the current value of a field; should return
            ``record.MISSING`` for fields the record does not have.

    Returns:
        A new rule set. ``base`` and the blocks are left untouched.
    """
    effective = merge_rule_sets(base, {})
    for index, block in enumerate(blocks):
        holds = condition_holds(block.condition, lookup)
        logger.debug(
            "Conditional block %d (%s): using %s rules",
            index,
            block.condition,
            "then" if holds else "else",
        )
        effective = merge_rule_sets(effective, block.select(holds))
    return effective
