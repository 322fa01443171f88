"""Shared fixtures for fieldrules tests."""

from __future__ import annotations

import pytest

from fieldrules import Record, RuleEngine, Validator


@pytest.fixture()
def us_record():
    """A US address record with an empty zip code."""
    return Record({"country": "US", "age": 30, "zip": ""})


@pytest.fixture()
def fr_record():
    """A French address record with a too-short zip code."""
    return Record({"country": "FR", "zip": "12"})


@pytest.fixture()
def address_rules():
    """Configure a validator with the country-dependent zip rules."""

    def configure(v: Validator) -> Validator:
        return v.rules({"age": [("integer",)]}).if_(
            {"country": "US"},
            {"zip": [("required",)]},
            {"zip": [("lengthBetween", 4, 4)]},
        )

    return configure


@pytest.fixture()
def custom_rule():
    """Register a global ``even`` rule for the duration of a test."""
    RuleEngine.add_rule(
        "even",
        lambda field, value, args, data: isinstance(value, int) and value % 2 == 0,
        "must be even",
    )
    yield "even"
    RuleEngine.remove_rule("even")
