"""Tests for the host Record."""

from __future__ import annotations

import pytest

from fieldrules import HOOK_VALIDATE, MISSING, HostRecord, Record, ValidationException, Validator


class TestFieldAccess:
    def test_get_and_set(self):
        r = Record({"a": 1})
        r.set("b", 2)
        r["c"] = 3
        assert r.get("a") == 1
        assert r["b"] == 2
        assert r.get() == {"a": 1, "b": 2, "c": 3}

    def test_unknown_field_raises(self):
        with pytest.raises(KeyError):
            Record().get("nope")

    def test_declared_field_defaults_to_none(self):
        r = Record({"a": 1}, fields=["a", "b"])
        assert r.get("b") is None
        assert r.get() == {"a": 1, "b": None}
        assert "b" in r
        assert "c" not in r

    def test_snapshot_is_a_copy(self):
        r = Record({"a": 1})
        r.get()["a"] = 2
        assert r.get("a") == 1

    def test_satisfies_host_protocol(self):
        assert isinstance(Record(), HostRecord)

    def test_repr(self):
        assert repr(Record({"a": 1}, fields=["b"])) == "<Record: 2 fields>"


class TestMissing:
    def test_singleton_and_falsy(self):
        assert type(MISSING)() is MISSING
        assert not MISSING
        assert MISSING is not None
        assert repr(MISSING) == "MISSING"


class TestHooks:
    def test_results_in_registration_order(self):
        r = Record()
        r.on_hook("x", lambda rec, n: n + 1)
        r.on_hook("x", lambda rec, n: n * 10)
        assert r.hook("x", 2) == [3, 20]
        assert r.hook("unused") == []

    def test_validate_merges_results(self):
        r = Record()
        r.on_hook(HOOK_VALIDATE, lambda rec, intent: {"a": "first", "b": "b"})
        r.on_hook(HOOK_VALIDATE, lambda rec, intent: None)
        r.on_hook(HOOK_VALIDATE, lambda rec, intent: {"a": "second"})
        assert r.validate() == {"a": "second", "b": "b"}

    def test_validate_passes_intent(self):
        seen = []
        r = Record()
        r.on_hook(HOOK_VALIDATE, lambda rec, intent: seen.append(intent))
        r.validate("save")
        assert seen == ["save"]

    def test_valid_record_returns_empty_dict(self):
        r = Record({"a": "x"})
        Validator(r).rule("a", "required")
        assert r.validate() == {}


class TestAssertValid:
    def test_raises_with_errors(self):
        r = Record({"zip": ""})
        Validator(r).rule("zip", "required")
        with pytest.raises(ValidationException) as exc_info:
            r.assert_valid("save")
        assert exc_info.value.errors == {"zip": "Zip is required"}
        assert exc_info.value.intent == "save"
        assert "zip" in str(exc_info.value)

    def test_passes_when_valid(self):
        r = Record({"zip": "1234"})
        Validator(r).rule("zip", ("length", 4))
        r.assert_valid()
