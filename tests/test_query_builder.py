"""Tests for the parameterized IN-clause builder."""

from __future__ import annotations

import pytest

from backend_insights.core.exceptions import ValidationFailure
from backend_insights.database import MAX_IN_CLAUSE_KEYS, build_in_clause


def test_build_in_clause_placeholders():
    sql, params = build_in_clause("corridor_key", ["a", "b", "c"])
    assert sql == "corridor_key IN (?, ?, ?)"
    assert params == ["a", "b", "c"]


def test_build_in_clause_dedupes_in_order():
    sql, params = build_in_clause("status", ["x", "y", "x"])
    assert sql == "status IN (?, ?)"
    assert params == ["x", "y"]


def test_build_in_clause_values_never_reach_sql():
    hostile = "'); DROP TABLE payments; --"
    sql, params = build_in_clause("corridor_key", [hostile])
    assert hostile not in sql
    assert params == [hostile]


def test_build_in_clause_custom_placeholder():
    sql, _ = build_in_clause("id", [1, 2], placeholder="%s")
    assert sql == "id IN (%s, %s)"


def test_build_in_clause_rejects_empty():
    with pytest.raises(ValidationFailure) as exc:
        build_in_clause("id", [])
    assert exc.value.param == "keys"


def test_build_in_clause_rejects_oversized():
    build_in_clause("id", list(range(MAX_IN_CLAUSE_KEYS)))
    with pytest.raises(ValidationFailure):
        build_in_clause("id", list(range(MAX_IN_CLAUSE_KEYS + 1)))


def test_build_in_clause_rejects_bad_column():
    with pytest.raises(ValidationFailure) as exc:
        build_in_clause("id; DROP TABLE x", ["a"])
    assert exc.value.param == "column"
