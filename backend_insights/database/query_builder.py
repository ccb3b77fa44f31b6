"""
Parameterized query fragments.

Batch lookups by key set go through build_in_clause so SQL text only ever
contains placeholders; values travel as bound parameters.
"""

from __future__ import annotations

import re
from typing import Any, Sequence

from backend_insights.core.exceptions import ValidationFailure

MAX_IN_CLAUSE_KEYS = 500
_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def build_in_clause(
    column: str,
    keys: Sequence[Any],
    *,
    max_keys: int = MAX_IN_CLAUSE_KEYS,
    placeholder: str = "?",
) -> tuple[str, list[Any]]:
    """
    Build "column IN (?, ?, ...)" and its parameter list.

    Duplicate keys are collapsed (first occurrence order kept). The column must be
    a plain identifier since it is interpolated into the SQL text.

    Raises:
        ValidationFailure: empty key set, too many keys, or invalid column name.
    """
    if not _IDENTIFIER.match(column):
        raise ValidationFailure("column", column, f"Invalid column identifier: {column!r}.")
    unique_keys = list(dict.fromkeys(keys))
    if not unique_keys:
        raise ValidationFailure("keys", [], "At least one key is required.")
    if len(unique_keys) > max_keys:
        raise ValidationFailure(
            "keys",
            len(unique_keys),
            f"At most {max_keys} keys are allowed per query (got {len(unique_keys)}).",
        )
    placeholders = ", ".join([placeholder] * len(unique_keys))
    return f"{column} IN ({placeholders})", unique_keys
