"""Metadata filter handling.

Filters are plain dicts in the Mongo / Pinecone style::

    {"source": "handbook.pdf"}                       # implicit $eq
    {"pageNumber": {"$gte": 3}}
    {"$or": [{"source": {"$eq": "a"}}, {"documentTitle": {"$eq": "a"}}]}

Several top-level fields are AND-ed together.
"""

from __future__ import annotations

from typing import Any

from ragchat.errors import ValidationError

_LOGICAL = {"$or", "$and"}
_COMPARISONS = {"$eq", "$ne", "$gt", "$gte", "$lt", "$lte", "$in", "$nin"}


def matches_filter(metadata: dict[str, Any], filter: dict[str, Any] | None) -> bool:
    """Return ``True`` when *metadata* satisfies *filter* (``None`` matches all)."""
    if not filter:
        return True

    for key, condition in filter.items():
        if key == "$or":
            if not any(matches_filter(metadata, clause) for clause in _clauses(key, condition)):
                return False
        elif key == "$and":
            if not all(matches_filter(metadata, clause) for clause in _clauses(key, condition)):
                return False
        elif key.startswith("$"):
            raise ValidationError(f"Unsupported filter operator: {key!r}")
        elif not _match_field(metadata.get(key), condition):
            return False
    return True


def to_chroma_where(filter: dict[str, Any] | None) -> dict[str, Any] | None:
    """Convert *filter* to a Chroma ``where`` clause.

    Chroma accepts exactly one top-level key per clause, so multi-field
    dicts are wrapped in ``$and`` and bare values become ``$eq``.
    """
    if not filter:
        return None

    clauses: list[dict[str, Any]] = []
    for key, condition in filter.items():
        if key in _LOGICAL:
            converted = [to_chroma_where(clause) for clause in _clauses(key, condition)]
            converted = [c for c in converted if c]
            if len(converted) == 1:
                clauses.append(converted[0])
            elif converted:
                clauses.append({key: converted})
        elif key.startswith("$"):
            raise ValidationError(f"Unsupported filter operator: {key!r}")
        else:
            clauses.extend({key: {op: value}} for op, value in _field_conditions(condition))

    if not clauses:
        return None
    if len(clauses) == 1:
        return clauses[0]
    return {"$and": clauses}


# -- internals ----------------------------------------------------------------


def _clauses(key: str, condition: Any) -> list[dict[str, Any]]:
    if not isinstance(condition, list) or not all(isinstance(c, dict) for c in condition):
        raise ValidationError(f"{key} expects a list of filter objects")
    return condition


def _field_conditions(condition: Any) -> list[tuple[str, Any]]:
    if isinstance(condition, dict):
        for op in condition:
            if op not in _COMPARISONS:
                raise ValidationError(f"Unsupported filter operator: {op!r}")
        return list(condition.items())
    return [("$eq", condition)]


def _match_field(value: Any, condition: Any) -> bool:
    for op, expected in _field_conditions(condition):
        if op == "$eq" and value != expected:
            return False
        if op == "$ne" and value == expected:
            return False
        if op == "$in" and value not in expected:
            return False
        if op == "$nin" and value in expected:
            return False
        if op in {"$gt", "$gte", "$lt", "$lte"}:
            if value is None:
                return False
            try:
                ok = {
                    "$gt": value > expected,
                    "$gte": value >= expected,
                    "$lt": value < expected,
                    "$lte": value <= expected,
                }[op]
            except TypeError:
                return False
            if not ok:
                return False
    return True
