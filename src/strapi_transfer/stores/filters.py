"""Evaluation of Strapi filter objects against plain documents.

Supports the operator subset used by the transfer engine and by typical
export searches::

    {"title": {"$containsi": "news"}, "$or": [{"views": {"$gt": 10}}, {"featured": True}]}

A bare value is shorthand for ``$eq``.
"""

from collections.abc import Callable
from typing import Any

from ..exceptions import ValidationError


def _eq(value: Any, expected: Any) -> bool:
    return bool(value == expected)


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _compare(op: Callable[[Any, Any], bool]) -> Callable[[Any, Any], bool]:
    def check(value: Any, expected: Any) -> bool:
        if value is None or expected is None:
            return False
        try:
            return op(value, expected)
        except TypeError:
            return op(str(value), str(expected))

    return check


OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    "$eq": _eq,
    "$eqi": lambda value, expected: _text(value).lower() == _text(expected).lower(),
    "$ne": lambda value, expected: value != expected,
    "$in": lambda value, expected: value in list(expected or []),
    "$notIn": lambda value, expected: value not in list(expected or []),
    "$lt": _compare(lambda a, b: a < b),
    "$lte": _compare(lambda a, b: a <= b),
    "$gt": _compare(lambda a, b: a > b),
    "$gte": _compare(lambda a, b: a >= b),
    "$contains": lambda value, expected: _text(expected) in _text(value),
    "$containsi": lambda value, expected: _text(expected).lower() in _text(value).lower(),
    "$notContains": lambda value, expected: _text(expected) not in _text(value),
    "$startsWith": lambda value, expected: _text(value).startswith(_text(expected)),
    "$endsWith": lambda value, expected: _text(value).endswith(_text(expected)),
    "$null": lambda value, expected: (value is None) == _truthy(expected),
    "$notNull": lambda value, expected: (value is not None) == _truthy(expected),
}


def _truthy(value: Any) -> bool:
    if isinstance(value, str):
        return value.lower() in ("true", "1")
    return bool(value)


def matches(document: dict[str, Any], filters: dict[str, Any] | None) -> bool:
    """Check whether a document satisfies a filter object.

    Raises:
        ValidationError: On an unknown operator
    """
    if not filters:
        return True

    for key, condition in filters.items():
        if key == "$and":
            if not all(matches(document, sub) for sub in condition):
                return False
        elif key == "$or":
            if not any(matches(document, sub) for sub in condition):
                return False
        elif key == "$not":
            if matches(document, condition):
                return False
        elif not _match_field(document.get(key), condition):
            return False
    return True


def _match_field(value: Any, condition: Any) -> bool:
    if not isinstance(condition, dict):
        return _eq(value, condition)

    if not any(key.startswith("$") for key in condition):
        # Nested filter on a populated relation or component
        if isinstance(value, list):
            return any(isinstance(item, dict) and matches(item, condition) for item in value)
        return isinstance(value, dict) and matches(value, condition)

    for operator, expected in condition.items():
        if operator == "$not":
            if _match_field(value, expected):
                return False
            continue
        check = OPERATORS.get(operator)
        if check is None:
            raise ValidationError(f"Unsupported filter operator: {operator}")
        if not check(value, expected):
            return False
    return True
