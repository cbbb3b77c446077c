"""Removal of query-operator keys from client input.

MongoDB interprets keys starting with ``$`` as operators and keys containing
``.`` as paths into nested documents. Any such key in request input is
dropped before a handler can pass it into a query.
"""

import logging
from typing import Any

log = logging.getLogger(__name__)

OPERATOR_PREFIX = "$"
PATH_SEPARATOR = "."


def is_prohibited_key(key: Any) -> bool:
    return isinstance(key, str) and (
        key.startswith(OPERATOR_PREFIX) or PATH_SEPARATOR in key
    )


def sanitize(value: Any) -> tuple[Any, bool]:
    """Recursively strip prohibited keys from a decoded JSON value.

    Args:
        value (Any): A decoded JSON value (dict, list or scalar).

    Returns:
        tuple[Any, bool]: The sanitized value and whether anything was removed.

    Notes:
        1. Dicts are rebuilt without prohibited keys; surviving values are sanitized.
        2. Lists are sanitized element by element.
        3. Scalars are returned unchanged.
        4. The input is never mutated.

    """
    if isinstance(value, dict):
        removed = False
        cleaned = {}
        for key, item in value.items():
            if is_prohibited_key(key):
                removed = True
                continue
            cleaned[key], item_removed = sanitize(item)
            removed = removed or item_removed
        return cleaned, removed

    if isinstance(value, list):
        removed = False
        cleaned_items = []
        for item in value:
            cleaned_item, item_removed = sanitize(item)
            cleaned_items.append(cleaned_item)
            removed = removed or item_removed
        return cleaned_items, removed

    return value, False


def sanitize_query_params(
    params: list[tuple[str, str]],
) -> tuple[list[tuple[str, str]], bool]:
    """Drop query-string parameters whose names are prohibited keys."""
    kept = [(key, value) for key, value in params if not is_prohibited_key(key)]
    return kept, len(kept) != len(params)
