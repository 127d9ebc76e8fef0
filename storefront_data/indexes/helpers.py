"""
Helper functions for index management.
"""

from typing import Any

IndexKeys = list[tuple[str, Any]]


def normalize_keys(keys: dict[str, Any] | IndexKeys) -> IndexKeys:
    """
    Normalize index keys to a list of (field_name, direction) tuples.

    Dict input keeps its insertion order, which is the compound key order.
    """
    if isinstance(keys, dict):
        return [(k, v) for k, v in keys.items()]
    return [tuple(k) for k in keys]


def default_index_name(keys: dict[str, Any] | IndexKeys) -> str:
    """
    Generate the name MongoDB would assign to an index on ``keys``.

    ``[("category", 1), ("price", 1)]`` becomes ``"category_1_price_1"``.
    """
    return "_".join(f"{field}_{direction}" for field, direction in normalize_keys(keys))


def is_text_index(keys: dict[str, Any] | IndexKeys) -> bool:
    return any(direction == "text" for _, direction in normalize_keys(keys))


def is_id_index(keys: dict[str, Any] | IndexKeys) -> bool:
    """True if the keys target only ``_id``, which MongoDB indexes automatically."""
    normalized = normalize_keys(keys)
    return len(normalized) == 1 and normalized[0][0] == "_id"
