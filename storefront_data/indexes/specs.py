"""
Static index declarations.

Each collection gets single-field indexes for its equality and sort filters,
compound indexes for the filter+sort combinations the queries use, and a text
index over its searchable fields. A collection may hold at most one text index.
"""

from dataclasses import dataclass, field
from typing import Any

from pymongo import ASCENDING, DESCENDING, TEXT, IndexModel

from ..constants import (
    CHAT_CONVERSATIONS_COLLECTION,
    FARM_VISITS_COLLECTION,
    GALLERY_COLLECTION,
    ORDERS_COLLECTION,
    PRODUCTS_COLLECTION,
    USER_FEEDBACK_COLLECTION,
    USERS_COLLECTION,
)
from .helpers import default_index_name, normalize_keys


@dataclass(frozen=True)
class IndexSpec:
    """A (collection, key pattern, options) triple."""

    collection: str
    keys: tuple[tuple[str, Any], ...]
    options: dict[str, Any] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "keys", tuple(normalize_keys(list(self.keys))))

    @property
    def name(self) -> str:
        return self.options.get("name") or default_index_name(list(self.keys))

    def to_model(self) -> IndexModel:
        options = {**self.options, "name": self.name}
        return IndexModel(list(self.keys), **options)


def _spec(collection: str, *keys: tuple[str, Any], **options: Any) -> IndexSpec:
    return IndexSpec(collection=collection, keys=tuple(keys), options=options)


PRODUCT_INDEXES: tuple[IndexSpec, ...] = (
    _spec(PRODUCTS_COLLECTION, ("category", ASCENDING)),
    _spec(PRODUCTS_COLLECTION, ("created_at", DESCENDING)),
    _spec(PRODUCTS_COLLECTION, ("name", TEXT), ("description", TEXT)),
    _spec(PRODUCTS_COLLECTION, ("stock", ASCENDING)),
    _spec(PRODUCTS_COLLECTION, ("price", ASCENDING)),
    _spec(PRODUCTS_COLLECTION, ("category", ASCENDING), ("stock", ASCENDING)),
    _spec(PRODUCTS_COLLECTION, ("category", ASCENDING), ("price", ASCENDING)),
)

ORDER_INDEXES: tuple[IndexSpec, ...] = (
    _spec(ORDERS_COLLECTION, ("user_id", ASCENDING), ("created_at", DESCENDING)),
    _spec(ORDERS_COLLECTION, ("status", ASCENDING), ("created_at", DESCENDING)),
    _spec(ORDERS_COLLECTION, ("created_at", DESCENDING)),
    _spec(ORDERS_COLLECTION, ("total_amount", DESCENDING)),
)

USER_INDEXES: tuple[IndexSpec, ...] = (
    _spec(USERS_COLLECTION, ("email", ASCENDING), unique=True),
    _spec(USERS_COLLECTION, ("role", ASCENDING)),
    _spec(USERS_COLLECTION, ("created_at", DESCENDING)),
)

FARM_VISIT_INDEXES: tuple[IndexSpec, ...] = (
    _spec(FARM_VISITS_COLLECTION, ("created_at", DESCENDING)),
    _spec(FARM_VISITS_COLLECTION, ("preferredDate", ASCENDING)),
    _spec(FARM_VISITS_COLLECTION, ("status", ASCENDING)),
    _spec(FARM_VISITS_COLLECTION, ("email", ASCENDING), ("preferredDate", ASCENDING)),
    _spec(FARM_VISITS_COLLECTION, ("name", TEXT), ("email", TEXT), ("phone", TEXT)),
)

CHAT_CONVERSATION_INDEXES: tuple[IndexSpec, ...] = (
    _spec(CHAT_CONVERSATIONS_COLLECTION, ("user_id", ASCENDING), ("updated_at", DESCENDING)),
    _spec(CHAT_CONVERSATIONS_COLLECTION, ("created_at", DESCENDING)),
    _spec(CHAT_CONVERSATIONS_COLLECTION, ("token_count", ASCENDING)),
)

USER_FEEDBACK_INDEXES: tuple[IndexSpec, ...] = (
    _spec(USER_FEEDBACK_COLLECTION, ("user_id", ASCENDING), ("created_at", DESCENDING)),
    _spec(USER_FEEDBACK_COLLECTION, ("status", ASCENDING), ("created_at", DESCENDING)),
    _spec(USER_FEEDBACK_COLLECTION, ("created_at", DESCENDING)),
)

GALLERY_INDEXES: tuple[IndexSpec, ...] = (
    _spec(GALLERY_COLLECTION, ("created_at", DESCENDING)),
    _spec(GALLERY_COLLECTION, ("uploaded_by", ASCENDING)),
)

INDEX_SPECS: tuple[IndexSpec, ...] = (
    PRODUCT_INDEXES
    + ORDER_INDEXES
    + USER_INDEXES
    + FARM_VISIT_INDEXES
    + CHAT_CONVERSATION_INDEXES
    + USER_FEEDBACK_INDEXES
    + GALLERY_INDEXES
)
