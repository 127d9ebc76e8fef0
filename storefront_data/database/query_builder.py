"""
Product query construction.

``FilterCriteria`` is the closed set of filters a product listing accepts;
``build_product_query`` turns it into a MongoDB predicate. Both are pure and
do no I/O.
"""

from collections.abc import Mapping
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from ..constants import CATEGORY_ALL


class FilterCriteria(BaseModel):
    """
    Product filters. Absent fields impose no constraint.

    Accepts both snake_case and the camelCase names used on the wire
    (``minPrice``, ``maxPrice``, ``inStock``). Unknown fields are ignored.
    """

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    category: str | None = None
    search: str | None = Field(
        default=None, validation_alias=AliasChoices("search", "freeTextSearch", "free_text_search")
    )
    min_price: float | None = Field(
        default=None, ge=0, validation_alias=AliasChoices("min_price", "minPrice")
    )
    max_price: float | None = Field(
        default=None, ge=0, validation_alias=AliasChoices("max_price", "maxPrice")
    )
    in_stock: bool | None = Field(
        default=None,
        validation_alias=AliasChoices("in_stock", "inStock", "inStockOnly", "in_stock_only"),
    )

    @field_validator("category", "search", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    @classmethod
    def from_mapping(cls, value: "FilterCriteria | Mapping[str, Any] | None") -> "FilterCriteria":
        """Coerce a dict, an existing ``FilterCriteria`` or ``None``."""
        if value is None:
            return cls()
        if isinstance(value, cls):
            return value
        return cls.model_validate(dict(value))

    @property
    def has_category(self) -> bool:
        return self.category is not None and self.category != CATEGORY_ALL


def build_product_query(criteria: FilterCriteria | Mapping[str, Any] | None = None) -> dict:
    """
    Build a MongoDB predicate from product filters.

    All clauses are combined with an implicit AND; empty criteria yield ``{}``,
    which matches every document. At most one ``$text`` clause is emitted.

    Examples:
        >>> build_product_query({"category": "all", "minPrice": 10})
        {'price': {'$gte': 10.0}}
        >>> build_product_query({"inStock": False})
        {'stock': {'$lte': 0}}
    """
    criteria = FilterCriteria.from_mapping(criteria)
    query: dict[str, Any] = {}

    if criteria.has_category:
        query["category"] = criteria.category

    if criteria.search is not None:
        query["$text"] = {"$search": criteria.search}

    if criteria.min_price is not None or criteria.max_price is not None:
        price: dict[str, float] = {}
        if criteria.min_price is not None:
            price["$gte"] = criteria.min_price
        if criteria.max_price is not None:
            price["$lte"] = criteria.max_price
        query["price"] = price

    if criteria.in_stock is not None:
        query["stock"] = {"$gt": 0} if criteria.in_stock else {"$lte": 0}

    return query
