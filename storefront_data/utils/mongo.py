"""
MongoDB document helpers.

Conversion of BSON-specific values into JSON-compatible ones, used when
analytics snapshots and documents are written to the cache.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from bson import Decimal128, ObjectId


def json_default(value: Any) -> Any:
    """
    ``default=`` hook for ``json.dumps``.

    - ObjectId -> str
    - datetime/date -> ISO format string
    - Decimal128/Decimal -> float

    Raises:
        TypeError: For any other non-serializable value
    """
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal128):
        return float(value.to_decimal())
    if isinstance(value, Decimal):
        return float(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def clean_mongo_doc(doc: Any) -> Any:
    """
    Recursively convert a MongoDB document to JSON-serializable values.

    Example:
        clean_mongo_doc({"_id": ObjectId("507f1f77bcf86cd799439011"), "tags": ["a"]})
        # {"_id": "507f1f77bcf86cd799439011", "tags": ["a"]}
    """
    if isinstance(doc, dict):
        return {key: clean_mongo_doc(value) for key, value in doc.items()}
    if isinstance(doc, (list, tuple)):
        return [clean_mongo_doc(item) for item in doc]
    if isinstance(doc, (ObjectId, datetime, date, Decimal128, Decimal)):
        return json_default(doc)
    return doc


def clean_mongo_docs(docs: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Convert a list of MongoDB documents to JSON-serializable format."""
    return [clean_mongo_doc(doc) for doc in docs]
