"""
Pytest configuration and shared fixtures for STOREFRONT_DATA tests.

This module provides:
- In-memory stand-ins for Motor databases/collections/cursors that evaluate
  the subset of MongoDB query and aggregation syntax the data layer emits
- An in-memory stand-in for the redis.asyncio client
- Configuration and service fixtures
"""

import fnmatch
import itertools
import re
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from bson import Decimal128

from storefront_data.config import DataLayerConfig
from storefront_data.observability import get_metrics_collector

_MISSING = object()

# ============================================================================
# MONGODB TEST DOUBLES
# ============================================================================


def _compare(op: str, value: Any, arg: Any) -> bool:
    if op == "$in":
        for candidate in arg:
            if isinstance(candidate, re.Pattern):
                if isinstance(value, str) and candidate.search(value):
                    return True
            elif value == candidate:
                return True
        return False
    if value is _MISSING or value is None:
        return False
    if op == "$gt":
        return value > arg
    if op == "$gte":
        return value >= arg
    if op == "$lt":
        return value < arg
    if op == "$lte":
        return value <= arg
    if op == "$eq":
        return value == arg
    raise NotImplementedError(op)


def matches(doc: dict, query: dict) -> bool:
    """Evaluate a MongoDB filter document against ``doc``."""
    for key, cond in query.items():
        if key == "$text":
            haystack = " ".join(
                str(doc.get(field, "")) for field in ("name", "description")
            ).lower()
            terms = cond["$search"].lower().split()
            if not any(term in haystack for term in terms):
                return False
            continue
        value = doc.get(key, _MISSING)
        if isinstance(cond, dict) and cond and all(k.startswith("$") for k in cond):
            if not all(_compare(op, value, arg) for op, arg in cond.items()):
                return False
        elif value is _MISSING or value != cond:
            return False
    return True


def _eval_expr(doc: dict, expr: Any) -> Any:
    if isinstance(expr, str) and expr.startswith("$"):
        return doc.get(expr[1:])
    if isinstance(expr, dict):
        if "$cond" in expr:
            condition, if_true, if_false = expr["$cond"]
            return _eval_expr(doc, if_true if _eval_expr(doc, condition) else if_false)
        if "$lt" in expr:
            left, right = (_eval_expr(doc, e) for e in expr["$lt"])
            # BSON ordering: null sorts before numbers
            if left is None:
                return right is not None
            return right is not None and left < right
        if "$eq" in expr:
            left, right = (_eval_expr(doc, e) for e in expr["$eq"])
            return left == right
        raise NotImplementedError(expr)
    return expr


def _group(docs: list[dict], spec: dict) -> list[dict]:
    id_expr = spec["_id"]
    groups: dict[Any, list[dict]] = {}
    for doc in docs:
        groups.setdefault(_eval_expr(doc, id_expr), []).append(doc)

    results = []
    for group_id, members in groups.items():
        row: dict[str, Any] = {"_id": group_id}
        for name, accumulator in spec.items():
            if name == "_id":
                continue
            ((op, expr),) = accumulator.items()
            values = [_eval_expr(d, expr) for d in members]
            # Decimal128 inputs make the accumulator return Decimal128, as MongoDB does
            decimal = any(isinstance(v, Decimal128) for v in values)
            numbers = [
                v.to_decimal() if isinstance(v, Decimal128) else v
                for v in values
                if isinstance(v, (int, float, Decimal128)) and not isinstance(v, bool)
            ]
            if op == "$sum":
                total = sum(numbers)
                row[name] = Decimal128(str(total)) if decimal else total
            elif op == "$avg":
                if not numbers:
                    row[name] = None
                elif decimal:
                    row[name] = Decimal128(str(sum(numbers) / len(numbers)))
                else:
                    row[name] = sum(numbers) / len(numbers)
            else:
                raise NotImplementedError(op)
        results.append(row)
    return results


def _sort_key(field: str):
    def key(doc: dict):
        value = doc.get(field)
        return (value is not None, value)

    return key


class FakeCursor:
    """Chainable cursor mimicking AsyncIOMotorCursor / AsyncIOMotorCommandCursor."""

    def __init__(self, loader, error: Exception | None = None) -> None:
        self._loader = loader
        self._error = error
        self._sort: list[tuple[str, int]] = []
        self._skip = 0
        self._limit = 0
        self.max_time = None

    def sort(self, key, direction=1):
        self._sort.append((key, direction))
        return self

    def skip(self, n):
        self._skip = n
        return self

    def limit(self, n):
        self._limit = n
        return self

    def max_time_ms(self, ms):
        self.max_time = ms
        return self

    async def to_list(self, length=None):
        if self._error is not None:
            raise self._error
        docs = list(self._loader())
        for field, direction in reversed(self._sort):
            docs.sort(key=_sort_key(field), reverse=direction == -1)
        docs = docs[self._skip :]
        if self._limit:
            docs = docs[: self._limit]
        if length:
            docs = docs[:length]
        return docs


class FakeCollection:
    """In-memory collection. Set ``error`` to make every read fail with it."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.docs: list[dict] = []
        self.error: Exception | None = None
        self.find_calls: list[tuple] = []
        self.aggregate_calls: list[tuple] = []
        self.create_indexes = AsyncMock(
            side_effect=lambda models: [m.document["name"] for m in models]
        )
        self._ids = itertools.count(1)

    def insert(self, *docs: dict) -> None:
        for doc in docs:
            self.docs.append({"_id": doc.get("_id", next(self._ids)), **doc})

    def find(self, query=None, projection=None):
        query = query or {}
        self.find_calls.append((query, projection))

        def load():
            found = [d for d in self.docs if matches(d, query)]
            if projection:
                keep = {k for k, v in projection.items() if v} | {"_id"}
                found = [{k: v for k, v in d.items() if k in keep} for d in found]
            return found

        return FakeCursor(load, self.error)

    async def find_one(self, query=None):
        if self.error is not None:
            raise self.error
        for doc in self.docs:
            if matches(doc, query or {}):
                return doc
        return None

    async def count_documents(self, query):
        if self.error is not None:
            raise self.error
        return sum(1 for d in self.docs if matches(d, query))

    def aggregate(self, pipeline, **kwargs):
        self.aggregate_calls.append((pipeline, kwargs))

        def run():
            docs = list(self.docs)
            for stage in pipeline:
                ((op, spec),) = stage.items()
                if op == "$match":
                    docs = [d for d in docs if matches(d, spec)]
                elif op == "$group":
                    docs = _group(docs, spec)
                else:
                    raise NotImplementedError(op)
            return docs

        return FakeCursor(run, self.error)


class FakeDatabase:
    """In-memory database with Motor-style ``db[name]`` collection access."""

    def __init__(self, name: str = "test_db") -> None:
        self.name = name
        self.collections: dict[str, FakeCollection] = {}
        self.client = MagicMock()
        self.client.admin.command = AsyncMock(return_value={"ok": 1})
        self.command = AsyncMock(
            return_value={
                "db": name,
                "collections": 7,
                "indexes": 30,
                "dataSize": 2048,
                "storageSize": 4096,
            }
        )

    def __getitem__(self, name: str) -> FakeCollection:
        if name not in self.collections:
            self.collections[name] = FakeCollection(name)
        return self.collections[name]


class FakePool:
    """Minimal pool exposing ``get_handle`` over a FakeDatabase."""

    def __init__(self, db: FakeDatabase) -> None:
        self.db = db

    def get_handle(self) -> FakeDatabase:
        return self.db


# ============================================================================
# REDIS TEST DOUBLE
# ============================================================================


class FakeRedis:
    """In-memory subset of ``redis.asyncio.Redis`` with decode_responses=True."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.ttls: dict[str, int] = {}
        self.closed = False
        self.ping = AsyncMock(return_value=True)

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value, ex=None):
        self.data[key] = value
        if ex:
            self.ttls[key] = ex
        else:
            self.ttls.pop(key, None)
        return True

    async def delete(self, *keys):
        removed = 0
        for key in keys:
            if key in self.data:
                del self.data[key]
                self.ttls.pop(key, None)
                removed += 1
        return removed

    async def exists(self, *keys):
        return sum(1 for key in keys if key in self.data)

    async def scan_iter(self, match=None, count=None):
        for key in list(self.data):
            if match is None or fnmatch.fnmatchcase(key, match):
                yield key

    async def aclose(self):
        self.closed = True


# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture(autouse=True)
def reset_metrics():
    """Keep the process-wide metrics collector isolated between tests."""
    get_metrics_collector().reset()
    yield
    get_metrics_collector().reset()


@pytest.fixture
def config() -> DataLayerConfig:
    return DataLayerConfig(
        mongo_uri="mongodb://localhost:27017",
        db_name="test_db",
        redis_url="redis://localhost:6379/0",
        max_pool_size=10,
        min_pool_size=1,
    )


@pytest.fixture
def fake_db() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture
def fake_pool(fake_db: FakeDatabase) -> FakePool:
    return FakePool(fake_db)


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def mock_motor_client() -> MagicMock:
    """A MagicMock standing in for AsyncIOMotorClient with a successful ping."""
    client = MagicMock()
    client.admin.command = AsyncMock(return_value={"ok": 1})
    client.__getitem__.side_effect = lambda name: FakeDatabase(name)
    return client
