"""
Index Registrar

Ensures the declared indexes exist. Runs once after the connection pool is
established and is safe to re-run on every startup: MongoDB treats creating an
index that already exists with identical options as a no-op. Failures are
reported, never raised, so queries can proceed without guaranteed indexes.
"""

import logging
import time
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from pymongo.errors import (
    ConnectionFailure,
    OperationFailure,
    ServerSelectionTimeoutError,
)

from ..exceptions import ConfigurationError, IndexCreationError
from ..observability import record_operation
from .helpers import is_id_index, is_text_index
from .specs import INDEX_SPECS, IndexSpec

logger = logging.getLogger(__name__)

# Server error codes for an existing index with the same name/keys but different options
INDEX_OPTIONS_CONFLICT = 85
INDEX_KEY_SPECS_CONFLICT = 86


@dataclass
class IndexReport:
    """Outcome of an ``ensure_indexes`` run."""

    created: dict[str, list[str]] = field(default_factory=dict)
    errors: list[IndexCreationError] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "created": self.created,
            "skipped": self.skipped,
            "errors": [str(e) for e in self.errors],
        }


class IndexRegistrar:
    """
    Applies a static set of ``IndexSpec`` declarations to a database.

    Collections are processed independently; a failure on one collection does
    not prevent the others from being indexed.
    """

    def __init__(self, specs: Iterable[IndexSpec] = INDEX_SPECS) -> None:
        """
        Raises:
            ConfigurationError: If a collection declares more than one text index
        """
        self._specs: tuple[IndexSpec, ...] = tuple(specs)

        text_indexes: dict[str, str] = {}
        for spec in self._specs:
            if not is_text_index(list(spec.keys)):
                continue
            if spec.collection in text_indexes:
                raise ConfigurationError(
                    f"Collection '{spec.collection}' declares more than one text index "
                    f"('{text_indexes[spec.collection]}', '{spec.name}')",
                    config_key="indexes",
                )
            text_indexes[spec.collection] = spec.name

    @property
    def specs(self) -> tuple[IndexSpec, ...]:
        return self._specs

    def specs_by_collection(self) -> dict[str, list[IndexSpec]]:
        grouped: dict[str, list[IndexSpec]] = defaultdict(list)
        for spec in self._specs:
            grouped[spec.collection].append(spec)
        return dict(grouped)

    async def ensure_indexes(self, db: Any) -> IndexReport:
        """
        Create every declared index that does not already exist.

        Args:
            db: AsyncIOMotorDatabase

        Returns:
            IndexReport listing created index names and any errors
        """
        start_time = time.time()
        report = IndexReport()

        for collection_name, specs in self.specs_by_collection().items():
            await self._ensure_collection(db, collection_name, specs, report)

        duration_ms = (time.time() - start_time) * 1000
        record_operation("indexes.ensure", duration_ms, success=report.ok)

        if report.ok:
            logger.info(
                f"Database indexes created/verified across {len(report.created)} "
                f"collections ({duration_ms:.0f}ms)"
            )
        else:
            logger.error(
                f"Index creation finished with {len(report.errors)} error(s); "
                f"queries will run without those indexes"
            )
        return report

    async def _ensure_collection(
        self,
        db: Any,
        collection_name: str,
        specs: list[IndexSpec],
        report: IndexReport,
    ) -> None:
        log_prefix = f"[{collection_name}]"
        models = []
        for spec in specs:
            if is_id_index(list(spec.keys)):
                logger.info(f"{log_prefix} Skipping '_id' index; MongoDB creates it automatically.")
                report.skipped.append(f"{collection_name}.{spec.name}")
                continue
            models.append(spec.to_model())

        if not models:
            return

        collection = db[collection_name]
        try:
            names = await collection.create_indexes(models)
            report.created[collection_name] = list(names)
            logger.debug(f"{log_prefix} Indexes ensured: {names}")
            return
        except OperationFailure as e:
            logger.warning(
                f"{log_prefix} Batch index creation failed (code={e.code}): {e}. "
                f"Retrying indexes individually."
            )
        except (ConnectionFailure, ServerSelectionTimeoutError) as e:
            error = IndexCreationError(
                f"Could not reach the server to create indexes: {e}",
                collection=collection_name,
                index_names=[spec.name for spec in specs],
            )
            logger.error(f"{log_prefix} ❌ {error}")
            report.errors.append(error)
            return

        # A single conflicting index fails the whole createIndexes command, so
        # isolate it and still create the rest.
        created: list[str] = []
        for model in models:
            name = model.document["name"]
            try:
                await collection.create_indexes([model])
                created.append(name)
            except OperationFailure as e:
                error = IndexCreationError(
                    _describe_failure(e, name),
                    collection=collection_name,
                    index_names=[name],
                    code=e.code,
                )
                logger.error(f"{log_prefix} ❌ {error}")
                report.errors.append(error)
            except (ConnectionFailure, ServerSelectionTimeoutError) as e:
                error = IndexCreationError(
                    f"Could not reach the server to create index '{name}': {e}",
                    collection=collection_name,
                    index_names=[name],
                )
                logger.error(f"{log_prefix} ❌ {error}")
                report.errors.append(error)
        report.created[collection_name] = created


def _describe_failure(error: OperationFailure, index_name: str) -> str:
    if error.code in (INDEX_OPTIONS_CONFLICT, INDEX_KEY_SPECS_CONFLICT):
        return (
            f"Index '{index_name}' already exists with different options; "
            f"drop it manually to apply the declared definition"
        )
    return f"Failed to create index '{index_name}': {error}"
