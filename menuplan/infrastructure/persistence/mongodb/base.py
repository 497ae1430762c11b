"""Base MongoDB repository with reusable patterns.

Provides common functionality for the MongoDB repositories:
- Collection handle and lazy index bootstrap
- Document mapping (domain models <-> BSON-friendly dicts)
- Logging of failed driver calls (re-raised, never swallowed)

Calendar dates are stored as ISO strings ("2025-11-01"): BSON has no
date-only type and ISO strings sort chronologically.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, Tuple, TypeVar

import structlog
from motor.motor_asyncio import AsyncIOMotorCollection, AsyncIOMotorDatabase
from pydantic import BaseModel

from menuplan.domain.shared.value_objects import EntityId

TEntity = TypeVar("TEntity")

logger = structlog.get_logger(__name__)

# (keys, options) passed to create_index
IndexSpec = Tuple[Any, Dict[str, Any]]


def to_bson(value: Any) -> Any:
    """
    Convert domain values into BSON-friendly values.

    - identifiers -> their string value
    - enums -> their value
    - dates -> ISO strings (datetimes are kept as-is)
    - pydantic models -> dicts, recursively
    """
    if isinstance(value, EntityId):
        return value.value
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, BaseModel):
        return {name: to_bson(field_value) for name, field_value in value}
    if isinstance(value, (list, tuple)):
        return [to_bson(v) for v in value]
    if isinstance(value, dict):
        return {str(k): to_bson(v) for k, v in value.items()}
    return value


class MongoBaseRepository(ABC, Generic[TEntity]):
    """
    Abstract base class for MongoDB repositories.

    Subclasses must implement:
    - collection_name: Name of MongoDB collection
    - indexes: Index specifications created on first use
    - to_document(): Convert domain entity to MongoDB document
    - from_document(): Convert MongoDB document to domain entity

    Example:
        >>> from motor.motor_asyncio import AsyncIOMotorClient
        >>> client = AsyncIOMotorClient("mongodb://localhost:27017")
        >>> repository = MongoPlanRepository(client.menuplan)
        >>> await repository.add(plan)
    """

    def __init__(self, db: AsyncIOMotorDatabase[Any]) -> None:
        self._db = db
        self._collection: AsyncIOMotorCollection[Any] = db[self.collection_name]
        self._indexes_created = False
        logger.debug(
            "mongo_repository_initialized",
            repository=type(self).__name__,
            collection=self.collection_name,
        )

    # ============================================================
    # Abstract Properties/Methods (must be implemented)
    # ============================================================

    @property
    @abstractmethod
    def collection_name(self) -> str:
        """MongoDB collection name."""

    @property
    def indexes(self) -> List[IndexSpec]:
        """Indexes created by ``_ensure_indexes``."""
        return []

    @abstractmethod
    def to_document(self, entity: TEntity) -> Dict[str, Any]:
        """Convert domain entity to MongoDB document."""

    @abstractmethod
    def from_document(self, doc: Dict[str, Any]) -> TEntity:
        """
        Convert MongoDB document to domain entity.

        Raises:
            pydantic.ValidationError: If document is invalid
        """

    # ============================================================
    # Protected Utility Methods (for subclasses)
    # ============================================================

    @property
    def collection(self) -> AsyncIOMotorCollection[Any]:
        return self._collection

    async def _ensure_indexes(self) -> None:
        """Create indexes once per repository instance."""
        if self._indexes_created:
            return

        for keys, options in self.indexes:
            await self._collection.create_index(keys, **options)

        self._indexes_created = True
        logger.debug(
            "mongo_indexes_ensured", collection=self.collection_name, count=len(self.indexes)
        )

    @staticmethod
    def _strip_id(doc: Dict[str, Any]) -> Dict[str, Any]:
        """Copy of a document without the Mongo ``_id``."""
        return {k: v for k, v in doc.items() if k != "_id"}

    async def _find_one(self, filter_dict: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        await self._ensure_indexes()
        try:
            return await self._collection.find_one(filter_dict)
        except Exception as e:
            logger.error("mongo_find_one_failed", collection=self.collection_name, error=str(e))
            raise

    async def _find_many(
        self,
        filter_dict: Dict[str, Any],
        sort: Optional[List[Tuple[str, int]]] = None,
    ) -> List[Dict[str, Any]]:
        await self._ensure_indexes()
        try:
            cursor = self._collection.find(filter_dict)
            if sort:
                cursor = cursor.sort(sort)
            return await cursor.to_list(length=None)
        except Exception as e:
            logger.error("mongo_find_many_failed", collection=self.collection_name, error=str(e))
            raise

    async def close(self) -> None:
        """Close the underlying client connection."""
        self._db.client.close()
        logger.info("mongo_connection_closed", repository=type(self).__name__)
