"""
Base repository class providing common document operations.

All entity-specific repositories inherit from this base class.
"""

from abc import ABC, abstractmethod
from typing import Any, Generic, Optional, TypeVar

from fairwatch.data.models.base import BaseDocument, utcnow
from fairwatch.data.store import DocumentStore
from fairwatch.utils.logger import get_logger

logger = get_logger(__name__)

# Type variable for document models
T = TypeVar("T", bound=BaseDocument)


class BaseRepository(ABC, Generic[T]):
    """
    Abstract base repository over a DocumentStore.

    Subclasses define the collection name, the model class and the field
    holding the document's business key.
    """

    @property
    @abstractmethod
    def collection_name(self) -> str:
        """Name of the collection."""
        pass

    @property
    @abstractmethod
    def model_class(self) -> type[T]:
        """Pydantic model class for this repository."""
        pass

    @property
    @abstractmethod
    def key_field(self) -> str:
        """Field holding the unique business identifier."""
        pass

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    # -------------------------------------------------------------------------
    # Document Conversion
    # -------------------------------------------------------------------------

    def _to_model(self, document: Optional[dict[str, Any]]) -> Optional[T]:
        """Convert a stored document to a Pydantic model."""
        if document is None:
            return None
        return self.model_class.model_validate(document)

    def _to_models(self, documents: list[dict[str, Any]]) -> list[T]:
        return [self._to_model(doc) for doc in documents if doc is not None]

    def _to_document(self, model: T) -> dict[str, Any]:
        """Convert a Pydantic model to a stored document."""
        return model.model_dump_mongo()

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def create(self, model: T) -> T:
        """Create a new document."""
        document = self._to_document(model)
        stored = self._store.insert_one(self.collection_name, document)
        logger.debug(f"Created {self.collection_name} document: {document.get(self.key_field)}")
        return self._to_model(stored)

    def get(self, key: str) -> Optional[T]:
        """Get a document by its business key."""
        return self._to_model(self._store.find_one(self.collection_name, {self.key_field: key}))

    def find(
        self,
        filters: Optional[dict[str, Any]] = None,
        skip: int = 0,
        limit: int = 100,
        sort_by: Optional[str] = None,
        sort_order: int = -1,
    ) -> list[T]:
        """Find documents matching filters, newest first by default."""
        documents = self._store.find(
            self.collection_name,
            filters or {},
            skip=skip,
            limit=limit,
            sort_by=sort_by or "created_at",
            sort_order=sort_order,
        )
        return self._to_models(documents)

    def find_one(self, filters: dict[str, Any]) -> Optional[T]:
        return self._to_model(self._store.find_one(self.collection_name, filters))

    def count(self, filters: Optional[dict[str, Any]] = None) -> int:
        return self._store.count(self.collection_name, filters or {})

    def exists(self, key: str) -> bool:
        return self.count({self.key_field: key}) > 0

    def update(
        self,
        key: str,
        update_data: dict[str, Any],
        expected: Optional[dict[str, Any]] = None,
    ) -> Optional[T]:
        """
        Update a document by key.

        When ``expected`` is given the update only applies if the stored
        document still matches it; otherwise None is returned.
        """
        filters = {self.key_field: key, **(expected or {})}
        fields = {**update_data, "updated_at": utcnow()}
        updated = self._store.update_one(self.collection_name, filters, fields)
        if updated is not None:
            logger.debug(f"Updated {self.collection_name} document: {key}")
        return self._to_model(updated)

    def delete_where(self, filters: dict[str, Any]) -> int:
        """Delete documents matching filters."""
        removed = self._store.delete_many(self.collection_name, filters)
        if removed:
            logger.debug(f"Deleted {removed} {self.collection_name} document(s)")
        return removed

    def ensure_indexes(self) -> None:
        """Create the key index and any indexes the model declares."""
        self._store.ensure_index(self.collection_name, self.key_field, unique=True)
        settings = getattr(self.model_class, "Settings", None)
        for field in getattr(settings, "indexes", []):
            if field != self.key_field:
                self._store.ensure_index(self.collection_name, field)
