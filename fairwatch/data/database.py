"""
Database connection manager for FairWatch.

Provides MongoDB connection management (PyMongo) and the MongoDB-backed
DocumentStore used by the repositories.
"""

from contextlib import contextmanager
from typing import Any, Optional
from urllib.parse import quote_plus

from pymongo import ASCENDING, DESCENDING, MongoClient, ReturnDocument
from pymongo.database import Database
from pymongo.errors import ConnectionFailure, PyMongoError, ServerSelectionTimeoutError

from fairwatch.data.store import DocumentStore, FieldRange, normalize_filters, normalize_value_dict
from fairwatch.utils.config import DatabaseSettings
from fairwatch.utils.exceptions import PersistenceUnavailable
from fairwatch.utils.logger import get_logger

logger = get_logger(__name__)


class DatabaseManager:
    """
    Manages a MongoDB client.

    Constructed explicitly from DatabaseSettings and handed to whoever
    needs it; the client is created lazily on first use.
    """

    def __init__(self, settings: DatabaseSettings) -> None:
        self._settings = settings
        self._db_name = settings.name
        self._uri = self._build_uri()
        self._client: Optional[MongoClient] = None

    def _build_uri(self) -> str:
        """Build MongoDB connection URI with URL-encoded credentials."""
        db_settings = self._settings

        host = db_settings.host.strip()
        if not host or any(c in host for c in [";", "&", "|", "$", "`"]):
            raise ValueError(f"Invalid database host: {host}")

        auth = ""
        if db_settings.username and db_settings.password:
            encoded_user = quote_plus(db_settings.username)
            encoded_pass = quote_plus(db_settings.password)
            auth = f"{encoded_user}:{encoded_pass}@"

        return f"mongodb://{auth}{host}:{db_settings.port}"

    def get_client(self) -> MongoClient:
        """Get or create the MongoDB client."""
        if self._client is None:
            logger.info("Creating MongoDB client")
            timeout = self._settings.server_selection_timeout_ms
            self._client = MongoClient(
                self._uri,
                serverSelectionTimeoutMS=timeout,
                connectTimeoutMS=timeout,
                maxPoolSize=50,
                tz_aware=False,
            )
        return self._client

    def get_database(self) -> Database:
        return self.get_client()[self._db_name]

    def get_collection(self, collection_name: str) -> Any:
        return self.get_database()[collection_name]

    @contextmanager
    def session(self):
        """Context manager for a database session."""
        session = self.get_client().start_session()
        try:
            yield session
        finally:
            session.end_session()

    def check_connection(self) -> bool:
        """Check if the connection is healthy."""
        try:
            self.get_client().admin.command("ping")
            return True
        except (ConnectionFailure, ServerSelectionTimeoutError) as e:
            logger.error(f"Connection check failed: {e}")
            self.close()
            return False

    def close(self) -> None:
        if self._client:
            logger.info("Closing MongoDB client")
            self._client.close()
            self._client = None


def _to_mongo_filter(filters: dict[str, Any]) -> dict[str, Any]:
    query: dict[str, Any] = {}
    for path, expected in normalize_filters(filters).items():
        if isinstance(expected, FieldRange):
            condition = {
                op: bound
                for op, bound in (
                    ("$gte", expected.gte),
                    ("$gt", expected.gt),
                    ("$lte", expected.lte),
                    ("$lt", expected.lt),
                )
                if bound is not None
            }
            query[path] = condition
        elif isinstance(expected, list):
            query[path] = {"$in": expected}
        else:
            query[path] = expected
    return query


class MongoDocumentStore(DocumentStore):
    """DocumentStore backed by MongoDB. Driver errors surface as PersistenceUnavailable."""

    def __init__(self, db_manager: DatabaseManager) -> None:
        self._db_manager = db_manager

    def _collection(self, name: str) -> Any:
        return self._db_manager.get_collection(name)

    def insert_one(self, collection: str, document: dict[str, Any]) -> dict[str, Any]:
        document = normalize_value_dict(document)
        try:
            result = self._collection(collection).insert_one(document)
        except PyMongoError as e:
            raise PersistenceUnavailable("insert", collection, e) from e
        document["_id"] = result.inserted_id
        return document

    def find_one(self, collection: str, filters: dict[str, Any]) -> Optional[dict[str, Any]]:
        try:
            return self._collection(collection).find_one(_to_mongo_filter(filters))
        except PyMongoError as e:
            raise PersistenceUnavailable("find_one", collection, e) from e

    def find(
        self,
        collection: str,
        filters: dict[str, Any],
        skip: int = 0,
        limit: int = 0,
        sort_by: Optional[str] = None,
        sort_order: int = -1,
    ) -> list[dict[str, Any]]:
        try:
            cursor = self._collection(collection).find(_to_mongo_filter(filters))
            if sort_by:
                cursor = cursor.sort(sort_by, DESCENDING if sort_order < 0 else ASCENDING)
            cursor = cursor.skip(skip).limit(limit)
            return list(cursor)
        except PyMongoError as e:
            raise PersistenceUnavailable("find", collection, e) from e

    def count(self, collection: str, filters: dict[str, Any]) -> int:
        try:
            return self._collection(collection).count_documents(_to_mongo_filter(filters))
        except PyMongoError as e:
            raise PersistenceUnavailable("count", collection, e) from e

    def update_one(
        self,
        collection: str,
        filters: dict[str, Any],
        fields: dict[str, Any],
    ) -> Optional[dict[str, Any]]:
        try:
            return self._collection(collection).find_one_and_update(
                _to_mongo_filter(filters),
                {"$set": normalize_value_dict(fields)},
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as e:
            raise PersistenceUnavailable("update", collection, e) from e

    def delete_many(self, collection: str, filters: dict[str, Any]) -> int:
        try:
            return self._collection(collection).delete_many(_to_mongo_filter(filters)).deleted_count
        except PyMongoError as e:
            raise PersistenceUnavailable("delete", collection, e) from e

    def ensure_index(self, collection: str, field: str, unique: bool = False) -> None:
        try:
            self._collection(collection).create_index(field, unique=unique)
        except PyMongoError as e:
            raise PersistenceUnavailable("create_index", collection, e) from e

    def ping(self) -> bool:
        return self._db_manager.check_connection()
