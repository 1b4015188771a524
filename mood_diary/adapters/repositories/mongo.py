"""
MongoDB repository for mood entries.

This module provides:
- Connection management (MONGODB_URI, certifi TLS bundle, timeouts)
- Whole-list load/save of entries behind the EntryStore interface
- Single-entry upsert keyed on the entry id
"""

import logging
import os
from typing import Any, Dict, List, Optional

import certifi
import pymongo
from pymongo import MongoClient
from pymongo.errors import OperationFailure, PyMongoError, ServerSelectionTimeoutError

from mood_diary.adapters.repositories.base import EntryStore
from mood_diary.core.errors import MoodDiaryError
from mood_diary.core.models import MoodEntry

logger = logging.getLogger(__name__)


# ============================================================================
# CONSTANTS
# ============================================================================

DATABASE_NAME = "mood_diary"
ENTRIES_COLLECTION_NAME = "mood_entries"
CONNECTION_TIMEOUT_MS = 10000


# ============================================================================
# EXCEPTIONS
# ============================================================================

class MongoDBConnectionError(MoodDiaryError):
    """Raised when MongoDB connection fails."""
    pass


class MongoDBOperationError(MoodDiaryError):
    """Raised when database operations fail."""
    pass


# ============================================================================
# DATABASE CONNECTION
# ============================================================================

class DatabaseConfig:
    """Encapsulates MongoDB connection configuration."""

    def __init__(self, uri: Optional[str] = None):
        """
        Args:
            uri: MongoDB connection URI (defaults to MONGODB_URI env var)

        Raises:
            ValueError: If URI not provided and env var not set
        """
        self.uri = uri or os.environ.get("MONGODB_URI")
        if not self.uri:
            raise ValueError("MONGODB_URI environment variable not set")

    def get_client(self) -> MongoClient:
        """
        Creates a MongoDB client with secure SSL/TLS configuration.

        Raises:
            MongoDBConnectionError: If connection fails.
        """
        try:
            client = MongoClient(
                self.uri,
                tlsCAFile=certifi.where(),
                serverSelectionTimeoutMS=CONNECTION_TIMEOUT_MS,
                connectTimeoutMS=CONNECTION_TIMEOUT_MS
            )
            client.admin.command('ping')
            logger.info("[OK] MongoDB connected successfully")
            return client

        except ServerSelectionTimeoutError:
            logger.error("MongoDB connection timeout")
            raise MongoDBConnectionError("Connection timeout") from None
        except OperationFailure as e:
            logger.error(f"MongoDB authentication failed: {e}")
            raise MongoDBConnectionError(f"Authentication failed: {e}") from None
        except PyMongoError as e:
            logger.error(f"MongoDB connection failed: {e}")
            raise MongoDBConnectionError(str(e)) from e


class DatabaseConnection:
    """Singleton connection manager for MongoDB."""

    _instance: Optional['DatabaseConnection'] = None
    _client: Optional[MongoClient] = None

    def __new__(cls) -> 'DatabaseConnection':
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def get_client(self) -> MongoClient:
        """
        Raises:
            MongoDBConnectionError: If connection fails.
        """
        if self._client is None:
            try:
                config = DatabaseConfig()
                self._client = config.get_client()
            except ValueError as e:
                logger.error(str(e))
                raise MongoDBConnectionError(str(e)) from e

        return self._client

    def get_database(self) -> pymongo.database.Database:
        return self.get_client()[DATABASE_NAME]

    def close(self) -> None:
        if self._client:
            self._client.close()
            self._client = None
            logger.info("MongoDB connection closed")


def get_database() -> pymongo.database.Database:
    """
    Main entry point for database access.

    Raises:
        MongoDBConnectionError: If connection fails.
    """
    try:
        return DatabaseConnection().get_database()
    except MongoDBConnectionError as e:
        logger.error(f"Database connection failed: {e}")
        raise


# ============================================================================
# ENTRY STORE
# ============================================================================

class MongoEntryStore(EntryStore):
    """Entry store backed by one MongoDB collection (one document per entry)."""

    def __init__(self, collection: Optional[pymongo.collection.Collection] = None):
        self._collection = collection

    @property
    def collection(self) -> pymongo.collection.Collection:
        if self._collection is None:
            self._collection = get_database()[ENTRIES_COLLECTION_NAME]
        return self._collection

    def load_raw(self) -> List[Dict[str, Any]]:
        try:
            docs = list(self.collection.find({}, {"_id": 0}))
            logger.info(f"[OK] Retrieved {len(docs)} mood entries")
            return docs
        except PyMongoError as e:
            logger.error(f"Failed to retrieve mood entries: {e}")
            raise MongoDBOperationError(f"Retrieval failed: {e}") from e

    def save_raw(self, items: List[Dict[str, Any]]) -> None:
        """Replaces the collection content with the given entries."""
        try:
            self.collection.delete_many({})
            if items:
                # insert_many adds _id to the documents it receives
                self.collection.insert_many([dict(item) for item in items])
            logger.info(f"[OK] Saved {len(items)} mood entries")
        except PyMongoError as e:
            logger.error(f"Failed to save mood entries: {e}")
            raise MongoDBOperationError(f"Save failed: {e}") from e

    def close(self) -> None:
        DatabaseConnection().close()

    def save_entry(self, entry: MoodEntry) -> None:
        """
        Inserts or replaces a single entry, keyed on its id.

        Raises:
            MongoDBOperationError: If save fails.
        """
        entry.validate()
        try:
            result = self.collection.replace_one({"id": entry.id}, entry.to_dict(), upsert=True)
            if result.upserted_id:
                logger.info(f"[OK] New entry inserted for {entry.date}")
            else:
                logger.info(f"[OK] Entry updated for {entry.date}")
        except PyMongoError as e:
            logger.error(f"Failed to save entry: {e}")
            raise MongoDBOperationError(f"Save failed: {e}") from e
