# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
MongoDB service layer with condominium-scoped operations and connection pooling.

Every query is filtered by ``condominiumId``. Driver failures surface as
``PersistenceException``; unique index violations surface as
``DuplicateRecordError`` so callers can turn the expected ones into
idempotent outcomes.
"""

import os
import logging
from datetime import datetime
from typing import List, Dict, Optional, Any, Sequence, Tuple
from pymongo import MongoClient, ASCENDING, DESCENDING
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import (
    ConnectionFailure,
    ServerSelectionTimeoutError,
    DuplicateKeyError,
    PyMongoError
)
from bson import ObjectId
from bson.errors import InvalidId

from domain.errors import PersistenceException

logger = logging.getLogger(__name__)


ASSEMBLIES = "assemblies"
AGENDA_ITEMS = "agenda_items"
ATTENDANCE_RECORDS = "attendance_records"
BALLOTS = "ballots"
PROFILES = "profiles"

# Constraints the attendance and voting rules rely on: (collection, index name)
UNIQUE_INDEXES: Tuple[Tuple[str, str], ...] = (
    (ATTENDANCE_RECORDS, "uniq_attendance_assembly_user"),
    (BALLOTS, "uniq_ballot_pauta_user"),
)


class DuplicateRecordError(PersistenceException):
    """Insert rejected by a unique index."""

    def __init__(self, collection: str, key_pattern: Optional[Dict[str, Any]] = None):
        super().__init__(f"Duplicate record in {collection}")
        self.collection = collection
        self.key_pattern = key_pattern

    def violates(self, fields: Sequence[str]) -> bool:
        """
        Check whether the violated index is the one over ``fields``.

        Some servers (and test doubles) omit the key pattern; in that case
        the violation is attributed to the expected index.
        """
        if not self.key_pattern:
            return True
        return set(self.key_pattern.keys()) == set(fields)


class MongoDBService:
    """MongoDB service with condominium-scoped operations and connection pooling."""

    def __init__(self, connection_string: str = None, database_name: str = None,
                 client: Optional[MongoClient] = None):
        """Initialize MongoDB service with connection pooling."""
        self.connection_string = connection_string or os.getenv(
            'MONGODB_URI',
            'mongodb://localhost:27017/assembleias_dev'
        )
        self.database_name = database_name or os.getenv('MONGODB_DATABASE', 'assembleias_dev')
        self._client: Optional[MongoClient] = client
        self._database: Optional[Database] = None

        # Connection pool and timeout settings
        self.max_pool_size = int(os.getenv('MONGODB_MAX_POOL_SIZE', '10'))
        self.min_pool_size = int(os.getenv('MONGODB_MIN_POOL_SIZE', '1'))
        self.max_idle_time_ms = int(os.getenv('MONGODB_MAX_IDLE_TIME_MS', '30000'))
        self.server_selection_timeout_ms = int(os.getenv('MONGODB_SERVER_SELECTION_TIMEOUT_MS', '5000'))
        self.connect_timeout_ms = int(os.getenv('MONGODB_CONNECT_TIMEOUT_MS', '5000'))
        self.socket_timeout_ms = int(os.getenv('MONGODB_SOCKET_TIMEOUT_MS', '10000'))

        logger.info(f"MongoDB service initialized for database: {self.database_name}")

    @property
    def client(self) -> MongoClient:
        """Get MongoDB client with connection pooling."""
        if self._client is None:
            try:
                # Reads are retried once by the driver. Writes are not, so a
                # ballot is never submitted twice behind the caller's back.
                self._client = MongoClient(
                    self.connection_string,
                    maxPoolSize=self.max_pool_size,
                    minPoolSize=self.min_pool_size,
                    maxIdleTimeMS=self.max_idle_time_ms,
                    serverSelectionTimeoutMS=self.server_selection_timeout_ms,
                    connectTimeoutMS=self.connect_timeout_ms,
                    socketTimeoutMS=self.socket_timeout_ms,
                    retryWrites=False,
                    retryReads=True
                )
                self._client.admin.command('ping')
                logger.info("MongoDB connection established successfully")
            except (ConnectionFailure, ServerSelectionTimeoutError) as e:
                logger.error(f"Failed to connect to MongoDB: {e}")
                self._client = None
                raise PersistenceException("Store unavailable") from e

        return self._client

    @property
    def database(self) -> Database:
        """Get MongoDB database."""
        if self._database is None:
            self._database = self.client[self.database_name]
        return self._database

    def get_collection(self, collection_name: str) -> Collection:
        """Get MongoDB collection."""
        return self.database[collection_name]

    def close_connection(self) -> None:
        """Close MongoDB connection."""
        if self._client:
            self._client.close()
            self._client = None
            self._database = None
            logger.info("MongoDB connection closed")

    def health_check(self) -> Dict[str, Any]:
        """Check MongoDB connection health."""
        try:
            result = self.database.command('ping')
            return {
                'status': 'healthy',
                'ping': result.get('ok') == 1,
                'database': self.database_name
            }
        except (PyMongoError, PersistenceException) as e:
            logger.error(f"MongoDB health check failed: {e}")
            return {
                'status': 'unhealthy',
                'error': str(e),
                'database': self.database_name
            }

    def _validate_object_id(self, doc_id: str) -> ObjectId:
        """Validate and convert string ID to ObjectId."""
        try:
            return ObjectId(doc_id)
        except (InvalidId, TypeError):
            raise ValueError(f"Invalid ObjectId format: {doc_id}")

    def _build_condo_query(self, condominium_id: str, filters: Dict = None) -> Dict:
        """Build condominium-scoped query with optional filters."""
        query = {"condominiumId": condominium_id}
        if filters:
            query.update(filters)
        return query

    def _add_timestamps(self, document: Dict, user_id: str, is_update: bool = False) -> Dict:
        """Add creation and update timestamps to document."""
        now = datetime.utcnow()

        if not is_update:
            document.setdefault("createdAt", now)
            document.setdefault("createdBy", user_id)

        document["updatedAt"] = now
        document["updatedBy"] = user_id

        return document

    @staticmethod
    def _to_public(document: Optional[Dict]) -> Optional[Dict]:
        """Convert ObjectId to string for serialization."""
        if document and "_id" in document:
            document["id"] = str(document["_id"])
            del document["_id"]
        return document

    # CRUD Operations with Condominium Scoping

    def create(self, collection: str, document: Dict, user_id: str) -> str:
        """Insert a document; unique index violations raise DuplicateRecordError."""
        try:
            document = self._add_timestamps(document, user_id)
            if "_id" not in document:
                document["_id"] = ObjectId()

            result = self.get_collection(collection).insert_one(document)

            logger.info(f"Created document in {collection}: {result.inserted_id}")
            return str(result.inserted_id)

        except DuplicateKeyError as e:
            key_pattern = (e.details or {}).get("keyPattern")
            logger.info(f"Duplicate key in {collection}", extra={"key_pattern": key_pattern})
            raise DuplicateRecordError(collection, key_pattern) from e
        except PyMongoError as e:
            logger.error(f"Failed to create document in {collection}: {e}")
            raise PersistenceException(f"Failed to write to {collection}") from e

    def find(self, collection: str, condominium_id: str, filters: Dict = None,
             sort: Optional[List[Tuple[str, int]]] = None) -> List[Dict]:
        """Find documents by condominium with optional filters and sort."""
        try:
            query = self._build_condo_query(condominium_id, filters)
            cursor = self.get_collection(collection).find(query)
            if sort:
                cursor = cursor.sort(sort)

            documents = [self._to_public(doc) for doc in cursor]

            logger.debug(f"Found {len(documents)} documents in {collection} for condominium {condominium_id}")
            return documents

        except PyMongoError as e:
            logger.error(f"Failed to find documents in {collection}: {e}")
            raise PersistenceException(f"Failed to read from {collection}") from e

    def find_one(self, collection: str, condominium_id: str, doc_id: str) -> Optional[Dict]:
        """Find a single document by condominium and ID; malformed IDs find nothing."""
        try:
            object_id = self._validate_object_id(doc_id)
        except ValueError as e:
            logger.debug(f"Invalid document ID {doc_id}: {e}")
            return None

        try:
            query = self._build_condo_query(condominium_id, {"_id": object_id})
            document = self.get_collection(collection).find_one(query)

            if document is None:
                logger.debug(f"Document {doc_id} not found in {collection} for condominium {condominium_id}")
            return self._to_public(document)

        except PyMongoError as e:
            logger.error(f"Failed to find document {doc_id} in {collection}: {e}")
            raise PersistenceException(f"Failed to read from {collection}") from e

    def exists(self, collection: str, condominium_id: str, filters: Dict) -> bool:
        """Check whether any document matches the filters."""
        try:
            query = self._build_condo_query(condominium_id, filters)
            return self.get_collection(collection).find_one(query, {"_id": 1}) is not None
        except PyMongoError as e:
            logger.error(f"Failed to query {collection}: {e}")
            raise PersistenceException(f"Failed to read from {collection}") from e

    def update(self, collection: str, condominium_id: str, doc_id: str,
               updates: Dict, user_id: str, expected: Dict = None) -> bool:
        """
        Update a document by condominium and ID.

        Args:
            collection: Collection name
            condominium_id: Tenant scope
            doc_id: Document ID
            updates: Fields to set
            user_id: Acting user
            expected: Extra filter that must still hold for the write to apply,
                e.g. ``{"status": "scheduled"}`` for a compare-and-set transition

        Returns:
            True if a document matched the query
        """
        try:
            object_id = self._validate_object_id(doc_id)
        except ValueError as e:
            logger.debug(f"Invalid document ID {doc_id}: {e}")
            return False

        try:
            filters = {"_id": object_id}
            if expected:
                filters.update(expected)
            query = self._build_condo_query(condominium_id, filters)

            updates = self._add_timestamps(dict(updates), user_id, is_update=True)
            result = self.get_collection(collection).update_one(query, {"$set": updates})

            if result.matched_count > 0:
                logger.info(f"Updated document {doc_id} in {collection}")
                return True

            logger.warning(f"No document updated for {doc_id} in {collection}")
            return False

        except PyMongoError as e:
            logger.error(f"Failed to update document {doc_id} in {collection}: {e}")
            raise PersistenceException(f"Failed to write to {collection}") from e

    def delete_one(self, collection: str, condominium_id: str, doc_id: str) -> bool:
        """Hard delete a document."""
        try:
            object_id = self._validate_object_id(doc_id)
        except ValueError as e:
            logger.debug(f"Invalid document ID {doc_id}: {e}")
            return False

        try:
            query = self._build_condo_query(condominium_id, {"_id": object_id})
            result = self.get_collection(collection).delete_one(query)

            if result.deleted_count > 0:
                logger.warning(f"Hard deleted document {doc_id} in {collection}")
                return True

            logger.warning(f"No document hard deleted for {doc_id} in {collection}")
            return False

        except PyMongoError as e:
            logger.error(f"Failed to hard delete document {doc_id} in {collection}: {e}")
            raise PersistenceException(f"Failed to write to {collection}") from e

    def delete_many(self, collection: str, condominium_id: str, filters: Dict) -> int:
        """Hard delete every document matching the filters."""
        try:
            query = self._build_condo_query(condominium_id, filters)
            result = self.get_collection(collection).delete_many(query)
            logger.info(f"Deleted {result.deleted_count} documents from {collection}")
            return result.deleted_count
        except PyMongoError as e:
            logger.error(f"Failed to delete documents in {collection}: {e}")
            raise PersistenceException(f"Failed to write to {collection}") from e

    def count(self, collection: str, condominium_id: str, filters: Dict = None) -> int:
        """Count documents by condominium with optional filters."""
        try:
            query = self._build_condo_query(condominium_id, filters)
            count = self.get_collection(collection).count_documents(query)
            logger.debug(f"Counted {count} documents in {collection} for condominium {condominium_id}")
            return count
        except PyMongoError as e:
            logger.error(f"Failed to count documents in {collection}: {e}")
            raise PersistenceException(f"Failed to read from {collection}") from e

    def aggregate(self, collection: str, condominium_id: str, pipeline: List[Dict]) -> List[Dict]:
        """Run aggregation pipeline with condominium scoping."""
        try:
            scoped = [{"$match": {"condominiumId": condominium_id}}] + list(pipeline)
            results = list(self.get_collection(collection).aggregate(scoped))
            logger.debug(f"Aggregation returned {len(results)} results from {collection}")
            return results
        except PyMongoError as e:
            logger.error(f"Failed to run aggregation in {collection}: {e}")
            raise PersistenceException(f"Failed to read from {collection}") from e

    # Index Management

    def create_indexes(self) -> None:
        """Create uniqueness constraints and query indexes for all collections."""
        try:
            logger.info("Creating MongoDB indexes...")

            assemblies = self.get_collection(ASSEMBLIES)
            assemblies.create_index([("condominiumId", ASCENDING), ("scheduledAt", DESCENDING)])
            assemblies.create_index([("condominiumId", ASCENDING), ("status", ASCENDING)])

            agenda_items = self.get_collection(AGENDA_ITEMS)
            agenda_items.create_index([
                ("condominiumId", ASCENDING), ("assemblyId", ASCENDING),
                ("displayOrder", ASCENDING), ("createdAt", ASCENDING)
            ])

            # One check-in per user per assembly
            attendance = self.get_collection(ATTENDANCE_RECORDS)
            attendance.create_index(
                [("assemblyId", ASCENDING), ("userId", ASCENDING)],
                unique=True, name="uniq_attendance_assembly_user"
            )
            attendance.create_index([("condominiumId", ASCENDING), ("assemblyId", ASCENDING)])

            # One ballot per user per agenda item
            ballots = self.get_collection(BALLOTS)
            ballots.create_index(
                [("pautaId", ASCENDING), ("userId", ASCENDING)],
                unique=True, name="uniq_ballot_pauta_user"
            )
            ballots.create_index([("condominiumId", ASCENDING), ("assemblyId", ASCENDING)])

            logger.info("MongoDB indexes created successfully")

        except PyMongoError as e:
            logger.error(f"Failed to create MongoDB indexes: {e}")
            raise PersistenceException("Failed to create indexes") from e

    def missing_unique_indexes(self) -> List[str]:
        """
        List the unique constraints that are absent or not unique.

        Returns:
            ``collection.index_name`` for each missing constraint; empty when
            duplicate check-ins and ballots are rejected by the database
        """
        missing = []
        try:
            for collection, index_name in UNIQUE_INDEXES:
                index = self.get_collection(collection).index_information().get(index_name)
                if not index or not index.get("unique"):
                    missing.append(f"{collection}.{index_name}")
        except PyMongoError as e:
            logger.error(f"Failed to read MongoDB indexes: {e}")
            raise PersistenceException("Failed to read indexes") from e

        return missing


# Singleton instance for application use
_mongodb_service: Optional[MongoDBService] = None


def get_mongodb_service() -> MongoDBService:
    """Get singleton MongoDB service instance."""
    global _mongodb_service
    if _mongodb_service is None:
        _mongodb_service = MongoDBService()
    return _mongodb_service


def close_mongodb_connection() -> None:
    """Close MongoDB connection (for cleanup)."""
    global _mongodb_service
    if _mongodb_service:
        _mongodb_service.close_connection()
        _mongodb_service = None
