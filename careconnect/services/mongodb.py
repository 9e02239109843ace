# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
MongoDB service layer with connection pooling and atomic single-document updates.
"""

import logging
from datetime import datetime, timezone
from typing import List, Dict, Optional, Any, Tuple
from pymongo import MongoClient, ASCENDING, DESCENDING, ReturnDocument
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import ConnectionFailure, ServerSelectionTimeoutError, PyMongoError
from bson import ObjectId
from bson.errors import InvalidId

logger = logging.getLogger(__name__)

# Collection names
USERS = "users"
CAUSES = "causes"
TASKS = "tasks"
DONATIONS = "donations"
POSTS = "posts"
POST_LIKES = "post_likes"
POST_COMMENTS = "post_comments"
FOLLOWS = "follows"
AUDIT_LOGS = "audit_logs"


class MongoDBService:
    """MongoDB service with connection pooling."""

    def __init__(self, connection_string: str = None, database_name: str = None,
                 client: Optional[MongoClient] = None, max_pool_size: int = 10,
                 server_selection_timeout_ms: int = 5000):
        """
        Initialize MongoDB service.

        Args:
            connection_string: MongoDB URI
            database_name: Database name
            client: Pre-built client, used instead of connecting lazily
            max_pool_size: Connection pool size
            server_selection_timeout_ms: Server selection timeout
        """
        self.connection_string = connection_string or "mongodb://localhost:27017/careconnect"
        self.database_name = database_name or "careconnect"
        self._client: Optional[MongoClient] = client
        self._database: Optional[Database] = None
        self.max_pool_size = max_pool_size
        self.server_selection_timeout_ms = server_selection_timeout_ms

        logger.info(f"MongoDB service initialized for database: {self.database_name}")

    @property
    def client(self) -> MongoClient:
        """Get MongoDB client with connection pooling."""
        if self._client is None:
            try:
                self._client = MongoClient(
                    self.connection_string,
                    maxPoolSize=self.max_pool_size,
                    serverSelectionTimeoutMS=self.server_selection_timeout_ms,
                    retryWrites=True,
                    retryReads=True
                )
                self._client.admin.command('ping')
                logger.info("MongoDB connection established successfully")
            except (ConnectionFailure, ServerSelectionTimeoutError) as e:
                logger.error(f"Failed to connect to MongoDB: {e}")
                raise

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
            result = self.client.admin.command('ping')
            return {
                'status': 'healthy',
                'ping': result.get('ok') == 1,
                'database': self.database_name
            }
        except PyMongoError as e:
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

    @staticmethod
    def _with_string_id(document: Optional[Dict]) -> Optional[Dict]:
        """Expose `_id` as a string `id`."""
        if document is not None and "_id" in document:
            document["id"] = str(document.pop("_id"))
        return document

    # CRUD Operations

    def create(self, collection: str, document: Dict) -> str:
        """Insert a document, stamping missing timestamps."""
        now = datetime.now(timezone.utc)
        document.setdefault("createdAt", now)
        document.setdefault("updatedAt", now)
        if "_id" not in document:
            document["_id"] = ObjectId()

        result = self.get_collection(collection).insert_one(document)
        logger.debug(f"Created document in {collection}: {result.inserted_id}")
        return str(result.inserted_id)

    def find(self, collection: str, filters: Dict = None,
             sort: Optional[List[Tuple[str, int]]] = None, limit: int = 0) -> List[Dict]:
        """Find documents matching filters."""
        cursor = self.get_collection(collection).find(filters or {})
        if sort:
            cursor = cursor.sort(sort)
        if limit:
            cursor = cursor.limit(limit)

        documents = [self._with_string_id(doc) for doc in cursor]
        logger.debug(f"Found {len(documents)} documents in {collection}")
        return documents

    def find_one(self, collection: str, doc_id: str) -> Optional[Dict]:
        """Find a single document by ID. Malformed IDs are treated as missing."""
        try:
            object_id = self._validate_object_id(doc_id)
        except ValueError:
            logger.debug(f"Invalid document ID {doc_id} for {collection}")
            return None

        return self._with_string_id(self.get_collection(collection).find_one({"_id": object_id}))

    def find_one_by(self, collection: str, filters: Dict) -> Optional[Dict]:
        """Find the first document matching filters."""
        return self._with_string_id(self.get_collection(collection).find_one(filters))

    def find_by_ids(self, collection: str, doc_ids) -> Dict[str, Dict]:
        """Fetch documents by ID, keyed by their string ID."""
        object_ids = []
        for doc_id in set(doc_ids):
            try:
                object_ids.append(self._validate_object_id(doc_id))
            except ValueError:
                continue
        if not object_ids:
            return {}
        documents = self.find(collection, {"_id": {"$in": object_ids}})
        return {doc["id"]: doc for doc in documents}

    def update(self, collection: str, doc_id: str, updates: Dict) -> Optional[Dict]:
        """
        Apply `$set` updates to one document atomically.

        Returns:
            The updated document, or None when it does not exist
        """
        try:
            object_id = self._validate_object_id(doc_id)
        except ValueError:
            return None

        updates = dict(updates)
        updates["updatedAt"] = datetime.now(timezone.utc)

        document = self.get_collection(collection).find_one_and_update(
            {"_id": object_id},
            {"$set": updates},
            return_document=ReturnDocument.AFTER
        )
        if document is None:
            logger.warning(f"No document updated for {doc_id} in {collection}")
        else:
            logger.debug(f"Updated document {doc_id} in {collection}")
        return self._with_string_id(document)

    def delete(self, collection: str, doc_id: str) -> bool:
        """Delete one document by ID."""
        try:
            object_id = self._validate_object_id(doc_id)
        except ValueError:
            return False

        result = self.get_collection(collection).delete_one({"_id": object_id})
        return result.deleted_count > 0

    def delete_many(self, collection: str, filters: Dict) -> int:
        """Delete every document matching filters."""
        result = self.get_collection(collection).delete_many(filters)
        logger.debug(f"Deleted {result.deleted_count} documents from {collection}")
        return result.deleted_count

    def count(self, collection: str, filters: Dict = None) -> int:
        """Count documents matching filters."""
        return self.get_collection(collection).count_documents(filters or {})

    def toggle_relation(self, collection: str, key: Dict[str, str]) -> bool:
        """
        Flip presence of a relation row keyed by `key`.

        Deletes the row when present; otherwise upserts it. With a unique
        index on the key fields concurrent toggles never double-insert.

        Returns:
            True when the relation exists after the call
        """
        collection_obj = self.get_collection(collection)

        if collection_obj.delete_one(key).deleted_count:
            return False

        collection_obj.update_one(
            key,
            {"$setOnInsert": {"createdAt": datetime.now(timezone.utc)}},
            upsert=True
        )
        return True

    # Index Management

    def create_indexes(self) -> None:
        """Create lookup and uniqueness indexes for all collections."""
        logger.info("Creating MongoDB indexes...")

        self.get_collection(USERS).create_index("username", unique=True)
        self.get_collection(USERS).create_index("role")

        causes = self.get_collection(CAUSES)
        causes.create_index([("ngoId", ASCENDING), ("createdAt", DESCENDING)])
        causes.create_index([("category", ASCENDING), ("createdAt", DESCENDING)])
        causes.create_index("status")

        tasks = self.get_collection(TASKS)
        tasks.create_index([("causeId", ASCENDING), ("volunteerId", ASCENDING)])
        tasks.create_index([("volunteerId", ASCENDING), ("createdAt", DESCENDING)])
        tasks.create_index([("status", ASCENDING), ("approved", ASCENDING)])

        donations = self.get_collection(DONATIONS)
        donations.create_index([("causeId", ASCENDING), ("createdAt", ASCENDING)])
        donations.create_index("volunteerId")

        self.get_collection(POSTS).create_index([("authorId", ASCENDING), ("createdAt", DESCENDING)])
        self.get_collection(POSTS).create_index([("createdAt", DESCENDING)])
        self.get_collection(POST_LIKES).create_index(
            [("postId", ASCENDING), ("userId", ASCENDING)], unique=True
        )
        self.get_collection(POST_COMMENTS).create_index([("postId", ASCENDING), ("createdAt", ASCENDING)])
        self.get_collection(FOLLOWS).create_index(
            [("followerId", ASCENDING), ("followingId", ASCENDING)], unique=True
        )
        self.get_collection(FOLLOWS).create_index("followingId")

        audit_logs = self.get_collection(AUDIT_LOGS)
        audit_logs.create_index([("entity", ASCENDING), ("entityId", ASCENDING), ("timestamp", DESCENDING)])
        audit_logs.create_index("traceId")

        logger.info("MongoDB indexes created successfully")
