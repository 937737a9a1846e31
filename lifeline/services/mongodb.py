# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
MongoDB storage adapters with connection pooling.
"""

import os
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional
from pymongo import MongoClient, ASCENDING, DESCENDING, ReturnDocument
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import ConnectionFailure, ServerSelectionTimeoutError
from bson import ObjectId
from opentelemetry import trace

from ..models.entities import Acceptance, ServiceRequest, UserProfile
from ..models.enums import RequestStatus, RequestType
from .store import RequestQuery, SortSpec, sort_spec

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

REQUESTS_COLLECTION = "requests"
USERS_COLLECTION = "users"


class MongoDBService:
    """MongoDB connection holder with pooling and health reporting."""

    def __init__(self, connection_string: str = None, database_name: str = None):
        """Initialize MongoDB service with connection pooling."""
        self.connection_string = connection_string or os.getenv(
            'MONGODB_URI',
            'mongodb://localhost:27017/lifeline_dev'
        )
        self.database_name = database_name or os.getenv('MONGODB_DATABASE', 'lifeline_dev')
        self._client: Optional[MongoClient] = None
        self._database: Optional[Database] = None

        # Connection pool settings
        self.max_pool_size = int(os.getenv('MONGODB_MAX_POOL_SIZE', '10'))
        self.min_pool_size = int(os.getenv('MONGODB_MIN_POOL_SIZE', '1'))
        self.server_selection_timeout_ms = int(os.getenv('MONGODB_SERVER_SELECTION_TIMEOUT_MS', '5000'))

        logger.info(f"MongoDB service initialized for database: {self.database_name}")

    @property
    def client(self) -> MongoClient:
        """Get MongoDB client with connection pooling."""
        if self._client is None:
            try:
                self._client = MongoClient(
                    self.connection_string,
                    maxPoolSize=self.max_pool_size,
                    minPoolSize=self.min_pool_size,
                    serverSelectionTimeoutMS=self.server_selection_timeout_ms,
                    retryWrites=True,
                    retryReads=True,
                    tz_aware=True
                )
                self._client.admin.command('ping')
                logger.info("MongoDB connection established successfully")
            except (ConnectionFailure, ServerSelectionTimeoutError) as e:
                logger.error(f"Failed to connect to MongoDB: {e}")
                raise

        return self._client

    @property
    def database(self) -> Database:
        if self._database is None:
            self._database = self.client[self.database_name]
        return self._database

    def get_collection(self, collection_name: str) -> Collection:
        return self.database[collection_name]

    def health_check(self) -> Dict[str, Any]:
        """Check MongoDB connection health."""
        try:
            result = self.client.admin.command('ping')
            return {
                'status': 'healthy',
                'backend': 'mongodb',
                'ping': result.get('ok') == 1,
                'database': self.database_name
            }
        except Exception as e:
            logger.error(f"MongoDB health check failed: {e}")
            return {
                'status': 'unhealthy',
                'backend': 'mongodb',
                'error': str(e),
                'database': self.database_name
            }

    def create_indexes(self) -> None:
        """Create indexes backing the request listings and lookups."""
        try:
            logger.info("Creating MongoDB indexes...")

            requests = self.get_collection(REQUESTS_COLLECTION)
            requests.create_index([("ownerId", ASCENDING), ("createdAt", DESCENDING)])
            requests.create_index([("ownerId", ASCENDING), ("updatedAt", DESCENDING)])
            requests.create_index([("type", ASCENDING), ("status", ASCENDING), ("createdAt", DESCENDING)])
            requests.create_index("accepters.userId")

            logger.info("MongoDB indexes created successfully")

        except Exception as e:
            logger.error(f"Failed to create MongoDB indexes: {e}")
            raise


def _to_entity(document: Dict[str, Any]) -> ServiceRequest:
    document = dict(document)
    document["id"] = str(document.pop("_id"))
    return ServiceRequest.model_validate(document)


def _to_document(request: ServiceRequest) -> Dict[str, Any]:
    document = request.to_document()
    document["_id"] = document.pop("id")
    return document


class MongoRequestStore:
    """Request persistence on a MongoDB collection."""

    def __init__(self, service: MongoDBService, collection_name: str = REQUESTS_COLLECTION):
        self.service = service
        self.collection_name = collection_name

    @property
    def collection(self) -> Collection:
        return self.service.get_collection(self.collection_name)

    def _build_query(self, query: RequestQuery) -> Dict[str, Any]:
        """Translate a RequestQuery into a MongoDB filter."""
        mongo_query: Dict[str, Any] = {}

        if query.type:
            mongo_query["type"] = query.type

        if query.statuses:
            mongo_query["status"] = {"$in": list(query.statuses)}

        owner_filter: Dict[str, Any] = {}
        if query.owner_id:
            owner_filter["$eq"] = query.owner_id
        if query.exclude_owner_id:
            owner_filter["$ne"] = query.exclude_owner_id
        if owner_filter:
            mongo_query["ownerId"] = owner_filter

        if query.accepter_id:
            mongo_query["accepters.userId"] = query.accepter_id

        if query.participant_id:
            mongo_query["$or"] = [
                {"ownerId": query.participant_id},
                {"accepters.userId": query.participant_id}
            ]

        if query.unclaimed_only:
            mongo_query["accepters"] = {"$size": 0}

        return mongo_query

    def find(
        self,
        query: RequestQuery,
        sort: SortSpec = None,
        skip: int = 0,
        limit: int = 0
    ) -> List[ServiceRequest]:
        field, direction = sort or sort_spec(None)
        try:
            cursor = (
                self.collection.find(self._build_query(query))
                .sort([(field, direction), ("_id", direction)])
                .skip(skip)
                .limit(limit)
            )
            requests = [_to_entity(document) for document in cursor]
            logger.debug(f"Found {len(requests)} requests in {self.collection_name}")
            return requests
        except Exception as e:
            logger.error(f"Failed to find requests in {self.collection_name}: {e}")
            raise

    def count(self, query: RequestQuery) -> int:
        try:
            return self.collection.count_documents(self._build_query(query))
        except Exception as e:
            logger.error(f"Failed to count requests in {self.collection_name}: {e}")
            raise

    def count_by(self, query: RequestQuery, field: str) -> Dict[str, int]:
        pipeline = [
            {"$match": self._build_query(query)},
            {"$group": {"_id": f"${field}", "count": {"$sum": 1}}}
        ]
        try:
            return {str(row["_id"]): row["count"] for row in self.collection.aggregate(pipeline)}
        except Exception as e:
            logger.error(f"Failed to aggregate requests by {field}: {e}")
            raise

    def get_by_id(self, request_id: str) -> Optional[ServiceRequest]:
        try:
            document = self.collection.find_one({"_id": request_id})
        except Exception as e:
            logger.error(f"Failed to find request {request_id}: {e}")
            raise
        return _to_entity(document) if document else None

    def save(self, request: ServiceRequest) -> ServiceRequest:
        document = _to_document(request)
        try:
            self.collection.replace_one({"_id": document["_id"]}, document, upsert=True)
            logger.info(f"Saved request {request.id} in {self.collection_name}")
            return request
        except Exception as e:
            logger.error(f"Failed to save request {request.id}: {e}")
            raise

    def delete_by_id(self, request_id: str) -> bool:
        try:
            result = self.collection.delete_one({"_id": request_id})
        except Exception as e:
            logger.error(f"Failed to delete request {request_id}: {e}")
            raise

        if result.deleted_count > 0:
            logger.info(f"Deleted request {request_id} from {self.collection_name}")
            return True
        return False

    def accept_if_unclaimed(
        self,
        request_id: str,
        acceptance: Acceptance,
        now: datetime
    ) -> Optional[ServiceRequest]:
        """Compare-and-swap on an empty accepters array."""
        with tracer.start_as_current_span("db.request.accept_if_unclaimed") as span:
            span.set_attributes({
                "db.collection": self.collection_name,
                "request.id": request_id
            })
            condition = {
                "_id": request_id,
                "type": RequestType.BLOOD.value,
                "ownerId": {"$ne": acceptance.user_id},
                "accepters": {"$size": 0}
            }
            update = {
                "$push": {"accepters": acceptance.to_document()},
                "$set": {"status": RequestStatus.ACCEPTED.value, "updatedAt": now}
            }
            try:
                document = self.collection.find_one_and_update(
                    condition,
                    update,
                    return_document=ReturnDocument.AFTER
                )
            except Exception as e:
                logger.error(f"Failed conditional accept on request {request_id}: {e}")
                raise

            span.set_attribute("db.matched", document is not None)
            return _to_entity(document) if document else None

    def update_if_pending(
        self,
        request_id: str,
        changes: Dict[str, Any],
        now: datetime
    ) -> Optional[ServiceRequest]:
        condition = {"_id": request_id, "status": RequestStatus.PENDING.value}
        update = {"$set": {**changes, "updatedAt": now}}
        try:
            document = self.collection.find_one_and_update(
                condition,
                update,
                return_document=ReturnDocument.AFTER
            )
        except Exception as e:
            logger.error(f"Failed to update request {request_id}: {e}")
            raise
        return _to_entity(document) if document else None

    def health_check(self) -> Dict[str, Any]:
        return self.service.health_check()


def _id_candidates(user_id: str) -> List[Any]:
    """User IDs may be stored as strings or ObjectIds."""
    candidates: List[Any] = [user_id]
    if ObjectId.is_valid(user_id):
        candidates.append(ObjectId(user_id))
    return candidates


def _to_profile(document: Dict[str, Any]) -> UserProfile:
    document = dict(document)
    document["id"] = str(document.pop("_id"))
    return UserProfile.model_validate(document)


class MongoUserDirectory:
    """Read-only view of the users collection."""

    def __init__(self, service: MongoDBService, collection_name: str = USERS_COLLECTION):
        self.service = service
        self.collection_name = collection_name

    @property
    def collection(self) -> Collection:
        return self.service.get_collection(self.collection_name)

    def get_by_id(self, user_id: str) -> Optional[UserProfile]:
        document = self.collection.find_one({"_id": {"$in": _id_candidates(user_id)}})
        return _to_profile(document) if document else None

    def get_many(self, user_ids: Iterable[str]) -> Dict[str, UserProfile]:
        candidates: List[Any] = []
        for user_id in set(user_ids):
            candidates.extend(_id_candidates(user_id))
        if not candidates:
            return {}
        profiles = (_to_profile(d) for d in self.collection.find({"_id": {"$in": candidates}}))
        return {profile.id: profile for profile in profiles}

