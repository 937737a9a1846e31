# SPDX-License-Identifier: Apache-2.0

"""
In-memory storage adapters for local development and tests.

Documents are kept in their storage shape and copied on every read and write,
so callers never share mutable state with the store. A single lock makes each
operation, including the conditional writes, atomic.
"""

import copy
import logging
import threading
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from ..models.base import utc_now
from ..models.entities import Acceptance, ServiceRequest, UserProfile
from ..models.enums import RequestStatus, RequestType
from .store import RequestQuery, SortSpec, sort_spec

logger = logging.getLogger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _matches(document: Dict[str, Any], query: RequestQuery) -> bool:
    accepter_ids = [a["userId"] for a in document.get("accepters", [])]

    if query.type and document["type"] != query.type:
        return False
    if query.statuses and document["status"] not in query.statuses:
        return False
    if query.owner_id and document["ownerId"] != query.owner_id:
        return False
    if query.exclude_owner_id and document["ownerId"] == query.exclude_owner_id:
        return False
    if query.accepter_id and query.accepter_id not in accepter_ids:
        return False
    if query.participant_id and not (
        document["ownerId"] == query.participant_id or query.participant_id in accepter_ids
    ):
        return False
    if query.unclaimed_only and accepter_ids:
        return False
    return True


def _sort_value(document: Dict[str, Any], field: str) -> datetime:
    """Resolve a dotted field; arrays sort by their largest element."""
    head, _, rest = field.partition(".")
    value = document.get(head)
    if rest and isinstance(value, list):
        values = [item.get(rest) for item in value if item.get(rest) is not None]
        value = max(values) if values else None
    return value if value is not None else _EPOCH


class InMemoryRequestStore:
    """Thread-safe dictionary-backed request store."""

    def __init__(self):
        self._documents: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    def _select(self, query: RequestQuery) -> List[Dict[str, Any]]:
        return [d for d in self._documents.values() if _matches(d, query)]

    def find(
        self,
        query: RequestQuery,
        sort: SortSpec = None,
        skip: int = 0,
        limit: int = 0
    ) -> List[ServiceRequest]:
        field, direction = sort or sort_spec(None)
        with self._lock:
            documents = copy.deepcopy(self._select(query))

        documents.sort(key=lambda d: (_sort_value(d, field), d["id"]), reverse=direction < 0)
        documents = documents[skip:skip + limit] if limit else documents[skip:]
        return [ServiceRequest.model_validate(d) for d in documents]

    def count(self, query: RequestQuery) -> int:
        with self._lock:
            return len(self._select(query))

    def count_by(self, query: RequestQuery, field: str) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        with self._lock:
            for document in self._select(query):
                key = str(document.get(field))
                counts[key] = counts.get(key, 0) + 1
        return counts

    def get_by_id(self, request_id: str) -> Optional[ServiceRequest]:
        with self._lock:
            document = copy.deepcopy(self._documents.get(request_id))
        return ServiceRequest.model_validate(document) if document else None

    def save(self, request: ServiceRequest) -> ServiceRequest:
        document = request.to_document()
        with self._lock:
            self._documents[request.id] = copy.deepcopy(document)
        logger.debug(f"Saved request {request.id} in memory")
        return ServiceRequest.model_validate(document)

    def delete_by_id(self, request_id: str) -> bool:
        with self._lock:
            return self._documents.pop(request_id, None) is not None

    def accept_if_unclaimed(
        self,
        request_id: str,
        acceptance: Acceptance,
        now: datetime
    ) -> Optional[ServiceRequest]:
        with self._lock:
            document = self._documents.get(request_id)
            if (
                document is None
                or document["type"] != RequestType.BLOOD.value
                or document["ownerId"] == acceptance.user_id
                or document["accepters"]
            ):
                return None

            document["accepters"].append(acceptance.to_document())
            document["status"] = RequestStatus.ACCEPTED.value
            document["updatedAt"] = now
            committed = copy.deepcopy(document)

        return ServiceRequest.model_validate(committed)

    def update_if_pending(
        self,
        request_id: str,
        changes: Dict[str, Any],
        now: datetime
    ) -> Optional[ServiceRequest]:
        with self._lock:
            document = self._documents.get(request_id)
            if document is None or document["status"] != RequestStatus.PENDING.value:
                return None

            document.update(copy.deepcopy(changes))
            document["updatedAt"] = now
            committed = copy.deepcopy(document)

        return ServiceRequest.model_validate(committed)

    def set_status(self, request_id: str, status: RequestStatus) -> bool:
        """Move a request to another status, as the downstream workflow does."""
        with self._lock:
            document = self._documents.get(request_id)
            if document is None:
                return False
            document["status"] = RequestStatus(status).value
            document["updatedAt"] = utc_now()
            return True

    def health_check(self) -> Dict[str, Any]:
        with self._lock:
            size = len(self._documents)
        return {'status': 'healthy', 'backend': 'memory', 'requests': size}


class InMemoryUserDirectory:
    """Dictionary-backed user directory."""

    def __init__(self, profiles: Iterable[UserProfile] = ()):
        self._profiles: Dict[str, UserProfile] = {}
        for profile in profiles:
            self.add(profile)

    def add(self, profile: UserProfile) -> None:
        self._profiles[profile.id] = profile.model_copy()

    def get_by_id(self, user_id: str) -> Optional[UserProfile]:
        profile = self._profiles.get(user_id)
        return profile.model_copy() if profile else None

    def get_many(self, user_ids: Iterable[str]) -> Dict[str, UserProfile]:
        return {
            user_id: self._profiles[user_id].model_copy()
            for user_id in set(user_ids)
            if user_id in self._profiles
        }
