# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Storage interfaces consumed by the lifecycle services.

Two adapters implement them: MongoDB for deployments and an in-memory store
for local development and tests.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Protocol, Tuple

from ..models.entities import Acceptance, ServiceRequest, UserProfile
from ..models.enums import SortOrder

SortSpec = Tuple[str, int]

SORT_SPECS: Dict[str, SortSpec] = {
    SortOrder.NEWEST.value: ("createdAt", -1),
    SortOrder.OLDEST.value: ("createdAt", 1),
    SortOrder.UPDATED.value: ("updatedAt", -1),
}

MOST_RECENT_ACCEPTANCE: SortSpec = ("accepters.acceptedAt", -1)


def sort_spec(sort_by: Optional[str]) -> SortSpec:
    """Resolve a sort name, falling back to newest first."""
    return SORT_SPECS.get(sort_by or SortOrder.NEWEST.value, SORT_SPECS[SortOrder.NEWEST.value])


@dataclass
class RequestQuery:
    """Store-neutral request filter. Unset fields do not constrain."""
    type: Optional[str] = None
    statuses: Optional[List[str]] = None
    owner_id: Optional[str] = None
    exclude_owner_id: Optional[str] = None
    accepter_id: Optional[str] = None
    participant_id: Optional[str] = None
    unclaimed_only: bool = False


class RequestStore(Protocol):
    """Persistence of service requests."""

    def find(
        self,
        query: RequestQuery,
        sort: SortSpec = SORT_SPECS[SortOrder.NEWEST.value],
        skip: int = 0,
        limit: int = 0
    ) -> List[ServiceRequest]:
        ...

    def count(self, query: RequestQuery) -> int:
        ...

    def count_by(self, query: RequestQuery, field: str) -> Dict[str, int]:
        """Count matching requests grouped by a top-level field."""
        ...

    def get_by_id(self, request_id: str) -> Optional[ServiceRequest]:
        ...

    def save(self, request: ServiceRequest) -> ServiceRequest:
        ...

    def delete_by_id(self, request_id: str) -> bool:
        ...

    def accept_if_unclaimed(
        self,
        request_id: str,
        acceptance: Acceptance,
        now: datetime
    ) -> Optional[ServiceRequest]:
        """
        Atomically append an acceptance and mark the request accepted.

        The write only applies to a blood request with no accepters whose
        owner is not the accepting user. Returns the committed request, or
        None when nothing matched.
        """
        ...

    def update_if_pending(
        self,
        request_id: str,
        changes: Dict[str, Any],
        now: datetime
    ) -> Optional[ServiceRequest]:
        """
        Atomically set top-level fields of a pending request.

        Returns the committed request, or None when the request is absent or
        no longer pending.
        """
        ...

    def health_check(self) -> Dict[str, Any]:
        ...


class UserDirectory(Protocol):
    """Read access to registered users."""

    def get_by_id(self, user_id: str) -> Optional[UserProfile]:
        ...

    def get_many(self, user_ids: Iterable[str]) -> Dict[str, UserProfile]:
        ...
