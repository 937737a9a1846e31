# SPDX-License-Identifier: Apache-2.0

"""
Request lifecycle orchestration.

The controller owns every create, read, edit and delete of a service request.
Reads always go back to the store and pass through the visibility policy
before leaving; acceptance is delegated to the matching engine.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Mapping, Optional

from opentelemetry import trace

from ..domain import requests as request_domain
from ..domain.results import FailureKind, OperationResult, forbidden, not_found
from ..domain.visibility import (
    apply_public_visibility,
    apply_visibility,
    apply_visibility_to_all
)
from ..models.base import utc_now
from ..models.entities import ServiceRequest
from ..models.enums import RequestStatus, RequestType, SortOrder, UserRole
from ..models.responses import RequestPage, RequestView
from .matching import MatchingEngine
from .store import MOST_RECENT_ACCEPTANCE, RequestQuery, RequestStore, UserDirectory, sort_spec

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100
PUBLIC_LISTING_LIMIT = 50


@dataclass
class RequestFilters:
    """Listing filters."""
    type: Optional[str] = None
    statuses: Optional[List[str]] = None
    owner_id: Optional[str] = None

    def to_query(self) -> RequestQuery:
        return RequestQuery(type=self.type, statuses=self.statuses or None, owner_id=self.owner_id)


class LifecycleController:
    """Create, read, update, delete and volunteer operations on requests."""

    def __init__(
        self,
        store: RequestStore,
        directory: UserDirectory,
        matching: Optional[MatchingEngine] = None,
        default_page_size: int = DEFAULT_PAGE_SIZE,
        max_page_size: int = MAX_PAGE_SIZE,
        public_listing_limit: int = PUBLIC_LISTING_LIMIT,
        clock: Callable = utc_now
    ):
        self.store = store
        self.directory = directory
        self.matching = matching or MatchingEngine(store, clock)
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size
        self.public_listing_limit = public_listing_limit
        self.clock = clock

    def _views(self, requests: Iterable[ServiceRequest]) -> List[RequestView]:
        requests = list(requests)
        profiles = self.directory.get_many(request_domain.profile_ids(requests))
        return [request_domain.build_request_view(r, profiles) for r in requests]

    def _view(self, request: ServiceRequest) -> RequestView:
        return self._views([request])[0]

    def create(self, owner_id: str, request_type: str, payload: Mapping[str, Any]) -> OperationResult:
        """
        Create a pending request owned by owner_id.

        Args:
            owner_id: Creating user
            request_type: blood, elder_support or complaint
            payload: Generic fields (name, phone, location) and the type's own fields

        Returns:
            OperationResult with the owner's RequestView
        """
        with tracer.start_as_current_span(
            "lifecycle.create",
            attributes={"user.id": owner_id, "request.type": str(request_type)}
        ) as span:
            profile = self.directory.get_by_id(owner_id)
            result = request_domain.build_new_request(
                owner_id,
                request_type,
                payload,
                profile.phone if profile else None
            )
            if not result.success:
                span.set_attribute("lifecycle.result", result.error_kind.value)
                logger.info(
                    "Request creation rejected",
                    extra={"user_id": owner_id, "kind": result.error_kind.value, "errors": result.validation_errors}
                )
                return result

            saved = self.store.save(result.value)
            span.set_attribute("request.id", saved.id)
            logger.info(
                "Request created",
                extra={"request_id": saved.id, "user_id": owner_id, "request_type": saved.type}
            )
            return OperationResult.ok(self._view(saved))

    def list(
        self,
        viewer_id: str,
        filters: Optional[RequestFilters] = None,
        sort_by: Optional[str] = SortOrder.NEWEST.value,
        page: int = 1,
        page_size: Optional[int] = None
    ) -> OperationResult:
        """
        List requests one page at a time, redacted for the viewer.

        Returns:
            OperationResult with a RequestPage
        """
        filters = filters or RequestFilters()
        page = max(int(page or 1), 1)
        page_size = min(max(int(page_size or self.default_page_size), 1), self.max_page_size)

        with tracer.start_as_current_span(
            "lifecycle.list",
            attributes={"user.id": viewer_id, "page": page, "page_size": page_size}
        ) as span:
            query = filters.to_query()
            total = self.store.count(query)
            requests = self.store.find(
                query,
                sort_spec(sort_by),
                skip=(page - 1) * page_size,
                limit=page_size
            )
            items = apply_visibility_to_all(self._views(requests), viewer_id)
            span.set_attributes({"result.total": total, "result.count": len(items)})

            return OperationResult.ok(RequestPage.build(items, total, page, page_size))

    def get(self, viewer_id: str, request_id: str, role: str = UserRole.CITIZEN.value) -> OperationResult:
        """Fetch one request. Citizens may only read their own."""
        with tracer.start_as_current_span(
            "lifecycle.get",
            attributes={"user.id": viewer_id, "request.id": request_id, "user.role": str(role)}
        ):
            request = self.store.get_by_id(request_id)
            if request is None:
                return not_found()

            if role == UserRole.CITIZEN and not request.is_owner(viewer_id):
                logger.warning(
                    "Request access denied",
                    extra={"request_id": request_id, "user_id": viewer_id, "role": role}
                )
                return forbidden("Access denied. You can only view your own requests.")

            return OperationResult.ok(apply_visibility(self._view(request), viewer_id))

    def update(self, viewer_id: str, request_id: str, fields: Mapping[str, Any]) -> OperationResult:
        """
        Edit a pending request. Only the owner may edit.

        Unknown fields are ignored; allowed fields are name, location and the
        request type's own fields.
        """
        with tracer.start_as_current_span(
            "lifecycle.update",
            attributes={"user.id": viewer_id, "request.id": request_id}
        ) as span:
            request = self.store.get_by_id(request_id)
            if request is None:
                return not_found()

            if not request.is_owner(viewer_id):
                return forbidden("Access denied. You can only update your own requests.")

            if not request.is_pending():
                return self._not_pending()

            updates = request_domain.select_updates(request, fields)
            span.set_attribute("update.fields", sorted(updates))
            if not updates:
                return OperationResult.ok(self._view(request))

            changes = request_domain.apply_updates(request, updates)
            if not changes.success:
                return changes

            committed = self.store.update_if_pending(request_id, changes.value, self.clock())
            if committed is None:
                return not_found() if self.store.get_by_id(request_id) is None else self._not_pending()

            logger.info(
                "Request updated",
                extra={"request_id": request_id, "user_id": viewer_id, "fields": sorted(updates)}
            )
            return OperationResult.ok(self._view(committed))

    @staticmethod
    def _not_pending() -> OperationResult:
        return OperationResult.fail(
            FailureKind.NOT_PENDING,
            "Cannot update request that is no longer pending"
        )

    def delete(self, viewer_id: str, request_id: str) -> OperationResult:
        """Delete a request with its acceptances. Only the owner may delete, at any status."""
        with tracer.start_as_current_span(
            "lifecycle.delete",
            attributes={"user.id": viewer_id, "request.id": request_id}
        ):
            request = self.store.get_by_id(request_id)
            if request is None:
                return not_found()

            if not request.is_owner(viewer_id):
                return forbidden("Access denied. You can only delete your own requests.")

            if not self.store.delete_by_id(request_id):
                return not_found()

            logger.info("Request deleted", extra={"request_id": request_id, "user_id": viewer_id})
            return OperationResult.ok(request_id)

    def volunteer(self, candidate_id: str, request_id: str) -> OperationResult:
        """
        Volunteer for a blood request.

        On success both parties are now related, so the response carries the
        requester's and the donor's real contact details.

        Returns:
            OperationResult with a MatchView from the donor's side
        """
        result = self.matching.try_accept(request_id, candidate_id)
        if not result.success:
            return result

        outcome = result.value
        profiles = self.directory.get_many({outcome.owner_id, candidate_id})
        return OperationResult.ok(request_domain.build_match_view(outcome.request, candidate_id, profiles))

    def get_accepters(self, viewer_id: str, request_id: str) -> OperationResult:
        """Full acceptance list, for the owner only."""
        with tracer.start_as_current_span(
            "lifecycle.get_accepters",
            attributes={"user.id": viewer_id, "request.id": request_id}
        ) as span:
            request = self.store.get_by_id(request_id)
            if request is None:
                return not_found()

            if not request.is_owner(viewer_id):
                return forbidden("Not authorized to view accepters for this request")

            accepters = self._view(request).accepters
            span.set_attribute("result.count", len(accepters))
            return OperationResult.ok(accepters)

    def get_mutual_contacts(self, viewer_id: str, request_id: str) -> OperationResult:
        """
        Reveal both parties' contact details of a matched blood request.

        Only the requester and the donor may call this, and only once the
        request is accepted.
        """
        with tracer.start_as_current_span(
            "lifecycle.mutual_contacts",
            attributes={"user.id": viewer_id, "request.id": request_id}
        ) as span:
            request = self.store.get_by_id(request_id)
            if request is None:
                return not_found()

            if not request.is_blood():
                return OperationResult.fail(
                    FailureKind.WRONG_TYPE,
                    "Contact details only available for blood requests"
                )

            if not (request.is_owner(viewer_id) or request.is_accepter(viewer_id)):
                logger.warning(
                    "Contact reveal denied",
                    extra={"request_id": request_id, "user_id": viewer_id}
                )
                return forbidden("Access denied. Only requester and donor can view contact details.")

            if request.status != RequestStatus.ACCEPTED:
                return OperationResult.fail(
                    FailureKind.NOT_ACCEPTED,
                    "Contact details only available for accepted requests"
                )

            profiles = self.directory.get_many(request_domain.profile_ids([request]))
            match = request_domain.build_match_view(request, viewer_id, profiles)
            span.set_attribute("match.user_role", match.user_role)
            return OperationResult.ok(match)

    def list_open_blood(self, viewer_id: str, limit: Optional[int] = None) -> OperationResult:
        """Public feed of pending, unclaimed blood requests not owned by the viewer."""
        query = RequestQuery(
            type=RequestType.BLOOD.value,
            statuses=[RequestStatus.PENDING.value],
            exclude_owner_id=viewer_id,
            unclaimed_only=True
        )
        requests = self.store.find(query, sort_spec(SortOrder.NEWEST.value), limit=limit or self.public_listing_limit)
        return OperationResult.ok([apply_public_visibility(view) for view in self._views(requests)])

    def list_accepted(self, viewer_id: str) -> OperationResult:
        """Requests the viewer has accepted, most recent acceptance first."""
        requests = self.store.find(RequestQuery(accepter_id=viewer_id), MOST_RECENT_ACCEPTANCE)
        return OperationResult.ok(apply_visibility_to_all(self._views(requests), viewer_id))

    def list_matches(self, viewer_id: str) -> OperationResult:
        """Accepted blood requests where the viewer is requester or donor."""
        query = RequestQuery(
            type=RequestType.BLOOD.value,
            statuses=[RequestStatus.ACCEPTED.value],
            participant_id=viewer_id
        )
        requests = self.store.find(query, sort_spec(SortOrder.UPDATED.value))
        profiles = self.directory.get_many(request_domain.profile_ids(requests))
        return OperationResult.ok([
            request_domain.build_match_view(request, viewer_id, profiles)
            for request in requests
        ])
