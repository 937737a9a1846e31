# SPDX-License-Identifier: Apache-2.0

"""
Per-user dashboard aggregation.

Advisory numbers only: each count is its own store query, so a dashboard may
mix snapshots taken a few milliseconds apart.
"""

import logging

from opentelemetry import trace

from ..domain import requests as request_domain
from ..domain.results import OperationResult
from ..domain.visibility import apply_visibility_to_all
from ..models.enums import RequestStatus, RequestType, SortOrder
from ..models.responses import DashboardSummary
from .store import RequestQuery, RequestStore, UserDirectory, sort_spec

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

RECENT_ACTIVITY_LIMIT = 5


class DashboardAggregator:
    """Counts and recent activity of the requests a user owns."""

    def __init__(self, store: RequestStore, directory: UserDirectory, recent_limit: int = RECENT_ACTIVITY_LIMIT):
        self.store = store
        self.directory = directory
        self.recent_limit = recent_limit

    def summarize(self, user_id: str) -> OperationResult:
        """
        Build the dashboard of one user.

        Returns:
            OperationResult with a DashboardSummary; every type and status
            appears in the counts, zero when absent
        """
        with tracer.start_as_current_span("dashboard.summarize", attributes={"user.id": user_id}) as span:
            owned = RequestQuery(owner_id=user_id)

            by_type = {t.value: 0 for t in RequestType}
            by_type.update(self.store.count_by(owned, "type"))

            by_status = {s.value: 0 for s in RequestStatus}
            by_status.update(self.store.count_by(owned, "status"))

            recent_requests = self.store.find(owned, sort_spec(SortOrder.UPDATED.value), limit=self.recent_limit)
            profiles = self.directory.get_many(request_domain.profile_ids(recent_requests))
            recent = apply_visibility_to_all(
                [request_domain.build_request_view(r, profiles) for r in recent_requests],
                user_id
            )

            volunteered = self.store.count(RequestQuery(accepter_id=user_id))

            summary = DashboardSummary(
                user_id=user_id,
                total=sum(by_type.values()),
                by_type=by_type,
                by_status=by_status,
                volunteered=volunteered,
                recent=recent
            )
            logger.debug(
                "Dashboard built",
                extra={"user_id": user_id, "total": summary.total, "volunteered": volunteered}
            )
            span.set_attributes({"dashboard.total": summary.total, "dashboard.volunteered": volunteered})
            return OperationResult.ok(summary)
