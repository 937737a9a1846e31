# SPDX-License-Identifier: Apache-2.0

"""
Single-acceptor matching for blood requests.

A blood request binds to exactly one donor. The precondition checks here give
callers a precise failure; the store's conditional write repeats them so two
concurrent volunteers can never both be recorded.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from opentelemetry import trace

from ..domain.results import FailureKind, OperationResult, not_found
from ..models.base import utc_now
from ..models.entities import Acceptance, ServiceRequest
from .store import RequestStore

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

ALREADY_ACCEPTED_MESSAGE = "This blood request has already been accepted by another donor"


@dataclass
class AcceptanceOutcome:
    """Successful match: the new acceptance and the committed request."""
    acceptance: Acceptance
    owner_id: str
    request: ServiceRequest


class MatchingEngine:
    """Assigns at most one accepter to a blood request."""

    def __init__(self, store: RequestStore, clock: Callable = utc_now):
        self.store = store
        self.clock = clock

    def check_preconditions(self, request: Optional[ServiceRequest], candidate_id: str) -> Optional[OperationResult]:
        """
        Evaluate the acceptance preconditions in order.

        Returns:
            Failing OperationResult, or None when the candidate may accept
        """
        if request is None:
            return not_found()

        if not request.is_blood():
            return OperationResult.fail(FailureKind.WRONG_TYPE, "Can only volunteer for blood requests")

        if request.is_owner(candidate_id):
            return OperationResult.fail(FailureKind.SELF_ACCEPTANCE, "Cannot volunteer for your own request")

        if request.accepters:
            return OperationResult.fail(FailureKind.ALREADY_ACCEPTED, ALREADY_ACCEPTED_MESSAGE)

        return None

    def try_accept(self, request_id: str, candidate_id: str) -> OperationResult:
        """
        Record candidate_id as the single accepter of a blood request.

        Args:
            request_id: Blood request to accept
            candidate_id: Volunteering user

        Returns:
            OperationResult with an AcceptanceOutcome on success; NOT_FOUND,
            WRONG_TYPE, SELF_ACCEPTANCE or ALREADY_ACCEPTED otherwise
        """
        with tracer.start_as_current_span(
            "matching.try_accept",
            attributes={"request.id": request_id, "candidate.id": candidate_id}
        ) as span:
            failure = self.check_preconditions(self.store.get_by_id(request_id), candidate_id)
            if failure is not None:
                span.set_attribute("matching.result", failure.error_kind.value)
                return failure

            now = self.clock()
            acceptance = Acceptance(user_id=candidate_id, accepted_at=now)
            committed = self.store.accept_if_unclaimed(request_id, acceptance, now)

            if committed is None:
                # Lost a race between the read and the conditional write.
                failure = self.check_preconditions(self.store.get_by_id(request_id), candidate_id)
                if failure is None:
                    failure = OperationResult.fail(FailureKind.ALREADY_ACCEPTED, ALREADY_ACCEPTED_MESSAGE)
                span.set_attribute("matching.result", failure.error_kind.value)
                logger.info(
                    "Acceptance lost to a concurrent operation",
                    extra={"request_id": request_id, "candidate_id": candidate_id, "kind": failure.error_kind.value}
                )
                return failure

            span.set_attribute("matching.result", "accepted")
            logger.info(
                "Blood request accepted",
                extra={"request_id": request_id, "candidate_id": candidate_id, "owner_id": committed.owner_id}
            )
            return OperationResult.ok(AcceptanceOutcome(
                acceptance=acceptance,
                owner_id=committed.owner_id,
                request=committed
            ))
