# SPDX-License-Identifier: Apache-2.0

"""
Service request endpoints.

Thin HTTP layer over the lifecycle controller and dashboard aggregator:
parses parameters, resolves the caller and maps operation results to
responses.
"""

from flask import Blueprint, request, jsonify, current_app
from opentelemetry import trace
import logging
from typing import Any, List, Optional

from ..middleware.auth import require_auth
from ..middleware.error_handler import failure_response
from ..models.base import CamelModel
from ..models.entities import Caller
from ..services.lifecycle import RequestFilters

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

requests_bp = Blueprint('requests', __name__, url_prefix='/api/requests')


def _serialize(value: Any) -> Any:
    if isinstance(value, CamelModel):
        return value.to_json()
    if isinstance(value, list):
        return [_serialize(item) for item in value]
    return value


def _respond(result, status: int = 200):
    """Render an OperationResult as JSON."""
    if not result.success:
        return failure_response(result)
    return jsonify(_serialize(result.value)), status


def _split_csv(value: Optional[str]) -> Optional[List[str]]:
    if not value:
        return None
    return [item.strip() for item in value.split(",") if item.strip()] or None


def _json_body() -> dict:
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


@requests_bp.get('')
@require_auth
def list_requests(caller: Caller):
    """
    List requests, newest first by default.

    Query parameters: type, status (comma-separated), sortBy
    (newest|oldest|updated), page, limit, mine (true restricts to the
    caller's own requests).
    """
    mine = request.args.get('mine', 'false').lower() == 'true'
    filters = RequestFilters(
        type=request.args.get('type') or None,
        statuses=_split_csv(request.args.get('status')),
        owner_id=caller.user_id if mine else None
    )

    result = current_app.lifecycle.list(
        caller.user_id,
        filters,
        sort_by=request.args.get('sortBy'),
        page=request.args.get('page', 1, type=int),
        page_size=request.args.get('limit', type=int)
    )
    return _respond(result)


@requests_bp.post('')
@require_auth
def create_request(caller: Caller):
    """Create a request; the body carries `type` plus the generic and type fields."""
    body = _json_body()
    result = current_app.lifecycle.create(caller.user_id, body.get('type'), body)
    return _respond(result, 201)


@requests_bp.get('/dashboard')
@require_auth
def get_dashboard(caller: Caller):
    return _respond(current_app.dashboard.summarize(caller.user_id))


@requests_bp.get('/accepted')
@require_auth
def list_accepted_requests(caller: Caller):
    """Requests the caller has volunteered for."""
    return _respond(current_app.lifecycle.list_accepted(caller.user_id))


@requests_bp.get('/blood/accepted')
@require_auth
def list_blood_matches(caller: Caller):
    """Accepted blood requests where the caller is requester or donor."""
    return _respond(current_app.lifecycle.list_matches(caller.user_id))


@requests_bp.get('/public/blood')
@require_auth
def list_open_blood_requests(caller: Caller):
    """Open blood requests from other users, contacts hidden."""
    limit = request.args.get('limit', type=int)
    return _respond(current_app.lifecycle.list_open_blood(caller.user_id, limit))


@requests_bp.get('/<request_id>')
@require_auth
def get_request(caller: Caller, request_id: str):
    return _respond(current_app.lifecycle.get(caller.user_id, request_id, caller.role))


@requests_bp.put('/<request_id>')
@require_auth
def update_request(caller: Caller, request_id: str):
    """Edit a pending request. Fields outside the allow-list are ignored."""
    result = current_app.lifecycle.update(caller.user_id, request_id, _json_body())
    return _respond(result)


@requests_bp.delete('/<request_id>')
@require_auth
def delete_request(caller: Caller, request_id: str):
    result = current_app.lifecycle.delete(caller.user_id, request_id)
    if not result.success:
        return failure_response(result)
    return jsonify({"message": "Request deleted successfully", "id": result.value}), 200


@requests_bp.post('/<request_id>/volunteer')
@require_auth
def volunteer_for_request(caller: Caller, request_id: str):
    """
    Volunteer for a blood request.

    The first volunteer wins; later ones get 409 with kind already_accepted.
    """
    with tracer.start_as_current_span(
        "requests.volunteer",
        attributes={"user.id": caller.user_id, "request.id": request_id}
    ):
        result = current_app.lifecycle.volunteer(caller.user_id, request_id)
    return _respond(result)


@requests_bp.get('/<request_id>/accepters')
@require_auth
def get_request_accepters(caller: Caller, request_id: str):
    return _respond(current_app.lifecycle.get_accepters(caller.user_id, request_id))


@requests_bp.get('/<request_id>/contacts')
@require_auth
def get_request_contacts(caller: Caller, request_id: str):
    """Mutual contact details of a matched blood request."""
    return _respond(current_app.lifecycle.get_mutual_contacts(caller.user_id, request_id))
