# SPDX-License-Identifier: Apache-2.0

"""
Request payload domain logic.

Pure functions for building new requests from raw payloads, filtering owner
edits through the per-type allow-list, and assembling read views from stored
requests and directory profiles.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set, Tuple
from pydantic import ValidationError
from pydantic.alias_generators import to_camel

from ..models.entities import (
    DETAILS_MODELS,
    Location,
    ServiceRequest,
    UserProfile
)
from ..models.enums import ParticipantRole
from ..models.responses import AccepterView, ContactView, MatchView, RequestView
from .results import FailureKind, OperationResult

GENERIC_CREATE_FIELDS = ("name", "phone", "location")
GENERIC_UPDATE_FIELDS = ("name", "location")

PHONE_REQUIRED_MESSAGE = "Phone number is required. Please update your profile with a phone number."


@dataclass
class ValidationResult:
    """Result of payload validation."""
    is_valid: bool
    errors: List[str] = field(default_factory=list)


def _snake_key(key: str, known: Iterable[str]) -> Optional[str]:
    for name in known:
        if key == name or key == to_camel(name):
            return name
    return None


def format_validation_errors(error: ValidationError) -> List[str]:
    """Flatten a pydantic error into 'field: message' strings."""
    messages = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ()) if part != "type")
        messages.append(f"{location}: {item['msg']}" if location else item["msg"])
    return messages


def type_fields(request_type: str) -> Set[str]:
    """Names of the fields owned by a request type."""
    model = DETAILS_MODELS[request_type]
    return {name for name in model.model_fields if name != "type"}


def split_payload(payload: Mapping[str, Any]) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """
    Separate generic request fields from type-specific ones.

    Args:
        payload: Raw creation payload, camelCase or snake_case keys

    Returns:
        Tuple of (generic fields by snake name, remaining fields as given)
    """
    generic: Dict[str, Any] = {}
    specific: Dict[str, Any] = {}

    for key, value in payload.items():
        if key == "type":
            continue
        name = _snake_key(key, GENERIC_CREATE_FIELDS)
        if name:
            generic[name] = value
        else:
            specific[key] = value

    return generic, specific


def validate_details(request_type: str, specific: Mapping[str, Any]) -> Tuple[Optional[Any], ValidationResult]:
    """
    Check that the type-specific fields are exactly those of the request type.

    Missing fields and fields belonging to another type both fail.
    """
    model = DETAILS_MODELS.get(request_type)
    if model is None:
        return None, ValidationResult(is_valid=False, errors=[f"Invalid request type: {request_type}"])

    try:
        details = model.model_validate({**specific, "type": request_type})
    except ValidationError as e:
        return None, ValidationResult(is_valid=False, errors=format_validation_errors(e))

    return details, ValidationResult(is_valid=True)


def build_new_request(
    owner_id: str,
    request_type: str,
    payload: Mapping[str, Any],
    profile_phone: Optional[str]
) -> OperationResult:
    """
    Build a pending request from a creation payload.

    Args:
        owner_id: Creating user ID
        request_type: One of the RequestType values
        payload: Generic and type-specific fields
        profile_phone: Phone from the owner's profile, used when the payload has none

    Returns:
        OperationResult with an unsaved ServiceRequest
    """
    generic, specific = split_payload(payload)

    details, validation = validate_details(request_type, specific)
    errors = list(validation.errors)

    if not generic.get("name"):
        errors.append("name: Field required")

    location = None
    if generic.get("location") is None:
        errors.append("location: Field required")
    else:
        try:
            location = Location.model_validate(generic["location"])
        except ValidationError as e:
            errors.extend(f"location.{message}" for message in format_validation_errors(e))

    if errors:
        return OperationResult.fail(
            FailureKind.VALIDATION_FAILED,
            f"Payload is incomplete for a {request_type} request",
            errors
        )

    phone = generic.get("phone") or profile_phone
    if not phone:
        return OperationResult.fail(FailureKind.PHONE_REQUIRED, PHONE_REQUIRED_MESSAGE)

    try:
        request = ServiceRequest(
            type=request_type,
            owner_id=owner_id,
            name=generic["name"],
            phone=phone,
            location=location,
            details=details
        )
    except ValidationError as e:
        return OperationResult.fail(
            FailureKind.VALIDATION_FAILED,
            "Request validation failed",
            format_validation_errors(e)
        )

    return OperationResult.ok(request)


def select_updates(request: ServiceRequest, fields: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Keep only the fields an owner may edit on this request.

    Generic fields are name and location; the rest come from the request
    type's own field set. Unknown keys are dropped silently.
    """
    allowed_generic = GENERIC_UPDATE_FIELDS
    allowed_specific = type_fields(request.type)
    selected: Dict[str, Any] = {}

    for key, value in fields.items():
        if value is None:
            continue
        name = _snake_key(key, allowed_generic) or _snake_key(key, allowed_specific)
        if name:
            selected[name] = value

    return selected


def apply_updates(request: ServiceRequest, updates: Mapping[str, Any]) -> OperationResult:
    """
    Validate selected edits against the request and compute storage changes.

    Args:
        request: Current stored request
        updates: Output of select_updates

    Returns:
        OperationResult with a dict of top-level camelCase document changes
    """
    document = request.to_document()
    touched: Set[str] = set()

    details = dict(document["details"])
    for name, value in updates.items():
        if name in GENERIC_UPDATE_FIELDS:
            document[to_camel(name)] = value
            touched.add(to_camel(name))
        else:
            details[to_camel(name)] = value
            touched.add("details")
    document["details"] = details

    try:
        candidate = ServiceRequest.model_validate(document)
    except ValidationError as e:
        return OperationResult.fail(
            FailureKind.VALIDATION_FAILED,
            "Update validation failed",
            format_validation_errors(e)
        )

    validated = candidate.to_document()
    return OperationResult.ok({key: validated[key] for key in touched})


def profile_ids(requests: Iterable[ServiceRequest]) -> Set[str]:
    """User IDs whose profiles are needed to render the given requests."""
    ids: Set[str] = set()
    for request in requests:
        ids.add(request.owner_id)
        ids.update(a.user_id for a in request.accepters)
    return ids


def contact_from_profile(user_id: str, profile: Optional[UserProfile]) -> ContactView:
    """Contact of a user as stored in the directory."""
    if profile is None:
        return ContactView(id=user_id)
    return ContactView(id=user_id, name=profile.name, phone=profile.phone, email=profile.email)


def build_request_view(request: ServiceRequest, profiles: Mapping[str, UserProfile]) -> RequestView:
    """
    Assemble an unredacted view of a request.

    Args:
        request: Stored request
        profiles: Directory profiles keyed by user ID

    Returns:
        RequestView with requester and accepter contacts populated
    """
    requester = contact_from_profile(request.owner_id, profiles.get(request.owner_id))
    if requester.phone is None:
        requester = requester.model_copy(update={"phone": request.phone})

    accepters = [
        AccepterView(
            user=contact_from_profile(a.user_id, profiles.get(a.user_id)),
            accepted_at=a.accepted_at,
            status=a.status
        )
        for a in request.accepters
    ]

    return RequestView(
        id=request.id,
        type=request.type,
        status=request.status,
        owner_id=request.owner_id,
        name=request.name,
        phone=request.phone,
        location=request.location,
        details=request.details,
        requester=requester,
        accepters=accepters,
        created_at=request.created_at,
        updated_at=request.updated_at
    )


def build_match_view(
    request: ServiceRequest,
    viewer_id: str,
    profiles: Mapping[str, UserProfile]
) -> MatchView:
    """
    Assemble the mutual contact view of a matched blood request.

    Both contacts are real; callers must have checked the viewer is one of
    the two parties.
    """
    view = build_request_view(request, profiles)
    donor = view.accepters[0] if view.accepters else None

    return MatchView(
        request_id=request.id,
        blood_type=request.details.blood_type,
        urgency_level=request.details.urgency_level,
        location=request.location,
        status=request.status,
        created_at=request.created_at,
        accepted_at=donor.accepted_at if donor else None,
        user_role=ParticipantRole.REQUESTER if request.is_owner(viewer_id) else ParticipantRole.DONOR,
        requester=view.requester,
        donor=donor.user if donor else None
    )
