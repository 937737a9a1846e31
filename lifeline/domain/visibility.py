# SPDX-License-Identifier: Apache-2.0

"""
Contact visibility policy.

Pure functions deciding which contact fields of a request view a viewer may
see. Personal details stay hidden until the viewer owns the request or has
accepted it. Redaction overwrites values with a fixed placeholder and keeps
every field, so a view has the same shape for every viewer.
"""

from enum import Enum
from typing import Iterable, List, Optional

from ..models.responses import AccepterView, ContactView, RequestView

REDACTED = "Hidden"


class ViewerRelation(str, Enum):
    """How a viewer relates to one request."""
    OWNER = "owner"
    ACCEPTER = "accepter"
    STRANGER = "stranger"


def relation_of(view: RequestView, viewer_id: Optional[str]) -> ViewerRelation:
    """
    Classify the viewer against a single request.

    Args:
        view: Populated request view
        viewer_id: Caller user ID, None for anonymous callers

    Returns:
        ViewerRelation for this request
    """
    if viewer_id is None:
        return ViewerRelation.STRANGER

    if view.owner_id == viewer_id:
        return ViewerRelation.OWNER

    if viewer_id in view.accepter_ids():
        return ViewerRelation.ACCEPTER

    return ViewerRelation.STRANGER


def redact_contact(contact: ContactView) -> ContactView:
    """Replace name, phone and email with the placeholder. The ID is kept."""
    return contact.model_copy(update={
        "name": REDACTED,
        "phone": REDACTED,
        "email": REDACTED
    })


def _redact_accepter(accepter: AccepterView) -> AccepterView:
    return accepter.model_copy(update={"user": redact_contact(accepter.user)})


def _redact_all(view: RequestView) -> RequestView:
    return view.model_copy(update={
        "phone": REDACTED,
        "requester": redact_contact(view.requester),
        "accepters": [_redact_accepter(a) for a in view.accepters]
    })


def apply_visibility(view: RequestView, viewer_id: Optional[str]) -> RequestView:
    """
    Apply the visibility rules for one viewer to one request view.

    Owners and accepters see every contact on the request. Anyone else sees
    the owner's and the accepters' contact fields replaced with the
    placeholder. The input view is never modified.

    Args:
        view: Populated request view
        viewer_id: Caller user ID

    Returns:
        View safe to return to the viewer
    """
    if relation_of(view, viewer_id) != ViewerRelation.STRANGER:
        return view

    return _redact_all(view)


def apply_public_visibility(view: RequestView) -> RequestView:
    """
    Redact a request for the public feed of open blood requests.

    Owner contact is hidden unconditionally, whoever is looking.
    """
    return _redact_all(view)


def apply_visibility_to_all(views: Iterable[RequestView], viewer_id: Optional[str]) -> List[RequestView]:
    """Apply the rules to every view independently."""
    return [apply_visibility(view, viewer_id) for view in views]


def is_redacted(contact: ContactView) -> bool:
    """Check if a contact has been redacted."""
    return contact.name == REDACTED and contact.phone == REDACTED and contact.email == REDACTED
