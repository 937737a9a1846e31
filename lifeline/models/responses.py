# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Read models returned by the lifecycle operations.

Views keep the same shape whatever the viewer; redacted contact fields hold
a placeholder value instead of being dropped.
"""

import math
from datetime import datetime
from typing import Dict, List, Optional
from pydantic import Field
from .base import CamelModel
from .entities import Location, RequestDetails
from .enums import AcceptanceStatus, ParticipantRole, RequestStatus, RequestType


class ContactView(CamelModel):
    """Contact details of a user as shown to a viewer."""

    id: str = Field(..., description="User ID, never redacted")
    name: Optional[str] = Field(None, description="Display name")
    phone: Optional[str] = Field(None, description="Contact number")
    email: Optional[str] = Field(None, description="Email address")


class AccepterView(CamelModel):
    """Acceptance record with the accepter's contact populated."""

    user: ContactView
    accepted_at: datetime
    status: AcceptanceStatus = AcceptanceStatus.ACCEPTED


class RequestView(CamelModel):
    """A request as shown to a viewer."""

    id: str
    type: RequestType
    status: RequestStatus
    owner_id: str
    name: str
    phone: str
    location: Location
    details: RequestDetails
    requester: ContactView
    accepters: List[AccepterView] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    def accepter_ids(self) -> List[str]:
        return [accepter.user.id for accepter in self.accepters]


class MatchView(CamelModel):
    """Both sides of a blood match with their real contact details."""

    request_id: str
    blood_type: str
    urgency_level: str
    location: Location
    status: RequestStatus
    created_at: datetime
    accepted_at: Optional[datetime] = None
    user_role: ParticipantRole
    requester: ContactView
    donor: Optional[ContactView] = None


class RequestPage(CamelModel):
    """One page of a request listing."""

    items: List[RequestView]
    total: int
    page: int
    page_size: int
    total_pages: int = 0
    has_next: bool = False
    has_prev: bool = False

    @classmethod
    def build(cls, items: List[RequestView], total: int, page: int, page_size: int) -> "RequestPage":
        """Build a page computing the navigation fields."""
        total_pages = math.ceil(total / page_size) if page_size else 0
        return cls(
            items=items,
            total=total,
            page=page,
            page_size=page_size,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_prev=page > 1
        )


class DashboardSummary(CamelModel):
    """Per-user aggregate of owned requests."""

    user_id: str
    total: int = 0
    by_type: Dict[str, int] = Field(default_factory=dict)
    by_status: Dict[str, int] = Field(default_factory=dict)
    volunteered: int = 0
    recent: List[RequestView] = Field(default_factory=list)
