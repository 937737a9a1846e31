# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Core entity models for the Lifeline platform.

Type-specific request payloads form a tagged union keyed by ``type``; each
variant forbids foreign fields, so a request can only carry the fields of its
own kind.
"""

from datetime import datetime
from typing import Annotated, Dict, List, Literal, Optional, Type, Union
from pydantic import ConfigDict, Field, field_validator, model_validator
from .base import BaseEntity, CamelModel, utc_now
from .enums import (
    AcceptanceStatus,
    BloodType,
    RequestStatus,
    RequestType,
    UrgencyLevel,
    UserRole
)


class Location(CamelModel):
    """Where the service is needed."""

    address: str = Field(..., min_length=1, max_length=300, description="Street address")
    city: Optional[str] = Field(None, max_length=100, description="City")
    landmark: Optional[str] = Field(None, max_length=200, description="Nearby landmark")

    @field_validator('address')
    @classmethod
    def validate_address(cls, v):
        """Validate address."""
        if not v.strip():
            raise ValueError('Address cannot be empty')
        return v.strip()


class BloodDetails(CamelModel):
    """Payload of a blood donation request."""

    model_config = ConfigDict(extra='forbid')

    type: Literal["blood"] = "blood"
    blood_type: BloodType = Field(..., description="Required blood group")
    urgency_level: UrgencyLevel = Field(..., description="How soon blood is needed")


class ElderSupportDetails(CamelModel):
    """Payload of an elder support request."""

    model_config = ConfigDict(extra='forbid')

    type: Literal["elder_support"] = "elder_support"
    service_type: str = Field(..., min_length=1, max_length=100, description="Kind of help needed")
    due_date: datetime = Field(..., description="When the help is needed")


class ComplaintDetails(CamelModel):
    """Payload of a civic complaint."""

    model_config = ConfigDict(extra='forbid')

    type: Literal["complaint"] = "complaint"
    title: str = Field(..., min_length=1, max_length=200, description="Complaint title")
    description: str = Field(..., min_length=1, max_length=2000, description="Complaint body")
    category: str = Field(..., min_length=1, max_length=100, description="Complaint category")
    images: List[str] = Field(default_factory=list, description="Attached image URLs")


RequestDetails = Annotated[
    Union[BloodDetails, ElderSupportDetails, ComplaintDetails],
    Field(discriminator="type")
]

DETAILS_MODELS: Dict[str, Type[CamelModel]] = {
    RequestType.BLOOD.value: BloodDetails,
    RequestType.ELDER_SUPPORT.value: ElderSupportDetails,
    RequestType.COMPLAINT.value: ComplaintDetails,
}


class Acceptance(CamelModel):
    """A user volunteering for a request."""

    user_id: str = Field(..., description="Accepting user ID")
    accepted_at: datetime = Field(default_factory=utc_now, description="Acceptance timestamp")
    status: AcceptanceStatus = Field(default=AcceptanceStatus.ACCEPTED, description="Acceptance status")


class ServiceRequest(BaseEntity):
    """A citizen's service request."""

    type: RequestType = Field(..., description="Request kind, immutable")
    owner_id: str = Field(..., description="User ID of the creator, immutable")
    status: RequestStatus = Field(default=RequestStatus.PENDING, description="Lifecycle status")
    name: str = Field(..., min_length=1, max_length=100, description="Request label or patient name")
    phone: str = Field(..., min_length=1, description="Contact number resolved at creation")
    location: Location = Field(..., description="Where the service is needed")
    details: RequestDetails
    accepters: List[Acceptance] = Field(default_factory=list, description="Acceptance records")

    @model_validator(mode='after')
    def validate_invariants(self):
        """Validate cross-field invariants."""
        if self.details.type != self.type:
            raise ValueError(f'Details of type {self.details.type} do not match request type {self.type}')

        if any(a.user_id == self.owner_id for a in self.accepters):
            raise ValueError('Owner cannot be an accepter of their own request')

        if self.type == RequestType.BLOOD and len(self.accepters) > 1:
            raise ValueError('Blood requests accept a single donor')

        return self

    def is_owner(self, user_id: Optional[str]) -> bool:
        """Check if user created this request."""
        return user_id is not None and self.owner_id == user_id

    def is_accepter(self, user_id: Optional[str]) -> bool:
        """Check if user has accepted this request."""
        return user_id is not None and any(a.user_id == user_id for a in self.accepters)

    def is_pending(self) -> bool:
        return self.status == RequestStatus.PENDING

    def is_blood(self) -> bool:
        return self.type == RequestType.BLOOD


class UserProfile(CamelModel):
    """Directory entry for a registered user. Read-only for this service."""

    id: str = Field(..., description="User ID")
    name: str = Field(..., description="Display name")
    phone: Optional[str] = Field(None, description="Contact number")
    email: Optional[str] = Field(None, description="Email address")
    role: UserRole = Field(default=UserRole.CITIZEN, description="Role")


class Caller(CamelModel):
    """Identity of the caller as resolved by the authentication layer."""

    user_id: str = Field(..., description="Authenticated user ID")
    role: UserRole = Field(default=UserRole.CITIZEN, description="Caller role")
    name: Optional[str] = Field(None, description="Display name from the token")
