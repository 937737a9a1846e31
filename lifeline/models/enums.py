# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Enumeration types for the Lifeline platform.
"""

from enum import Enum


class RequestType(str, Enum):
    """Kinds of service request a citizen can submit."""
    BLOOD = "blood"
    ELDER_SUPPORT = "elder_support"
    COMPLAINT = "complaint"


class RequestStatus(str, Enum):
    """Request lifecycle status enumeration."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class AcceptanceStatus(str, Enum):
    """Status of a single acceptance record."""
    ACCEPTED = "accepted"


class BloodType(str, Enum):
    """ABO/Rh blood groups."""
    A_POS = "A+"
    A_NEG = "A-"
    B_POS = "B+"
    B_NEG = "B-"
    AB_POS = "AB+"
    AB_NEG = "AB-"
    O_POS = "O+"
    O_NEG = "O-"


class UrgencyLevel(str, Enum):
    """Urgency of a blood request."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class UserRole(str, Enum):
    """Caller roles resolved by the identity provider."""
    CITIZEN = "citizen"
    VOLUNTEER = "volunteer"
    ADMIN = "admin"


class SortOrder(str, Enum):
    """Supported orderings for request listings."""
    NEWEST = "newest"
    OLDEST = "oldest"
    UPDATED = "updated"


class ParticipantRole(str, Enum):
    """Side of a match the viewer is on."""
    REQUESTER = "requester"
    DONOR = "donor"
