# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Models package - Pydantic schemas and data models for the Lifeline platform.
"""

# Base models
from .base import BaseEntity, CamelModel, generate_object_id, utc_now

# Enumerations
from .enums import (
    AcceptanceStatus,
    BloodType,
    ParticipantRole,
    RequestStatus,
    RequestType,
    SortOrder,
    UrgencyLevel,
    UserRole
)

# Core entities
from .entities import (
    Acceptance,
    BloodDetails,
    Caller,
    ComplaintDetails,
    DETAILS_MODELS,
    ElderSupportDetails,
    Location,
    ServiceRequest,
    UserProfile
)

# Read models
from .responses import (
    AccepterView,
    ContactView,
    DashboardSummary,
    MatchView,
    RequestPage,
    RequestView
)

__all__ = [
    "BaseEntity",
    "CamelModel",
    "generate_object_id",
    "utc_now",

    "AcceptanceStatus",
    "BloodType",
    "ParticipantRole",
    "RequestStatus",
    "RequestType",
    "SortOrder",
    "UrgencyLevel",
    "UserRole",

    "Acceptance",
    "BloodDetails",
    "Caller",
    "ComplaintDetails",
    "DETAILS_MODELS",
    "ElderSupportDetails",
    "Location",
    "ServiceRequest",
    "UserProfile",

    "AccepterView",
    "ContactView",
    "DashboardSummary",
    "MatchView",
    "RequestPage",
    "RequestView"
]
