# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Pytest configuration and fixtures.
"""

import os
import pytest
from typing import Any, Dict

from lifeline.models.entities import UserProfile
from lifeline.services.dashboard import DashboardAggregator
from lifeline.services.lifecycle import LifecycleController
from lifeline.services.matching import MatchingEngine
from lifeline.services.memory import InMemoryRequestStore, InMemoryUserDirectory

# Set test environment
os.environ['ENVIRONMENT'] = 'test'
os.environ['OTEL_ENABLED'] = 'false'

REQUESTER = "U1"
DONOR = "U2"
OTHER_DONOR = "U3"
STRANGER = "U4"


@pytest.fixture
def store():
    """Empty in-memory request store."""
    return InMemoryRequestStore()


@pytest.fixture
def directory():
    """User directory with four registered users, all with phones."""
    return InMemoryUserDirectory([
        UserProfile(id=REQUESTER, name="Asha Requester", phone="+15550001", email="u1@example.com"),
        UserProfile(id=DONOR, name="Bilal Donor", phone="+15550002", email="u2@example.com"),
        UserProfile(id=OTHER_DONOR, name="Chen Donor", phone="+15550003", email="u3@example.com"),
        UserProfile(id=STRANGER, name="Dara Stranger", phone="+15550004", email="u4@example.com"),
    ])


@pytest.fixture
def matching(store):
    return MatchingEngine(store)


@pytest.fixture
def controller(store, directory, matching):
    """Lifecycle controller over the in-memory adapters."""
    return LifecycleController(store, directory, matching=matching)


@pytest.fixture
def aggregator(store, directory):
    return DashboardAggregator(store, directory)


@pytest.fixture
def location_data() -> Dict[str, Any]:
    return {"address": "12 Harbour Road", "city": "Springfield", "landmark": "Opposite the clinic"}


@pytest.fixture
def blood_payload(location_data) -> Dict[str, Any]:
    """Creation payload of a blood request."""
    return {
        "name": "Patient Kim",
        "location": location_data,
        "bloodType": "O+",
        "urgencyLevel": "urgent"
    }


@pytest.fixture
def elder_payload(location_data) -> Dict[str, Any]:
    """Creation payload of an elder support request."""
    return {
        "name": "Grandma Rosa",
        "location": location_data,
        "serviceType": "grocery",
        "dueDate": "2026-11-01T10:00:00+00:00"
    }


@pytest.fixture
def complaint_payload(location_data) -> Dict[str, Any]:
    """Creation payload of a civic complaint."""
    return {
        "name": "Broken streetlight",
        "location": location_data,
        "title": "Streetlight out",
        "description": "The streetlight at the corner has been dark for a week.",
        "category": "infrastructure"
    }


@pytest.fixture
def blood_request(controller, blood_payload):
    """A pending blood request owned by the requester."""
    result = controller.create(REQUESTER, "blood", blood_payload)
    assert result.success
    return result.value
