# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Fixtures for HTTP acceptance tests.

The application runs on the in-memory backend with a seeded user
directory; callers authenticate with locally signed tokens.
"""

import jwt
import pytest

from lifeline.app import create_app
from lifeline.models.entities import UserProfile
from lifeline.services.memory import InMemoryRequestStore, InMemoryUserDirectory

JWT_SECRET = "acceptance-secret"

USERS = {
    "U1": ("Asha Requester", "+15550001", "citizen"),
    "U2": ("Bilal Donor", "+15550002", "volunteer"),
    "U3": ("Chen Donor", "+15550003", "volunteer"),
    "U4": ("Dara Stranger", "+15550004", "volunteer"),
}


@pytest.fixture
def request_store():
    return InMemoryRequestStore()


@pytest.fixture
def test_app(request_store):
    """Application wired to in-memory adapters."""
    directory = InMemoryUserDirectory([
        UserProfile(id=user_id, name=name, phone=phone, email=f"{user_id.lower()}@example.com", role=role)
        for user_id, (name, phone, role) in USERS.items()
    ])
    app = create_app(
        config_overrides={
            'ENVIRONMENT': 'test',
            'STORE_BACKEND': 'memory',
            'OTEL_ENABLED': False,
            'JWT_SECRET_KEY': JWT_SECRET,
            'TESTING': True
        },
        store=request_store,
        directory=directory
    )
    return app


@pytest.fixture
def test_client(test_app):
    return test_app.test_client()


@pytest.fixture
def auth_headers():
    """Build Authorization headers for a seeded user."""
    def _headers(user_id):
        name, _, role = USERS[user_id]
        token = jwt.encode({"sub": user_id, "role": role, "name": name}, JWT_SECRET, algorithm="HS256")
        return {"Authorization": f"Bearer {token}"}
    return _headers


@pytest.fixture
def blood_payload():
    return {
        "type": "blood",
        "name": "Patient Kim",
        "location": {"address": "12 Harbour Road", "city": "Springfield"},
        "bloodType": "O+",
        "urgencyLevel": "urgent"
    }
