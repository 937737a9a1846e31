# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for authentication and error handling middleware.
"""

import jwt
import pytest
from datetime import datetime, timedelta, timezone
from flask import Flask

from lifeline.domain.results import FailureKind, OperationResult
from lifeline.middleware.auth import AuthMiddleware, TokenValidationError, require_auth
from lifeline.middleware.error_handler import ErrorHandlerMiddleware, FAILURE_STATUS, failure_response

SECRET = "test-secret"


def make_token(payload, secret=SECRET):
    return jwt.encode(payload, secret, algorithm="HS256")


@pytest.fixture
def app():
    """Minimal Flask app exercising both middlewares."""
    app = Flask(__name__)
    app.config['ENVIRONMENT'] = 'test'
    app.auth_middleware = AuthMiddleware(SECRET)
    ErrorHandlerMiddleware(app)

    @app.get('/whoami')
    @require_auth
    def whoami(caller):
        return {"userId": caller.user_id, "role": caller.role}

    @app.get('/failure/<kind>')
    def failure(kind):
        return failure_response(OperationResult.fail(FailureKind(kind), f"{kind} happened"))

    @app.get('/boom')
    def boom():
        raise RuntimeError("database exploded")

    return app


@pytest.fixture
def client(app):
    return app.test_client()


class TestAuthMiddleware:
    """Test bearer token handling."""

    def test_valid_token(self, client):
        token = make_token({"sub": "U1", "role": "volunteer"})
        response = client.get('/whoami', headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 200
        assert response.get_json() == {"userId": "U1", "role": "volunteer"}

    def test_role_defaults_to_citizen(self, client):
        token = make_token({"sub": "U1"})
        response = client.get('/whoami', headers={"Authorization": f"Bearer {token}"})
        assert response.get_json()["role"] == "citizen"

    def test_missing_token(self, client):
        response = client.get('/whoami')

        assert response.status_code == 401
        body = response.get_json()
        assert body["status"] == 401
        assert body["detail"] == "Missing authorization token"

    def test_bad_signature(self, client):
        token = make_token({"sub": "U1"}, secret="another-secret")
        response = client.get('/whoami', headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    def test_expired_token(self, client):
        expired = datetime.now(timezone.utc) - timedelta(minutes=5)
        token = make_token({"sub": "U1", "exp": expired})
        response = client.get('/whoami', headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401
        assert response.get_json()["detail"] == "Token has expired"

    def test_missing_subject(self):
        middleware = AuthMiddleware(SECRET)
        with pytest.raises(TokenValidationError):
            middleware.validate_token(make_token({"role": "citizen"}))

    def test_unknown_role(self):
        with pytest.raises(TokenValidationError):
            AuthMiddleware(SECRET).build_caller({"sub": "U1", "role": "overlord"})


class TestErrorHandler:
    """Test failure mapping and generic error responses."""

    @pytest.mark.parametrize("kind,status", [
        ("not_found", 404),
        ("forbidden", 403),
        ("wrong_type", 400),
        ("self_acceptance", 400),
        ("not_accepted", 400),
        ("phone_required", 400),
        ("already_accepted", 409),
        ("not_pending", 409),
        ("validation_failed", 422),
    ])
    def test_failure_status(self, client, kind, status):
        response = client.get(f'/failure/{kind}')

        assert response.status_code == status
        body = response.get_json()
        assert body["kind"] == kind
        assert body["status"] == status
        assert body["detail"] == f"{kind} happened"
        assert body["instance"] == f"/failure/{kind}"

    def test_every_kind_mapped(self):
        assert set(FAILURE_STATUS) == set(FailureKind)

    def test_unknown_route(self, client):
        response = client.get('/nowhere')
        assert response.status_code == 404
        assert response.get_json()["title"] == "Not Found"

    def test_unexpected_error_hidden_outside_development(self, client):
        response = client.get('/boom')

        assert response.status_code == 500
        assert response.get_json()["detail"] == "An unexpected error occurred"

    def test_unexpected_error_detail_in_development(self, app):
        app.config['ENVIRONMENT'] = 'development'
        response = app.test_client().get('/boom')
        assert response.get_json()["detail"] == "RuntimeError: database exploded"
