# SPDX-License-Identifier: Apache-2.0

"""
Authentication middleware resolving the caller identity from a bearer token.

Tokens are issued by the identity provider; this module only verifies them
and turns the claims into a Caller.
"""

from functools import wraps
from flask import current_app, jsonify, request
from typing import Any, Callable, Dict, Optional
from opentelemetry import trace
from pydantic import ValidationError
import jwt
import logging

from ..models.entities import Caller
from .error_handler import build_problem

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


class TokenValidationError(Exception):
    """Raised when a bearer token cannot be trusted."""
    pass


class AuthMiddleware:
    """
    JWT authentication middleware for Flask applications.

    Handles token extraction, signature and expiry validation, and caller
    building for protected endpoints.
    """

    def __init__(self, secret_key: str, algorithm: str = "HS256"):
        """
        Initialize the authentication middleware.

        Args:
            secret_key: Shared secret used to verify token signatures
            algorithm: JWT signing algorithm
        """
        self.secret_key = secret_key
        self.algorithm = algorithm

    def extract_token_from_request(self) -> Optional[str]:
        """
        Extract JWT token from request headers.

        Returns:
            JWT token string or None if not found
        """
        auth_header = request.headers.get('Authorization', '')

        if not auth_header:
            return None

        if auth_header.startswith('Bearer '):
            return auth_header[7:]

        return auth_header

    def validate_token(self, token: str) -> Dict[str, Any]:
        """
        Verify a token and return its claims.

        Raises:
            TokenValidationError: If the token is expired, malformed or badly signed
        """
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"require": ["sub"]}
            )
        except jwt.ExpiredSignatureError:
            raise TokenValidationError("Token has expired")
        except jwt.InvalidTokenError as e:
            raise TokenValidationError(f"Invalid token: {e}")

        return payload

    def build_caller(self, token_payload: Dict[str, Any]) -> Caller:
        """
        Build the caller from validated token claims.

        Raises:
            TokenValidationError: If the claims carry an unknown role
        """
        try:
            return Caller(
                user_id=str(token_payload["sub"]),
                role=token_payload.get("role", "citizen"),
                name=token_payload.get("name")
            )
        except ValidationError as e:
            raise TokenValidationError(f"Invalid token claims: {e.errors()[0]['msg']}")


def _unauthorized(title: str, detail: str):
    return jsonify(build_problem("authentication-required", title, 401, detail)), 401


def require_auth(f: Callable) -> Callable:
    """
    Decorator requiring a valid bearer token.

    The decorated view receives the Caller as its first argument.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_middleware: AuthMiddleware = current_app.auth_middleware

        with tracer.start_as_current_span("auth.middleware.validate_request") as span:
            token = auth_middleware.extract_token_from_request()
            if not token:
                span.set_attribute("auth.result", "missing_token")
                logger.warning("Authentication failed: missing token")
                return _unauthorized("Authentication Required", "Missing authorization token")

            try:
                caller = auth_middleware.build_caller(auth_middleware.validate_token(token))
            except TokenValidationError as e:
                span.set_attribute("auth.result", "invalid_token")
                logger.warning(f"Authentication failed: {e}")
                return _unauthorized("Invalid Token", str(e))

            span.set_attributes({"auth.result": "success", "user.id": caller.user_id})

        return f(caller, *args, **kwargs)

    return decorated_function
