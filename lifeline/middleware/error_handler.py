# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Error handling middleware with problem-details responses.

Maps operation failures to HTTP statuses and provides centralized handling
of HTTP errors and unexpected exceptions for the Flask application.
"""

from flask import Flask, request, jsonify
from werkzeug.exceptions import HTTPException
from typing import Any, Dict, Optional
from opentelemetry import trace
import logging
import traceback

from ..domain.results import FailureKind, OperationResult

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

PROBLEM_BASE = "https://api.lifeline.local/problems"

FAILURE_STATUS = {
    FailureKind.NOT_FOUND: 404,
    FailureKind.FORBIDDEN: 403,
    FailureKind.WRONG_TYPE: 400,
    FailureKind.SELF_ACCEPTANCE: 400,
    FailureKind.NOT_ACCEPTED: 400,
    FailureKind.PHONE_REQUIRED: 400,
    FailureKind.ALREADY_ACCEPTED: 409,
    FailureKind.NOT_PENDING: 409,
    FailureKind.VALIDATION_FAILED: 422,
}

FAILURE_TITLES = {
    FailureKind.NOT_FOUND: "Resource Not Found",
    FailureKind.FORBIDDEN: "Insufficient Permissions",
    FailureKind.WRONG_TYPE: "Wrong Request Type",
    FailureKind.SELF_ACCEPTANCE: "Self Acceptance",
    FailureKind.NOT_ACCEPTED: "Request Not Accepted",
    FailureKind.PHONE_REQUIRED: "Phone Required",
    FailureKind.ALREADY_ACCEPTED: "Already Accepted",
    FailureKind.NOT_PENDING: "Request Not Pending",
    FailureKind.VALIDATION_FAILED: "Validation Error",
}


def build_problem(
    error_type: str,
    title: str,
    status: int,
    detail: str,
    kind: Optional[str] = None,
    errors: Optional[list] = None
) -> Dict[str, Any]:
    """Build a problem-details body for the current request."""
    problem = {
        "type": f"{PROBLEM_BASE}/{error_type}",
        "title": title,
        "status": status,
        "detail": detail,
        "instance": request.path
    }
    if kind:
        problem["kind"] = kind
    if errors:
        problem["errors"] = errors
    return problem


def failure_response(result: OperationResult):
    """
    Convert a failed OperationResult into a JSON response.

    Args:
        result: Failed operation result

    Returns:
        Tuple of (response, status code)
    """
    kind = FailureKind(result.error_kind)
    status = FAILURE_STATUS[kind]
    error_type = kind.value.replace("_", "-")

    # Expected failures log at INFO.
    logger.info(
        f"Operation failed: {kind.value}",
        extra={
            "kind": kind.value,
            "status_code": status,
            "path": request.path,
            "method": request.method
        }
    )

    body = build_problem(
        error_type,
        FAILURE_TITLES[kind],
        status,
        result.error_message or FAILURE_TITLES[kind],
        kind=kind.value,
        errors=result.validation_errors
    )
    return jsonify(body), status


class ErrorHandlerMiddleware:
    """Centralized handling of HTTP errors and unexpected exceptions."""

    def __init__(self, app: Flask):
        self.app = app
        self.register_error_handlers()

    def register_error_handlers(self):
        """Register error handlers with Flask application."""

        @self.app.errorhandler(HTTPException)
        def handle_http_exception(error):
            return self.handle_http_error(error)

        @self.app.errorhandler(Exception)
        def handle_generic_exception(error):
            return self.handle_unexpected_error(error)

    def handle_http_error(self, error: HTTPException):
        """Handle werkzeug HTTP errors such as unknown routes or methods."""
        title = error.name
        error_type = title.lower().replace(" ", "-")
        detail = str(error.description) if error.description else title

        log = logger.error if error.code >= 500 else logger.warning
        log(
            f"HTTP error: {title}",
            extra={
                "error_type": error_type,
                "status_code": error.code,
                "path": request.path,
                "method": request.method
            }
        )

        return jsonify(build_problem(error_type, title, error.code, detail)), error.code

    def handle_unexpected_error(self, error: Exception):
        """
        Handle unexpected exceptions not caught by specific handlers.

        Details are exposed only in development.
        """
        with tracer.start_as_current_span("error_handler.unexpected_error") as span:
            span.set_attributes({
                "error.type": "unexpected-error",
                "error.class": error.__class__.__name__,
                "http.method": request.method,
                "http.path": request.path
            })
            span.record_exception(error)

            logger.error(
                f"Unexpected error: {error.__class__.__name__}",
                extra={
                    "error_type": "unexpected-error",
                    "error_class": error.__class__.__name__,
                    "error_message": str(error),
                    "path": request.path,
                    "method": request.method,
                    "traceback": traceback.format_exc()
                },
                exc_info=True
            )

            detail = "An unexpected error occurred"
            if self.app.config.get('ENVIRONMENT') == 'development':
                detail = f"{error.__class__.__name__}: {str(error)}"

            body = build_problem("internal-server-error", "Internal Server Error", 500, detail)
            return jsonify(body), 500
