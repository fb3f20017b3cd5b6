# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Error handling middleware with structured HAL responses.
Provides centralized error handling and formatting for Flask applications.
"""

from flask import Flask, request, jsonify
from werkzeug.exceptions import HTTPException
from typing import Dict, Any, Tuple
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode
import logging

from domain.errors import (
    CustomException,
    ValidationException,
    AuthenticationException,
    AuthorizationException,
    NotFoundException,
    StateConflictException,
    PersistenceException
)
from services.hal import HalFormatter

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

__all__ = [
    "ErrorHandlerMiddleware",
    "register_custom_error_handlers",
    "CustomException",
    "ValidationException",
    "AuthenticationException",
    "AuthorizationException",
    "NotFoundException",
    "StateConflictException",
    "PersistenceException"
]

HTTP_ERROR_TYPES = {
    400: "bad-request",
    401: "authentication-required",
    403: "insufficient-permissions",
    404: "resource-not-found",
    405: "method-not-allowed",
    409: "state-conflict",
    415: "unsupported-media-type",
}


class ErrorHandlerMiddleware:
    """Centralized error handling middleware with HAL response formatting."""

    def __init__(self, app: Flask, hal_formatter: HalFormatter):
        self.app = app
        self.hal_formatter = hal_formatter
        self.register_error_handlers()

    def register_error_handlers(self):
        """Register error handlers with Flask application."""

        @self.app.errorhandler(HTTPException)
        def handle_http_exception(error: HTTPException):
            if error.code and error.code >= 500:
                return self.handle_server_error(error)
            return self.handle_client_error(error)

        @self.app.errorhandler(Exception)
        def handle_generic_exception(error):
            return self.handle_unexpected_error(error)

        register_custom_error_handlers(self.app, self.hal_formatter)

    def handle_client_error(self, error: HTTPException) -> Tuple[Dict[str, Any], int]:
        """
        Handle client errors (4xx status codes) raised by Flask routing.

        Args:
            error: HTTP exception

        Returns:
            Tuple of (error response dict, status code)
        """
        error_type = HTTP_ERROR_TYPES.get(error.code, "client-error")
        detail = str(error.description) if error.description else error.name

        logger.warning(
            f"Client error: {error.name}",
            extra={
                "error_type": error_type,
                "status_code": error.code,
                "path": request.path,
                "method": request.method
            }
        )

        error_response = self.hal_formatter.format_error(error_type, error.code, detail, request.path)
        return jsonify(error_response), error.code

    def handle_server_error(self, error: HTTPException) -> Tuple[Dict[str, Any], int]:
        """Handle server errors (5xx status codes) raised by Flask."""
        logger.error(
            f"Server error: {error.name}",
            extra={"status_code": error.code, "path": request.path, "method": request.method}
        )
        detail = "An internal server error occurred"
        error_response = self.hal_formatter.format_error("internal-server-error", error.code, detail, request.path)
        return jsonify(error_response), error.code

    def handle_unexpected_error(self, error: Exception) -> Tuple[Dict[str, Any], int]:
        """
        Handle unexpected exceptions not caught by specific handlers.

        Args:
            error: Unexpected exception

        Returns:
            Tuple of (error response dict, status code)
        """
        span = trace.get_current_span()
        span.record_exception(error)
        span.set_status(Status(StatusCode.ERROR, error.__class__.__name__))

        logger.error(
            f"Unexpected error: {error.__class__.__name__}",
            extra={
                "error_class": error.__class__.__name__,
                "path": request.path,
                "method": request.method
            },
            exc_info=True
        )

        # Internal details only outside production
        detail = "An unexpected error occurred"
        if self.app.config.get('ENVIRONMENT') != 'production':
            detail = f"{error.__class__.__name__}: {str(error)}"

        error_response = self.hal_formatter.format_error("internal-server-error", 500, detail, request.path)
        return jsonify(error_response), 500


def register_custom_error_handlers(app: Flask, hal_formatter: HalFormatter):
    """
    Register handlers for custom exceptions.

    Args:
        app: Flask application
        hal_formatter: HAL formatter instance
    """

    @app.errorhandler(CustomException)
    def handle_custom_exception(error: CustomException):
        span = trace.get_current_span()
        span.set_attributes({
            "error.type": error.error_type,
            "error.status": error.status_code
        })

        log = logger.error if isinstance(error, PersistenceException) else logger.warning
        log(
            f"Custom exception: {error.error_type}",
            extra={
                "error_type": error.error_type,
                "status_code": error.status_code,
                "error_message": error.message,
                "path": request.path,
                "method": request.method
            }
        )

        validation_errors = error.validation_errors if isinstance(error, ValidationException) else None
        error_response = hal_formatter.format_error(
            error.error_type,
            error.status_code,
            error.message,
            request.path,
            validation_errors
        )

        if isinstance(error, StateConflictException):
            if error.current_status:
                error_response['currentStatus'] = error.current_status
            if error.target_status:
                error_response['targetStatus'] = error.target_status

        return jsonify(error_response), error.status_code
