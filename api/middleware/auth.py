# SPDX-License-Identifier: Apache-2.0

"""
Authentication middleware for JWT token validation and user context extraction.

This module provides Flask decorators that validate the bearer token,
build the user context for the request and check management permissions.
Failures raise the domain exceptions rendered by the error handler.
"""

from functools import wraps
from flask import request, g, current_app
from typing import Optional, Dict, Any, Callable
from opentelemetry import trace
import logging

from domain.authorization import check_permission
from domain.errors import AuthenticationException, AuthorizationException
from services.auth import AuthService, TokenValidationError

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


class AuthMiddleware:
    """
    JWT authentication middleware for Flask applications.

    Handles token extraction, validation and user context building for
    protected endpoints.
    """

    def __init__(self, auth_service: AuthService):
        """
        Initialize the authentication middleware.

        Args:
            auth_service: JWT authentication service
        """
        self.auth_service = auth_service

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
            return auth_header[7:].strip() or None

        return auth_header

    def get_request_info(self) -> Dict[str, Any]:
        """
        Extract request metadata for user context.

        Returns:
            Dictionary with request information
        """
        return {
            "ip_address": request.remote_addr,
            "user_agent": request.headers.get('User-Agent', '')
        }

    def authenticate(self):
        """
        Validate the request's token and build its user context.

        Raises:
            AuthenticationException: Missing, expired or invalid token
        """
        with tracer.start_as_current_span("auth.middleware.validate_request") as span:
            span.set_attribute("auth.operation", "validate_request")

            token = self.extract_token_from_request()
            if not token:
                span.set_attribute("auth.result", "missing_token")
                logger.warning("Authentication failed: missing token")
                raise AuthenticationException("Missing authorization token")

            try:
                payload = self.auth_service.validate_token(token)
                info = self.get_request_info()
                user_context = self.auth_service.build_user_context(
                    payload,
                    ip_address=info["ip_address"],
                    user_agent=info["user_agent"]
                )
            except TokenValidationError as e:
                span.set_attribute("auth.result", "invalid_token")
                logger.warning(f"Authentication failed: {str(e)}")
                raise AuthenticationException(str(e)) from e

            span.set_attributes({
                "auth.result": "success",
                "user.id": user_context.user_id,
                "condominium.id": user_context.condominium_id
            })
            logger.debug(
                "Authentication successful",
                extra={
                    "user_id": user_context.user_id,
                    "condominium_id": user_context.condominium_id,
                    "ip_address": user_context.ip_address
                }
            )
            return user_context


def require_auth(f: Callable) -> Callable:
    """
    Decorator to require JWT authentication for Flask routes.

    The user context is stored in ``g.user_context``.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        g.user_context = current_app.auth_middleware.authenticate()
        return f(*args, **kwargs)

    return decorated_function


def require_permission(permission: str) -> Callable:
    """
    Decorator to require specific permission for Flask routes.

    Args:
        permission: Required permission string

    Returns:
        Decorator function
    """
    def decorator(f: Callable) -> Callable:
        @wraps(f)
        @require_auth
        def decorated_function(*args, **kwargs):
            user_context = g.user_context
            with tracer.start_as_current_span("auth.middleware.check_permission") as span:
                span.set_attributes({
                    "auth.operation": "check_permission",
                    "auth.required_permission": permission,
                    "user.id": user_context.user_id,
                    "condominium.id": user_context.condominium_id
                })

                result = check_permission(user_context, permission)
                if not result.allowed:
                    span.set_attribute("auth.permission_result", "denied")
                    logger.warning(
                        f"Authorization failed: missing permission '{permission}'",
                        extra={
                            "user_id": user_context.user_id,
                            "condominium_id": user_context.condominium_id,
                            "required_permission": permission,
                            "role": user_context.role
                        }
                    )
                    raise AuthorizationException(result.reason)

                span.set_attribute("auth.permission_result", "granted")

            return f(*args, **kwargs)

        return decorated_function
    return decorator
