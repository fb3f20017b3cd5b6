# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
CORS (Cross-Origin Resource Sharing) middleware for the residents' web app.
"""

from flask import Flask, request, make_response
from typing import List, Optional
import os
import logging

logger = logging.getLogger(__name__)


class CORSMiddleware:
    """CORS middleware for Flask applications."""

    def __init__(
        self,
        app: Flask,
        allowed_origins: Optional[List[str]] = None,
        allow_credentials: bool = True,
        max_age: int = 86400
    ):
        """
        Initialize CORS middleware.

        Args:
            app: Flask application
            allowed_origins: List of allowed origins; ``*`` suffix matches a prefix
            allow_credentials: Whether to allow credentials
            max_age: Preflight cache duration in seconds
        """
        self.app = app
        self.allowed_origins = allowed_origins if allowed_origins is not None else self._get_default_origins()
        self.allowed_methods = ['GET', 'POST', 'PATCH', 'DELETE', 'OPTIONS']
        self.allowed_headers = ['Accept', 'Authorization', 'Content-Type', 'X-Request-ID', 'traceparent']
        self.expose_headers = ['Location', 'X-Trace-Id']
        self.allow_credentials = allow_credentials
        self.max_age = max_age

        self.register_cors_handlers()

    def _get_default_origins(self) -> List[str]:
        """Get default allowed origins from environment."""
        origins = []

        if os.getenv('ENVIRONMENT', 'development') == 'development':
            origins.extend([
                'http://localhost:3000',
                'http://localhost:5173',
                'http://127.0.0.1:5173'
            ])

        custom_origins = os.getenv('CORS_ORIGINS')
        if custom_origins:
            origins.extend(origin.strip() for origin in custom_origins.split(',') if origin.strip())

        return origins

    def is_origin_allowed(self, origin: Optional[str]) -> bool:
        """Check if origin is allowed."""
        if not origin:
            return False

        for allowed_origin in self.allowed_origins:
            if allowed_origin == '*' or allowed_origin == origin:
                return True
            if allowed_origin.endswith('*') and origin.startswith(allowed_origin[:-1]):
                return True

        return False

    def add_cors_headers(self, response, origin: str):
        """Add CORS headers to response."""
        response.headers['Access-Control-Allow-Origin'] = origin
        response.headers['Vary'] = 'Origin'
        if self.allow_credentials:
            response.headers['Access-Control-Allow-Credentials'] = 'true'
        response.headers['Access-Control-Allow-Methods'] = ', '.join(self.allowed_methods)
        response.headers['Access-Control-Allow-Headers'] = ', '.join(self.allowed_headers)
        response.headers['Access-Control-Expose-Headers'] = ', '.join(self.expose_headers)
        response.headers['Access-Control-Max-Age'] = str(self.max_age)
        return response

    def register_cors_handlers(self):
        """Register CORS handlers with Flask application."""

        @self.app.before_request
        def handle_preflight():
            """Handle CORS preflight requests."""
            if request.method == 'OPTIONS':
                origin = request.headers.get('Origin')

                if not self.is_origin_allowed(origin):
                    logger.warning(f"CORS preflight rejected for origin: {origin}")
                    return make_response('', 403)

                return self.add_cors_headers(make_response('', 204), origin)

        @self.app.after_request
        def add_cors_headers_to_response(response):
            """Add CORS headers to all responses."""
            origin = request.headers.get('Origin')
            if request.method != 'OPTIONS' and self.is_origin_allowed(origin):
                self.add_cors_headers(response, origin)
            return response


def configure_cors(app: Flask, **kwargs) -> CORSMiddleware:
    """
    Configure CORS for Flask application.

    Args:
        app: Flask application
        **kwargs: CORS configuration options

    Returns:
        Configured CORSMiddleware instance
    """
    return CORSMiddleware(app, **kwargs)
