"""
Assembleias API - Flask Application Entry Point

This module builds the Flask application, configures middleware and wires
the services used by the condominium assembly governance and voting API.
"""

import os
import logging
from typing import Any, Dict, Optional
from flask import jsonify
from flask_openapi3 import OpenAPI, Info, Tag

from observability.config import setup_observability
from observability.middleware import add_observability_middleware
from middleware.cors import configure_cors
from middleware.error_handler import ErrorHandlerMiddleware
from middleware.auth import AuthMiddleware
from middleware.validation import VALIDATION_ERROR_STATUS, validation_error_callback
from services.hal import create_hal_formatter
from services.mongodb import MongoDBService
from services.auth import AuthService
from services.health import HealthCheckService

logger = logging.getLogger(__name__)

SERVICE_VERSION = "1.0.0"

# OpenAPI info
info = Info(
    title="Assembleias API",
    version=SERVICE_VERSION,
    description="Condominium assembly governance and voting API with HAL responses"
)

# API tags for organization
health_tag = Tag(name="Health", description="Service and store health")


def load_config() -> Dict[str, Any]:
    """Read configuration from the environment."""
    environment = os.getenv('ENVIRONMENT', 'development')
    return {
        'ENVIRONMENT': environment,
        'DEBUG': environment == 'development',

        # Database configuration
        'MONGODB_URI': os.getenv('MONGODB_URI', 'mongodb://localhost:27017/assembleias_dev'),
        'MONGODB_DATABASE': os.getenv('MONGODB_DATABASE', 'assembleias_dev'),
        'MONGODB_CREATE_INDEXES': os.getenv('MONGODB_CREATE_INDEXES', 'true').lower() == 'true',

        # Token verification (tokens are issued by the identity provider)
        'JWT_SECRET': os.getenv('JWT_SECRET'),
        'JWT_PUBLIC_KEY': os.getenv('JWT_PUBLIC_KEY'),
        'JWT_ALGORITHM': os.getenv('JWT_ALGORITHM'),
        'JWT_AUDIENCE': os.getenv('JWT_AUDIENCE', 'authenticated'),

        # Feature flags
        'OTEL_ENABLED': os.getenv('OTEL_ENABLED', 'true').lower() == 'true',

        # API configuration
        'BASE_URL': os.getenv('BASE_URL', 'http://localhost:5000'),
        'CORS_ORIGINS': os.getenv('CORS_ORIGINS'),
    }


def create_app(
    config_overrides: Optional[Dict[str, Any]] = None,
    mongodb_service: Optional[MongoDBService] = None
) -> OpenAPI:
    """
    Create and configure the Flask application.

    Args:
        config_overrides: Values replacing environment configuration
        mongodb_service: Store to use instead of one built from MONGODB_URI

    Returns:
        Configured Flask application
    """
    setup_observability()

    app = OpenAPI(
        __name__,
        info=info,
        validation_error_status=VALIDATION_ERROR_STATUS,
        validation_error_callback=validation_error_callback
    )
    app.config.update(load_config())
    app.config.update(config_overrides or {})

    # Request spans and logs first, so every other hook runs inside them
    add_observability_middleware(app)

    # Initialize services
    if mongodb_service is None:
        mongodb_service = MongoDBService(app.config['MONGODB_URI'], app.config['MONGODB_DATABASE'])
    if app.config['MONGODB_CREATE_INDEXES']:
        mongodb_service.create_indexes()

    auth_service = AuthService(
        secret=app.config['JWT_SECRET'],
        public_key=app.config['JWT_PUBLIC_KEY'],
        algorithm=app.config['JWT_ALGORITHM'],
        audience=app.config['JWT_AUDIENCE']
    )
    health_service = HealthCheckService(mongodb_service, SERVICE_VERSION)

    # Initialize middleware
    hal_formatter = create_hal_formatter(app.config['BASE_URL'])
    auth_middleware = AuthMiddleware(auth_service)
    ErrorHandlerMiddleware(app, hal_formatter)

    cors_origins = app.config.get('CORS_ORIGINS')
    configure_cors(
        app,
        allowed_origins=[origin.strip() for origin in cors_origins.split(',')] if cors_origins else None,
        allow_credentials=True
    )

    # Make services available to routes
    app.mongodb_service = mongodb_service
    app.auth_service = auth_service
    app.health_service = health_service
    app.hal_formatter = hal_formatter
    app.auth_middleware = auth_middleware

    # Register routes
    from routes.assemblies import assemblies_bp
    from routes.agenda_items import agenda_items_bp

    app.register_api(assemblies_bp)
    app.register_api(agenda_items_bp)

    @app.get('/api/healthz', tags=[health_tag], summary="Health check")
    def health_check():
        """Health check endpoint with store connectivity."""
        health_data = health_service.get_health()
        status_code = 200 if health_data["status"] == "healthy" else 503

        health_response = hal_formatter.builder.build_resource_response(
            health_data,
            {'self': hal_formatter.builder.link_builder.build_self_link('/api/healthz')}
        )
        return jsonify(health_response), status_code

    logger.info(
        "Application created",
        extra={"environment": app.config['ENVIRONMENT'], "database": mongodb_service.database_name}
    )
    return app


if __name__ == '__main__':
    # Development server
    application = create_app()
    application.run(
        host='0.0.0.0',
        port=int(os.getenv('PORT', 5000)),
        debug=application.config['DEBUG']
    )
