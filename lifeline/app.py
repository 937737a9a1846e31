"""
Lifeline API - Flask Application Entry Point

This module builds the Flask application with OpenAPI 3.0 support,
configures middleware, and wires the request lifecycle services to their
storage backend.
"""

import os
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from flask import jsonify
from flask_openapi3 import OpenAPI, Info

from .observability.config import setup_observability
from .observability.middleware import add_observability_middleware
from .middleware.auth import AuthMiddleware
from .middleware.error_handler import ErrorHandlerMiddleware
from .services.dashboard import DashboardAggregator, RECENT_ACTIVITY_LIMIT
from .services.lifecycle import (
    DEFAULT_PAGE_SIZE,
    LifecycleController,
    MAX_PAGE_SIZE,
    PUBLIC_LISTING_LIMIT
)
from .services.matching import MatchingEngine
from .services.memory import InMemoryRequestStore, InMemoryUserDirectory
from .services.mongodb import MongoDBService, MongoRequestStore, MongoUserDirectory
from .services.store import RequestStore, UserDirectory
from . import __version__

info = Info(
    title="Lifeline API",
    version=__version__,
    description="Community service requests: blood donation, elder support and civic complaints"
)


def load_config() -> Dict[str, Any]:
    """Read application configuration from the environment."""
    environment = os.getenv('ENVIRONMENT', 'development')
    return {
        'ENVIRONMENT': environment,
        'DEBUG': environment == 'development',
        'STORE_BACKEND': os.getenv('STORE_BACKEND', 'mongodb'),
        'MONGODB_URI': os.getenv('MONGODB_URI', 'mongodb://localhost:27017/lifeline_dev'),
        'MONGODB_DATABASE': os.getenv('MONGODB_DATABASE', 'lifeline_dev'),
        'JWT_SECRET_KEY': os.getenv('JWT_SECRET', 'dev-secret-key'),
        'JWT_ALGORITHM': os.getenv('JWT_ALGORITHM', 'HS256'),
        'DEFAULT_PAGE_SIZE': int(os.getenv('DEFAULT_PAGE_SIZE', DEFAULT_PAGE_SIZE)),
        'MAX_PAGE_SIZE': int(os.getenv('MAX_PAGE_SIZE', MAX_PAGE_SIZE)),
        'RECENT_ACTIVITY_LIMIT': int(os.getenv('RECENT_ACTIVITY_LIMIT', RECENT_ACTIVITY_LIMIT)),
        'PUBLIC_LISTING_LIMIT': int(os.getenv('PUBLIC_LISTING_LIMIT', PUBLIC_LISTING_LIMIT)),
        'OTEL_ENABLED': os.getenv('OTEL_ENABLED', 'true').lower() == 'true',
        'OTEL_EXPORTER_OTLP_ENDPOINT': os.getenv('OTEL_EXPORTER_OTLP_ENDPOINT'),
        'SERVICE_VERSION': os.getenv('SERVICE_VERSION', __version__),
    }


def create_storage(config: Dict[str, Any]):
    """Build the request store and user directory for the configured backend."""
    backend = config['STORE_BACKEND']

    if backend == 'memory':
        return InMemoryRequestStore(), InMemoryUserDirectory()

    if backend == 'mongodb':
        mongodb_service = MongoDBService(config['MONGODB_URI'], config['MONGODB_DATABASE'])
        mongodb_service.create_indexes()
        return MongoRequestStore(mongodb_service), MongoUserDirectory(mongodb_service)

    raise ValueError(f"Unknown STORE_BACKEND: {backend}")


def create_app(
    config_overrides: Optional[Dict[str, Any]] = None,
    store: Optional[RequestStore] = None,
    directory: Optional[UserDirectory] = None
) -> OpenAPI:
    """
    Create and configure the Flask application.

    Args:
        config_overrides: Values replacing the environment configuration
        store: Request store to use instead of the configured backend
        directory: User directory to use instead of the configured backend

    Returns:
        Configured OpenAPI (Flask) application
    """
    config = load_config()
    config.update(config_overrides or {})

    setup_observability(
        environment=config['ENVIRONMENT'],
        otel_enabled=config['OTEL_ENABLED'],
        service_version=config['SERVICE_VERSION'],
        otlp_endpoint=config['OTEL_EXPORTER_OTLP_ENDPOINT']
    )

    app = OpenAPI(__name__, info=info)
    app.config.update(config)

    if config['OTEL_ENABLED']:
        add_observability_middleware(app)

    if store is None or directory is None:
        default_store, default_directory = create_storage(config)
        store = store or default_store
        directory = directory or default_directory

    matching = MatchingEngine(store)

    # Make services available to routes
    app.request_store = store
    app.lifecycle = LifecycleController(
        store,
        directory,
        matching=matching,
        default_page_size=config['DEFAULT_PAGE_SIZE'],
        max_page_size=config['MAX_PAGE_SIZE'],
        public_listing_limit=config['PUBLIC_LISTING_LIMIT']
    )
    app.dashboard = DashboardAggregator(store, directory, recent_limit=config['RECENT_ACTIVITY_LIMIT'])
    app.auth_middleware = AuthMiddleware(config['JWT_SECRET_KEY'], config['JWT_ALGORITHM'])
    app.error_handler = ErrorHandlerMiddleware(app)

    from .routes.requests import requests_bp
    app.register_blueprint(requests_bp)

    @app.route('/api/healthz')
    def health_check():
        """Health check endpoint reporting the storage backend status."""
        storage = app.request_store.health_check()
        healthy = storage.get('status') == 'healthy'

        return jsonify({
            "status": "healthy" if healthy else "unhealthy",
            "service": "lifeline-api",
            "version": app.config['SERVICE_VERSION'],
            "environment": app.config['ENVIRONMENT'],
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "storage": storage
        }), 200 if healthy else 503

    return app


if __name__ == '__main__':
    # Development server
    app = create_app()
    app.run(
        host='0.0.0.0',
        port=int(os.getenv('PORT', 5000)),
        debug=app.config['DEBUG']
    )
