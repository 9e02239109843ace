# SPDX-License-Identifier: Apache-2.0

"""
CareConnect API - Flask application factory.

Builds the service graph, registers middleware and error handlers, and
mounts the route blueprints. MongoDB and Redis clients and the geocoder
can be injected, which is how the test suite runs against in-memory stores.
"""

import os
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from flask import Flask, jsonify, request

from . import __version__
from .config import load_config
from .middleware.auth import AuthMiddleware
from .middleware.error_handler import register_error_handlers
from .observability.config import setup_observability
from .observability.middleware import add_observability_middleware
from .routes import ALL_BLUEPRINTS
from .services.audit import AuditService
from .services.auth import AuthService
from .services.causes import CauseService
from .services.donations import DonationService
from .services.geocoding import Geocoder, NullGeocoder
from .services.hal import HalFormatter
from .services.impact import ImpactService
from .services.mongodb import MongoDBService
from .services.posts import PostService
from .services.redis import RedisService
from .services.seed import seed_demo_data
from .services.tasks import TaskService
from .services.users import UserService

logger = logging.getLogger(__name__)


def configure_cors(app: Flask) -> None:
    """Answer cross-origin requests for the configured origins."""
    origins = [o.strip() for o in app.config['CORS_ORIGINS'].split(',') if o.strip()]

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get('Origin')
        if not origin:
            return response
        if '*' in origins:
            response.headers['Access-Control-Allow-Origin'] = '*'
        elif origin in origins:
            response.headers['Access-Control-Allow-Origin'] = origin
            response.headers['Vary'] = 'Origin'
        else:
            return response
        response.headers['Access-Control-Allow-Headers'] = 'Authorization, Content-Type, X-Request-Id'
        response.headers['Access-Control-Allow-Methods'] = 'GET, POST, PATCH, DELETE, OPTIONS'
        response.headers['Access-Control-Expose-Headers'] = 'X-Trace-Id, X-Request-Id'
        return response


def create_app(config: Optional[Dict[str, Any]] = None, mongo_client=None, redis_client=None,
               geocoder: Optional[Geocoder] = None) -> Flask:
    """
    Create the CareConnect Flask application.

    Args:
        config: Configuration overrides applied on top of the environment
        mongo_client: Pre-built MongoDB client
        redis_client: Pre-built Redis client
        geocoder: Location geocoder; defaults to one that resolves nothing

    Returns:
        Configured Flask application
    """
    app = Flask(__name__)
    app.config.update(load_config(config))

    setup_observability(app.config)
    add_observability_middleware(app)
    configure_cors(app)

    # Infrastructure services
    mongodb_service = MongoDBService(
        app.config['MONGODB_URI'], app.config['MONGODB_DATABASE'], client=mongo_client
    )
    redis_service = RedisService(app.config['REDIS_URL'], client=redis_client)
    auth_service = AuthService(
        app.config['JWT_PRIVATE_KEY'],
        app.config['JWT_PUBLIC_KEY'],
        access_token_expires=app.config['JWT_ACCESS_TOKEN_EXPIRES'],
        refresh_token_expires=app.config['JWT_REFRESH_TOKEN_EXPIRES'],
        issuer=app.config['JWT_ISSUER'],
        bcrypt_rounds=app.config['BCRYPT_ROUNDS']
    )
    audit_service = AuditService(mongodb_service)
    hal_formatter = HalFormatter(app.config['BASE_URL'])

    # Domain services
    user_service = UserService(mongodb_service, auth_service)
    cause_service = CauseService(mongodb_service, audit_service, geocoder or NullGeocoder())
    task_service = TaskService(mongodb_service, audit_service, cause_service, user_service)

    # Make services available to routes
    app.mongodb_service = mongodb_service
    app.redis_service = redis_service
    app.auth_service = auth_service
    app.audit_service = audit_service
    app.hal_formatter = hal_formatter
    app.auth_middleware = AuthMiddleware(auth_service, redis_service)
    app.user_service = user_service
    app.cause_service = cause_service
    app.task_service = task_service
    app.donation_service = DonationService(mongodb_service, cause_service)
    app.impact_service = ImpactService(mongodb_service, cause_service)
    app.post_service = PostService(mongodb_service, user_service)

    register_error_handlers(app, hal_formatter)
    for blueprint in ALL_BLUEPRINTS:
        app.register_blueprint(blueprint)

    @app.route('/api/healthz')
    def health_check():
        """Dependency health. MongoDB being down makes the service unhealthy."""
        mongodb = mongodb_service.health_check()
        redis_health = redis_service.health_check()

        healthy = mongodb['status'] == 'healthy'
        status = 'healthy' if healthy and redis_health['status'] == 'healthy' else 'degraded'
        if not healthy:
            status = 'unhealthy'

        body = {
            'status': status,
            'service': app.config['OTEL_SERVICE_NAME'],
            'version': __version__,
            'environment': app.config['ENVIRONMENT'],
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'dependencies': {'mongodb': mongodb, 'redis': redis_health}
        }
        return jsonify(hal_formatter.format_resource(body, '/api/healthz')), 200 if healthy else 503

    if app.config['CREATE_INDEXES']:
        mongodb_service.create_indexes()

    if app.config['SEED_DEMO_DATA']:
        seed_demo_data(mongodb_service, auth_service)

    logger.info(
        "CareConnect API initialized",
        extra={"extra_fields": {"environment": app.config['ENVIRONMENT'], "version": __version__}}
    )
    return app


if __name__ == '__main__':
    application = create_app()
    application.run(
        host='0.0.0.0',
        port=int(os.getenv('PORT', 5000)),
        debug=application.config['DEBUG']
    )
