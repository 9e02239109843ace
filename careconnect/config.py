# SPDX-License-Identifier: Apache-2.0

"""
Application configuration loaded from environment variables.
"""

import os
from typing import Any, Dict, Optional


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ('1', 'true', 'yes')


def _env_key(name: str) -> Optional[str]:
    value = os.getenv(name)
    if not value:
        return None
    return value.replace('\\n', '\n')


def load_config(overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Build the Flask configuration mapping.

    Args:
        overrides: Values that take precedence over the environment

    Returns:
        Configuration dictionary
    """
    config = {
        # Environment configuration
        'ENVIRONMENT': os.getenv('ENVIRONMENT', 'development'),
        'DEBUG': _env_bool('DEBUG', 'false'),

        # Database configuration
        'MONGODB_URI': os.getenv('MONGODB_URI', 'mongodb://localhost:27017/careconnect'),
        'MONGODB_DATABASE': os.getenv('MONGODB_DATABASE', 'careconnect'),
        'REDIS_URL': os.getenv('REDIS_URL', 'redis://localhost:6379/0'),

        # Security configuration
        'JWT_PRIVATE_KEY': _env_key('JWT_PRIVATE_KEY'),
        'JWT_PUBLIC_KEY': _env_key('JWT_PUBLIC_KEY'),
        'JWT_ACCESS_TOKEN_EXPIRES': int(os.getenv('JWT_ACCESS_TOKEN_EXPIRES', '3600')),
        'JWT_REFRESH_TOKEN_EXPIRES': int(os.getenv('JWT_REFRESH_TOKEN_EXPIRES', '604800')),
        'JWT_ISSUER': os.getenv('JWT_ISSUER', 'careconnect-api'),
        'BCRYPT_ROUNDS': int(os.getenv('BCRYPT_ROUNDS', '12')),

        # API configuration
        'BASE_URL': os.getenv('BASE_URL', 'http://localhost:5000'),
        'CORS_ORIGINS': os.getenv('CORS_ORIGINS', '*'),

        # Feature flags
        'SEED_DEMO_DATA': _env_bool('SEED_DEMO_DATA', 'false'),
        'CREATE_INDEXES': _env_bool('CREATE_INDEXES', 'true'),

        # Observability
        'OTEL_ENABLED': _env_bool('OTEL_ENABLED', 'true'),
        'OTEL_SERVICE_NAME': os.getenv('OTEL_SERVICE_NAME', 'careconnect-api'),
        'OTEL_EXPORTER_OTLP_ENDPOINT': os.getenv('OTEL_EXPORTER_OTLP_ENDPOINT'),
        'OTEL_TRACES_SAMPLER_ARG': float(os.getenv('OTEL_TRACES_SAMPLER_ARG', '1.0')),
        'LOG_LEVEL': os.getenv('LOG_LEVEL', 'INFO').upper(),
        'LOG_FORMAT': os.getenv('LOG_FORMAT', 'json').lower(),
    }
    config.update(overrides or {})
    return config
