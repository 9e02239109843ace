# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for middleware, HAL formatting, configuration and logging.
"""

import json
import logging
import sys
import pytest
import fakeredis
from unittest.mock import Mock
from flask import Flask, g, jsonify
from opentelemetry import trace
from opentelemetry.trace import NonRecordingSpan, SpanContext, TraceFlags
from pydantic import BaseModel
from pymongo.errors import ServerSelectionTimeoutError

from careconnect.config import load_config
from careconnect.middleware.auth import AuthMiddleware, current_principal, optional_auth, require_auth
from careconnect.middleware.error_handler import (
    AuthenticationException, ConflictException, NotFoundException, PROBLEM_CONTENT_TYPE,
    ensure_allowed, raise_for_denial, register_error_handlers
)
from careconnect.middleware.validation import validate_json, validate_query
from careconnect.domain.authorization import AuthorizationResult
from careconnect.models.entities import User
from careconnect.models.enums import DenyReason, TaskStatus
from careconnect.observability.config import StructuredFormatter
from careconnect.services.auth import AuthService
from careconnect.services.hal import HalFormatter
from careconnect.services.redis import RedisService


class SampleModel(BaseModel):
    title: str
    count: int


@pytest.fixture
def auth_service(jwt_keys):
    return AuthService(jwt_keys[0], jwt_keys[1], bcrypt_rounds=4)


@pytest.fixture
def redis_service():
    return RedisService(client=fakeredis.FakeRedis(decode_responses=True))


@pytest.fixture
def mini_app(auth_service, redis_service):
    """Bare Flask app with error handlers and auth middleware."""
    app = Flask(__name__)
    app.config['ENVIRONMENT'] = 'test'
    app.auth_middleware = AuthMiddleware(auth_service, redis_service)
    register_error_handlers(app, HalFormatter("http://testserver"))

    @app.post('/validate')
    @validate_json(SampleModel)
    def validate_route(body):
        return jsonify({"title": body.title, "count": body.count})

    @app.get('/query')
    @validate_query(SampleModel)
    def query_route(params):
        return jsonify({"count": params.count})

    @app.get('/protected')
    @require_auth
    def protected():
        return jsonify({"user_id": current_principal().user_id, "role": current_principal().role})

    @app.get('/optional')
    @optional_auth
    def optional():
        principal = current_principal()
        return jsonify({"anonymous": principal is None})

    @app.get('/missing')
    def missing():
        raise NotFoundException("Cause abc not found")

    @app.get('/conflict')
    def conflict():
        raise ConflictException("Username already exists")

    @app.get('/database')
    def database():
        raise ServerSelectionTimeoutError("localhost:27017: connection refused")

    @app.get('/boom')
    def boom():
        raise RuntimeError("database exploded")

    return app


def _user(role="volunteer"):
    return User(username="vol_one", password_hash="x", role=role, name="Vera")


class TestValidation:
    """Test request validation decorators."""

    def test_valid_body(self, mini_app):
        response = mini_app.test_client().post('/validate', json={"title": "Hi", "count": 2})
        assert response.status_code == 200
        assert response.get_json() == {"title": "Hi", "count": 2}

    def test_invalid_body_lists_fields(self, mini_app):
        response = mini_app.test_client().post('/validate', json={"title": "Hi", "count": "many"})

        assert response.status_code == 400
        assert response.content_type == PROBLEM_CONTENT_TYPE
        body = response.get_json()
        assert body["type"].endswith("/validation-error")
        assert body["validation_errors"][0]["field"] == "count"

    def test_non_json_body(self, mini_app):
        response = mini_app.test_client().post('/validate', data="plain", content_type="text/plain")
        assert response.status_code == 400

    def test_query_params(self, mini_app):
        response = mini_app.test_client().get('/query?title=x&count=3')
        assert response.get_json() == {"count": 3}


class TestErrorHandlers:
    """Test RFC 7807 problem responses."""

    def test_not_found(self, mini_app):
        response = mini_app.test_client().get('/missing')
        body = response.get_json()
        assert response.status_code == 404
        assert body["title"] == "Resource Not Found"
        assert body["instance"] == "/missing"

    def test_conflict(self, mini_app):
        assert mini_app.test_client().get('/conflict').status_code == 409

    def test_unexpected_error_is_generic(self, mini_app):
        response = mini_app.test_client().get('/boom')
        assert response.status_code == 500
        assert "exploded" not in response.get_json()["detail"]

    def test_database_outage_is_503(self, mini_app):
        response = mini_app.test_client().get('/database')
        body = response.get_json()

        assert response.status_code == 503
        assert response.content_type == PROBLEM_CONTENT_TYPE
        assert body["type"].endswith("/service-unavailable")
        assert body["title"] == "Service Unavailable"
        assert "27017" not in body["detail"]

    def test_unknown_route(self, mini_app):
        response = mini_app.test_client().get('/nowhere')
        assert response.status_code == 404
        assert response.content_type == PROBLEM_CONTENT_TYPE

    def test_denial_mapping(self):
        with pytest.raises(AuthenticationException):
            raise_for_denial(DenyReason.AUTHENTICATION_REQUIRED)

        for reason in (DenyReason.NOT_OWNER, DenyReason.ROLE_NOT_PERMITTED, DenyReason.INVALID_TRANSITION):
            with pytest.raises(Exception) as exc_info:
                raise_for_denial(reason)
            assert exc_info.value.status_code == 403
            assert "owner" not in exc_info.value.message.lower()

        ensure_allowed(AuthorizationResult(allowed=True))


class TestAuthMiddleware:
    """Test token handling."""

    def test_valid_token(self, mini_app, auth_service):
        tokens = auth_service.generate_tokens(_user("ngo"))
        response = mini_app.test_client().get(
            '/protected', headers={"Authorization": f"Bearer {tokens['access_token']}"}
        )
        assert response.status_code == 200
        assert response.get_json()["role"] == "ngo"

    def test_missing_token(self, mini_app):
        response = mini_app.test_client().get('/protected')
        assert response.status_code == 401
        assert "login" in response.get_json()["_links"]

    def test_garbage_token(self, mini_app):
        response = mini_app.test_client().get('/protected', headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401

    def test_refresh_token_is_not_access(self, mini_app, auth_service):
        tokens = auth_service.generate_tokens(_user())
        response = mini_app.test_client().get(
            '/protected', headers={"Authorization": f"Bearer {tokens['refresh_token']}"}
        )
        assert response.status_code == 401

    def test_blocked_token(self, mini_app, auth_service, redis_service):
        tokens = auth_service.generate_tokens(_user())
        payload = auth_service.validate_token(tokens["access_token"])
        redis_service.block_token(payload["jti"], auth_service.token_ttl(payload))

        response = mini_app.test_client().get(
            '/protected', headers={"Authorization": f"Bearer {tokens['access_token']}"}
        )
        assert response.status_code == 401

    def test_optional_auth_anonymous(self, mini_app):
        assert mini_app.test_client().get('/optional').get_json() == {"anonymous": True}

    def test_foreign_issuer_rejected(self, mini_app, jwt_keys):
        foreign = AuthService(jwt_keys[0], jwt_keys[1], issuer="someone-else", bcrypt_rounds=4)
        tokens = foreign.generate_tokens(_user())
        response = mini_app.test_client().get(
            '/protected', headers={"Authorization": f"Bearer {tokens['access_token']}"}
        )
        assert response.status_code == 401


class TestRedisService:
    """Test the blocklist store."""

    def test_block_and_check(self, redis_service):
        assert not redis_service.is_token_blocked("abc")
        assert redis_service.block_token("abc", 60)
        assert redis_service.is_token_blocked("abc")

    def test_fails_open_without_client(self):
        service = RedisService(client=Mock())
        service.client = None
        assert service.is_token_blocked("abc") is False
        assert service.block_token("abc", 60) is False
        assert service.health_check()["status"] == "unavailable"


class TestHalAffordances:
    """Test conditional action links."""

    def test_cause_links_for_anonymous(self, sample_cause):
        links = HalFormatter("http://testserver").format_cause(sample_cause, None)["_links"]
        assert set(links) == {"self", "collection", "ngo"}

    def test_cause_links_for_owner(self, sample_cause, ngo_principal):
        links = HalFormatter("http://testserver").format_cause(sample_cause, ngo_principal)["_links"]
        assert {"edit", "delete"} <= set(links)
        assert "apply" not in links
        assert links["edit"]["method"] == "PATCH"

    def test_cause_links_for_volunteer(self, sample_cause, volunteer_principal):
        links = HalFormatter("http://testserver").format_cause(sample_cause, volunteer_principal)["_links"]
        assert {"apply", "donate"} <= set(links)
        assert "edit" not in links

    def test_task_links_follow_state(self, make_task, ngo_principal, volunteer_principal):
        formatter = HalFormatter("http://testserver")
        pending = make_task()

        ngo_links = formatter.format_task(pending, "ngo-1", ngo_principal)["_links"]
        assert {"consider", "accept", "decline"} <= set(ngo_links)
        assert "approve" not in ngo_links

        vol_links = formatter.format_task(pending, "ngo-1", volunteer_principal)["_links"]
        assert "opt-out" in vol_links
        assert "accept" not in vol_links

        completed = make_task(TaskStatus.COMPLETED)
        assert "approve" in formatter.format_task(completed, "ngo-1", ngo_principal)["_links"]
        assert "certificate" in formatter.format_task(completed, "ngo-1", volunteer_principal)["_links"]

    def test_link_hrefs_use_base_url(self, sample_cause):
        links = HalFormatter("http://testserver/").format_cause(sample_cause, None)["_links"]
        assert links["self"]["href"] == f"http://testserver/api/causes/{sample_cause.id}"


class TestConfiguration:
    """Test environment configuration."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("JWT_ACCESS_TOKEN_EXPIRES", raising=False)
        monkeypatch.delenv("CORS_ORIGINS", raising=False)
        config = load_config()
        assert config["JWT_ACCESS_TOKEN_EXPIRES"] == 3600
        assert config["CORS_ORIGINS"] == "*"

    def test_environment_and_overrides(self, monkeypatch):
        monkeypatch.setenv("JWT_PUBLIC_KEY", "line1\\nline2")
        monkeypatch.setenv("SEED_DEMO_DATA", "true")
        config = load_config({"BASE_URL": "https://api.example.org"})

        assert config["JWT_PUBLIC_KEY"] == "line1\nline2"
        assert config["SEED_DEMO_DATA"] is True
        assert config["BASE_URL"] == "https://api.example.org"


class TestStructuredLogging:
    """Test the JSON log formatter."""

    def test_extra_fields_are_merged(self):
        record = logging.LogRecord("careconnect.test", logging.INFO, __file__, 1, "Task updated", None, None)
        record.extra_fields = {"task_id": "t1", "to_status": "approved"}

        line = json.loads(StructuredFormatter().format(record))

        assert line["message"] == "Task updated"
        assert line["level"] == "info"
        assert line["logger"] == "careconnect.test"
        assert line["task_id"] == "t1"
        assert line["to_status"] == "approved"

    def test_exception_is_rendered(self):
        try:
            raise ValueError("bad geocode")
        except ValueError:
            exc_info = sys.exc_info()
        record = logging.LogRecord("careconnect.test", logging.ERROR, __file__, 1, "Geocoding failed", None, exc_info)

        line = json.loads(StructuredFormatter().format(record))

        assert line["level"] == "error"
        assert "ValueError: bad geocode" in line["exception"]

    def test_active_span_is_correlated(self):
        span_context = SpanContext(
            trace_id=0x1234, span_id=0x5678, is_remote=False, trace_flags=TraceFlags(TraceFlags.SAMPLED)
        )
        record = logging.LogRecord("careconnect.test", logging.INFO, __file__, 1, "Cause created", None, None)

        with trace.use_span(NonRecordingSpan(span_context)):
            line = json.loads(StructuredFormatter().format(record))

        assert line["trace_id"] == format(0x1234, "032x")
        assert line["span_id"] == format(0x5678, "016x")

    def test_no_span_no_trace_ids(self):
        record = logging.LogRecord("careconnect.test", logging.INFO, __file__, 1, "Started", None, None)

        line = json.loads(StructuredFormatter().format(record))

        assert "trace_id" not in line
        assert "timestamp" in line
