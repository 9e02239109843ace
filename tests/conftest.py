# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Pytest configuration and fixtures.

The application runs against mongomock and fakeredis, injected through
the app factory, so no external services are needed.
"""

import os
import pytest
import fakeredis
import mongomock
from datetime import datetime, timedelta, timezone

from careconnect.app import create_app
from careconnect.models.entities import Cause, NgoPrincipal, Task, VolunteerPrincipal
from careconnect.models.enums import TaskStatus
from careconnect.services.auth import generate_dev_key_pair

# Set test environment
os.environ['ENVIRONMENT'] = 'test'


@pytest.fixture(scope="session")
def jwt_keys():
    """RSA key pair shared by the whole test session."""
    return generate_dev_key_pair()


@pytest.fixture
def test_config(jwt_keys):
    private_key, public_key = jwt_keys
    return {
        'ENVIRONMENT': 'test',
        'MONGODB_DATABASE': 'careconnect_test',
        'JWT_PRIVATE_KEY': private_key,
        'JWT_PUBLIC_KEY': public_key,
        'BCRYPT_ROUNDS': 4,
        'BASE_URL': 'http://testserver',
        'OTEL_ENABLED': False,
        'LOG_LEVEL': 'WARNING',
        'SEED_DEMO_DATA': False,
    }


@pytest.fixture
def mongo_client():
    return mongomock.MongoClient()


@pytest.fixture
def redis_client():
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture
def app(test_config, mongo_client, redis_client):
    """Application wired to in-memory MongoDB and Redis."""
    application = create_app(test_config, mongo_client=mongo_client, redis_client=redis_client)
    application.config['TESTING'] = True
    return application


@pytest.fixture
def client(app):
    with app.test_client() as test_client:
        yield test_client


@pytest.fixture
def db(app):
    """The underlying mongomock database."""
    return app.mongodb_service.database


@pytest.fixture
def register_user(client):
    """Register an account over HTTP and return its id and auth headers."""
    def _register(username: str, role: str, name: str = None, password: str = "secret-pass-1"):
        response = client.post('/api/auth/register', json={
            "username": username,
            "password": password,
            "role": role,
            "name": name or username.title()
        })
        assert response.status_code == 201, response.get_json()
        body = response.get_json()
        return {
            "id": body["user"]["id"],
            "headers": {"Authorization": f"Bearer {body['access_token']}"},
            "tokens": body
        }
    return _register


@pytest.fixture
def ngo(register_user):
    return register_user("ngo_one", "ngo", "Helping Hands")


@pytest.fixture
def other_ngo(register_user):
    return register_user("ngo_two", "ngo", "Other Org")


@pytest.fixture
def volunteer(register_user):
    return register_user("vol_one", "volunteer", "Vera Volunteer")


@pytest.fixture
def other_volunteer(register_user):
    return register_user("vol_two", "volunteer", "Victor Volunteer")


@pytest.fixture
def create_cause(client):
    """Create a cause over HTTP as the given NGO."""
    def _create(owner, **overrides):
        payload = {
            "title": "Park Cleanup",
            "description": "Collect litter in the city park.",
            "category": "Environment",
            "location": "Springfield",
            "urgency": 5,
        }
        payload.update(overrides)
        response = client.post('/api/causes', json=payload, headers=owner["headers"])
        assert response.status_code == 201, response.get_json()
        return response.get_json()
    return _create


@pytest.fixture
def apply_to(client):
    """Apply to a cause over HTTP as the given volunteer."""
    def _apply(volunteer, cause_id, days: int = 2):
        start = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)
        response = client.post(f'/api/causes/{cause_id}/apply', json={
            "start_date": start.isoformat(),
            "end_date": (start + timedelta(days=days)).isoformat()
        }, headers=volunteer["headers"])
        assert response.status_code == 201, response.get_json()
        return response.get_json()
    return _apply


# Pure domain fixtures

@pytest.fixture
def ngo_principal():
    return NgoPrincipal(user_id="ngo-1", username="ngo_one", name="Helping Hands")


@pytest.fixture
def other_ngo_principal():
    return NgoPrincipal(user_id="ngo-2", username="ngo_two", name="Other Org")


@pytest.fixture
def volunteer_principal():
    return VolunteerPrincipal(user_id="vol-1", username="vol_one", name="Vera Volunteer")


@pytest.fixture
def other_volunteer_principal():
    return VolunteerPrincipal(user_id="vol-2", username="vol_two", name="Victor Volunteer")


@pytest.fixture
def sample_cause():
    return Cause(
        ngo_id="ngo-1",
        title="Park Cleanup",
        description="Collect litter in the city park.",
        category="Environment",
        location="Springfield"
    )


@pytest.fixture
def make_task(sample_cause):
    def _make(status=TaskStatus.PENDING, approved=False, volunteer_id="vol-1", **kwargs):
        return Task(
            cause_id=sample_cause.id,
            volunteer_id=volunteer_id,
            status=status,
            approved=approved,
            **kwargs
        )
    return _make
