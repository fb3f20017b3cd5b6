# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Pytest configuration and fixtures.
"""

import os
import jwt
import pytest
import mongomock
from datetime import datetime, timedelta, timezone
from bson import ObjectId

# Set test environment
os.environ['ENVIRONMENT'] = 'test'
os.environ['OTEL_ENABLED'] = 'false'
os.environ['MONGODB_DATABASE'] = 'assembleias_test'

from app import create_app
from models.entities import UserContext
from services.mongodb import MongoDBService
from services.assemblies import AssemblyRegistry

TEST_JWT_SECRET = "test-secret-key-for-assembly-tokens"
TEST_CONDOMINIUM_ID = "condo-residencial-aurora"


@pytest.fixture
def mongodb_service():
    """MongoDB service backed by an in-memory mongomock client, with indexes."""
    service = MongoDBService(database_name='assembleias_test', client=mongomock.MongoClient())
    service.create_indexes()
    yield service
    service.close_connection()


@pytest.fixture
def manager_context():
    """Sindico of the test condominium."""
    return UserContext(
        user_id=str(ObjectId()),
        condominium_id=TEST_CONDOMINIUM_ID,
        role="sindico",
        permissions=["assembly:manage"]
    )


@pytest.fixture
def resident_context():
    """Resident of the test condominium without management rights."""
    return UserContext(
        user_id=str(ObjectId()),
        condominium_id=TEST_CONDOMINIUM_ID,
        role="morador"
    )


@pytest.fixture
def registry(mongodb_service, manager_context):
    """Assembly registry acting as the sindico."""
    return AssemblyRegistry(mongodb_service, manager_context)


@pytest.fixture
def resident_registry(mongodb_service, resident_context):
    """Assembly registry acting as a resident."""
    return AssemblyRegistry(mongodb_service, resident_context)


@pytest.fixture
def scheduled_at():
    return datetime(2025, 3, 15, 19, 0)


def make_token(user_id, condominium_id=TEST_CONDOMINIUM_ID, role=None, permissions=None,
               secret=TEST_JWT_SECRET, expires_in=timedelta(hours=1), **claims):
    """Sign a token shaped like the identity provider's."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "aud": "authenticated",
        "iat": now,
        "exp": now + expires_in
    }
    if condominium_id is not None:
        payload["condominium_id"] = condominium_id
    if role:
        payload["role"] = role
    if permissions:
        payload["permissions"] = permissions
    payload.update(claims)
    return jwt.encode(payload, secret, algorithm="HS256")


@pytest.fixture
def app(mongodb_service):
    """Flask application wired to the in-memory store."""
    app = create_app(
        config_overrides={
            'TESTING': True,
            'JWT_SECRET': TEST_JWT_SECRET,
            'JWT_PUBLIC_KEY': None,
            'JWT_ALGORITHM': 'HS256',
            'JWT_AUDIENCE': 'authenticated',
            'BASE_URL': 'http://localhost:5000',
            'MONGODB_CREATE_INDEXES': False
        },
        mongodb_service=mongodb_service
    )
    return app


@pytest.fixture
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture
def manager_headers(manager_context):
    token = make_token(manager_context.user_id, role="sindico")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def resident_headers(resident_context):
    token = make_token(resident_context.user_id, role="morador")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def token_factory():
    """Callable signing identity provider tokens with the test secret."""
    return make_token
