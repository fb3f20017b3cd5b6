# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Fixtures for acceptance and integration tests.

The whole application runs in-process against an in-memory store; tests
talk to it over the Flask test client with identity provider style tokens.
"""

import os
import jwt
import pytest
import mongomock
from datetime import datetime, timedelta, timezone

os.environ['ENVIRONMENT'] = 'test'
os.environ['OTEL_ENABLED'] = 'false'

from app import create_app
from services.mongodb import MongoDBService

JWT_SECRET = "acceptance-secret-key-for-assembly-tokens"


@pytest.fixture
def test_mongodb():
    service = MongoDBService(database_name='assembleias_acceptance', client=mongomock.MongoClient())
    yield service
    service.close_connection()


@pytest.fixture
def test_db(test_mongodb):
    """Raw database handle for seeding and inspecting documents."""
    return test_mongodb.database


@pytest.fixture
def test_app(test_mongodb):
    return create_app(
        config_overrides={
            'TESTING': True,
            'JWT_SECRET': JWT_SECRET,
            'JWT_PUBLIC_KEY': None,
            'JWT_ALGORITHM': 'HS256',
            'JWT_AUDIENCE': 'authenticated',
            'MONGODB_CREATE_INDEXES': True
        },
        mongodb_service=test_mongodb
    )


@pytest.fixture
def test_client(test_app):
    return test_app.test_client()


@pytest.fixture
def auth_headers():
    """Build Authorization headers for a condominium member."""
    def build(user_id, condominium_id, role="morador"):
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {
                "sub": user_id,
                "condominium_id": condominium_id,
                "role": role,
                "aud": "authenticated",
                "iat": now,
                "exp": now + timedelta(hours=1)
            },
            JWT_SECRET,
            algorithm="HS256"
        )
        return {"Authorization": f"Bearer {token}"}
    return build
