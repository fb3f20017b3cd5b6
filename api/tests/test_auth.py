# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for identity provider token verification.
"""

import jwt
import pytest
from datetime import timedelta
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from services.auth import AuthService, TokenValidationError

TEST_JWT_SECRET = "test-secret-key-for-assembly-tokens"


@pytest.fixture
def auth_service():
    return AuthService(secret=TEST_JWT_SECRET, public_key="", algorithm="HS256", audience="authenticated")


class TestValidateToken:
    """HS256 validation."""

    def test_valid_token(self, auth_service, token_factory):
        payload = auth_service.validate_token(token_factory("user-1", role="morador"))

        assert payload["sub"] == "user-1"
        assert payload["condominium_id"] == "condo-residencial-aurora"

    def test_expired_token(self, auth_service, token_factory):
        token = token_factory("user-1", expires_in=timedelta(minutes=-5))

        with pytest.raises(TokenValidationError, match="expired"):
            auth_service.validate_token(token)

    def test_wrong_secret(self, auth_service, token_factory):
        token = token_factory("user-1", secret="another-secret-entirely-different")

        with pytest.raises(TokenValidationError):
            auth_service.validate_token(token)

    def test_wrong_audience(self, auth_service, token_factory):
        token = token_factory("user-1", aud="anon")

        with pytest.raises(TokenValidationError):
            auth_service.validate_token(token)

    def test_audience_check_can_be_disabled(self, token_factory):
        service = AuthService(secret=TEST_JWT_SECRET, public_key="", algorithm="HS256", audience="")

        assert service.validate_token(token_factory("user-1", aud="anon"))["sub"] == "user-1"

    def test_garbage_token(self, auth_service):
        with pytest.raises(TokenValidationError):
            auth_service.validate_token("not.a.token")

    def test_unconfigured_key(self, token_factory):
        service = AuthService(secret="", public_key="", algorithm="HS256", audience="authenticated")

        with pytest.raises(TokenValidationError, match="not configured"):
            service.validate_token(token_factory("user-1"))


class TestRS256:
    """Public key verification."""

    def test_rs256_token(self):
        private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
        public_pem = private_key.public_key().public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo
        ).decode('utf-8')
        token = jwt.encode(
            {"sub": "user-1", "condominium_id": "condo-1", "aud": "authenticated", "exp": 4102444800},
            private_key,
            algorithm="RS256"
        )

        service = AuthService(secret="", public_key=public_pem, audience="authenticated")

        assert service.algorithm == "RS256"
        assert service.validate_token(token)["sub"] == "user-1"


class TestBuildUserContext:
    """Claims to user context."""

    def test_sindico_gets_manage_permission(self, auth_service):
        context = auth_service.build_user_context(
            {"sub": "user-1", "condominium_id": "condo-1", "role": "sindico", "email": "sindico@aurora.com.br"},
            ip_address="10.0.0.1"
        )

        assert context.user_id == "user-1"
        assert context.condominium_id == "condo-1"
        assert context.has_permission("assembly:manage")
        assert context.ip_address == "10.0.0.1"

    def test_resident_has_no_permissions(self, auth_service):
        context = auth_service.build_user_context({"sub": "user-2", "condominium_id": "condo-1", "role": "morador"})

        assert context.permissions == []

    def test_condominium_claim_required(self, auth_service):
        with pytest.raises(TokenValidationError):
            auth_service.build_user_context({"sub": "user-1"})

    def test_non_string_role_rejected(self, auth_service):
        with pytest.raises(TokenValidationError, match="role"):
            auth_service.build_user_context({"sub": "user-1", "condominium_id": "condo-1", "role": 123})

    def test_single_permission_string(self, auth_service):
        context = auth_service.build_user_context(
            {"sub": "user-1", "condominium_id": "condo-1", "permissions": "assembly:manage"}
        )

        assert context.permissions == ["assembly:manage"]

    @pytest.mark.parametrize("permissions", [{"assembly:manage": True}, ["assembly:manage", 7], 42])
    def test_malformed_permissions_rejected(self, auth_service, permissions):
        with pytest.raises(TokenValidationError, match="permissions"):
            auth_service.build_user_context({"sub": "user-1", "condominium_id": "condo-1", "permissions": permissions})

    def test_malformed_profile_claim_rejected(self, auth_service):
        with pytest.raises(TokenValidationError):
            auth_service.build_user_context({"sub": "user-1", "condominium_id": "condo-1", "email": ["a", "b"]})
