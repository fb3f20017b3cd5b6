# SPDX-License-Identifier: Apache-2.0

"""
Authentication service for validating identity provider JWTs.

Tokens are issued by an external identity provider (Supabase style: ``sub``
is the user ID, ``condominium_id`` the tenant). This service only verifies
them, with an HS256 shared secret or an RS256 public key, and turns their
claims into a ``UserContext``.
"""

import os
import jwt
from typing import Optional, Dict, Any, List
from opentelemetry import trace
from pydantic import ValidationError
import logging

from domain.authorization import effective_permissions
from models.entities import UserContext

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


class TokenValidationError(Exception):
    """Raised when token validation fails."""
    pass


class AuthService:
    """
    JWT verification service.

    RS256 is used when a public key is configured, HS256 with the shared
    secret otherwise.
    """

    def __init__(
        self,
        secret: Optional[str] = None,
        public_key: Optional[str] = None,
        algorithm: Optional[str] = None,
        audience: Optional[str] = None
    ):
        """
        Initialize the authentication service.

        Args:
            secret: HS256 shared secret
            public_key: RS256 public key for token verification (PEM format)
            algorithm: Force a signing algorithm instead of inferring it
            audience: Expected ``aud`` claim; empty disables the check
        """
        self.secret = secret if secret is not None else os.getenv("JWT_SECRET")
        self.public_key = public_key if public_key is not None else os.getenv("JWT_PUBLIC_KEY")
        self.algorithm = algorithm or os.getenv("JWT_ALGORITHM") or ("RS256" if self.public_key else "HS256")
        self.audience = audience if audience is not None else os.getenv("JWT_AUDIENCE", "authenticated")

        if self.algorithm.startswith("RS") and not self.public_key:
            logger.warning("JWT algorithm is RS256 but no JWT_PUBLIC_KEY is configured")
        if self.algorithm.startswith("HS") and not self.secret:
            logger.warning("JWT algorithm is HS256 but no JWT_SECRET is configured")

    @property
    def verification_key(self) -> Optional[str]:
        return self.public_key if self.algorithm.startswith("RS") else self.secret

    def validate_token(self, token: str) -> Dict[str, Any]:
        """
        Validate and decode a JWT token.

        Args:
            token: JWT token string to validate

        Returns:
            Decoded token payload

        Raises:
            TokenValidationError: If token is invalid or expired
        """
        with tracer.start_as_current_span("auth.validate_token") as span:
            span.set_attributes({
                "auth.operation": "validate_token",
                "auth.algorithm": self.algorithm
            })

            if not self.verification_key:
                span.set_attribute("auth.validation_result", "unconfigured")
                raise TokenValidationError("Token verification key not configured")

            options = {"verify_exp": True, "require": ["sub", "exp"]}
            if not self.audience:
                options["verify_aud"] = False

            try:
                payload = jwt.decode(
                    token,
                    self.verification_key,
                    algorithms=[self.algorithm],
                    audience=self.audience or None,
                    options=options
                )
            except jwt.ExpiredSignatureError:
                span.set_attribute("auth.validation_result", "expired")
                logger.warning("Token validation failed: token expired")
                raise TokenValidationError("Token has expired")
            except jwt.InvalidTokenError as e:
                span.set_attribute("auth.validation_result", "invalid")
                logger.warning(f"Token validation failed: {str(e)}")
                raise TokenValidationError(f"Invalid token: {str(e)}")

            span.set_attributes({
                "auth.validation_result": "success",
                "user.id": payload.get("sub"),
                "condominium.id": str(payload.get("condominium_id", ""))
            })
            logger.debug(
                "Token validated successfully",
                extra={"user_id": payload.get("sub"), "condominium_id": payload.get("condominium_id")}
            )
            return payload

    def build_user_context(
        self,
        payload: Dict[str, Any],
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None
    ) -> UserContext:
        """
        Build the request's user context from validated claims.

        Raises:
            TokenValidationError: Token lacks a subject or condominium, or
                carries malformed role, permission or profile claims
        """
        user_id = payload.get("sub")
        condominium_id = payload.get("condominium_id")
        if not user_id or not condominium_id:
            raise TokenValidationError("Token does not identify a condominium member")

        role = payload.get("role")
        if role is not None and not isinstance(role, str):
            raise TokenValidationError("Token role claim must be a string")

        try:
            return UserContext(
                user_id=str(user_id),
                condominium_id=str(condominium_id),
                email=payload.get("email"),
                name=payload.get("name"),
                role=role,
                permissions=effective_permissions(role, self._permission_claim(payload)),
                token_payload=payload,
                ip_address=ip_address,
                user_agent=user_agent
            )
        except ValidationError as e:
            raise TokenValidationError("Token carries malformed profile claims") from e

    @staticmethod
    def _permission_claim(payload: Dict[str, Any]) -> List[str]:
        """A single permission string counts as a one-item list."""
        permissions = payload.get("permissions")
        if permissions is None:
            return []
        if isinstance(permissions, str):
            return [permissions]
        if not isinstance(permissions, list) or not all(isinstance(item, str) for item in permissions):
            raise TokenValidationError("Token permissions claim must be a list of strings")
        return permissions
