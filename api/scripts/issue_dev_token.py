#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Issue a development access token shaped like the identity provider's.

HS256 tokens are signed with JWT_SECRET. With ``--rs256`` a fresh RSA key
pair is generated and the public key to configure as JWT_PUBLIC_KEY is
printed alongside the token.
"""

import argparse
import os
import sys
import jwt
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa


def generate_rsa_key_pair() -> Tuple[str, str]:
    """Generate an RSA key pair as PEM strings."""
    private_key = rsa.generate_private_key(
        public_exponent=65537,
        key_size=2048
    )

    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption()
    ).decode('utf-8')

    public_pem = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo
    ).decode('utf-8')

    return private_pem, public_pem


def build_claims(
    user_id: str,
    condominium_id: str,
    role: Optional[str] = None,
    permissions: Optional[List[str]] = None,
    audience: str = "authenticated",
    expires_minutes: int = 60
) -> dict:
    """Claims as issued by the identity provider."""
    now = datetime.now(timezone.utc)
    claims = {
        "sub": user_id,
        "condominium_id": condominium_id,
        "aud": audience,
        "iat": now,
        "exp": now + timedelta(minutes=expires_minutes)
    }
    if role:
        claims["role"] = role
    if permissions:
        claims["permissions"] = permissions
    return claims


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--user", required=True, help="User ID (sub claim)")
    parser.add_argument("--condominium", required=True, help="Condominium ID")
    parser.add_argument("--role", help="Role claim, e.g. sindico or morador")
    parser.add_argument("--permission", action="append", default=[], help="Extra permission claim")
    parser.add_argument("--rs256", action="store_true", help="Sign with a generated RSA key")
    args = parser.parse_args(argv)

    claims = build_claims(
        args.user,
        args.condominium,
        role=args.role,
        permissions=args.permission,
        audience=os.getenv("JWT_AUDIENCE", "authenticated")
    )

    if args.rs256:
        private_pem, public_pem = generate_rsa_key_pair()
        token = jwt.encode(claims, private_pem, algorithm="RS256")
        newline = "\\n"
        print(f'JWT_PUBLIC_KEY="{public_pem.replace(chr(10), newline)}"')
    else:
        secret = os.getenv("JWT_SECRET")
        if not secret:
            print("JWT_SECRET is not set", file=sys.stderr)
            return 1
        token = jwt.encode(claims, secret, algorithm="HS256")

    print(token)
    return 0


if __name__ == "__main__":
    sys.exit(main())
