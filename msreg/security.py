from __future__ import annotations

import base64
import secrets
import time
import uuid

import jwt

from .errors import ConfigError

JWT_ISSUER = "microservice-registration"


def generate_token(n: int = 42) -> str:
    """Random URL-safe token used for email verification."""
    return base64.urlsafe_b64encode(secrets.token_bytes(n)).decode("ascii")


def self_sign_jwt(key_path: str, ttl_s: int = 30) -> str:
    """Sign a short-lived system JWT (RS256) with the PEM private key at ``key_path``.

    The token authenticates calls to the user and user-profile services.
    """
    try:
        with open(key_path, "rb") as f:
            key = f.read()
    except OSError as e:
        raise ConfigError(f"Cannot read system key {key_path}: {e}") from e

    now = int(time.time())
    claims = {
        "iss": JWT_ISSUER,
        "exp": now + ttl_s,
        "jti": str(uuid.uuid4()),
        "nbf": 0,
        "sub": JWT_ISSUER,
        "scope": "api:read",
        "userId": "system",
        "username": "system",
        "roles": "system",
    }
    try:
        return jwt.encode(claims, key, algorithm="RS256")
    except (ValueError, TypeError, jwt.PyJWTError) as e:
        raise ConfigError(f"System key {key_path} is not a usable RSA private key: {e}") from e
