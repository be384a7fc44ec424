"""
security helpers:
- Argon2 password hashing via argon2-cffi
- Access token minting/verification via PyJWT
- Random single-use token generation
"""
from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

from services.exceptions import InvalidCredential
from services.settings import AuthSettings

ph = PasswordHasher()


def hash_password(password: str) -> str:
    """Hash a plaintext password using Argon2
    """
    return ph.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """ Verify a plaintext password using argon2
    """
    try:
        return ph.verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False


def generate_token() -> str:
    """Generate a random single-use token (UUID4, backed by os.urandom).
    """
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


def effective_roles(roles: Optional[Iterable[str]], default_role: str) -> List[str]:
    """Assigned roles without duplicates (first-seen order), plus the default role."""
    allowed: List[str] = []
    for role in roles or []:
        if role and role not in allowed:
            allowed.append(role)
    if default_role not in allowed:
        allowed.append(default_role)
    return allowed


class TokenMinter:
    """
    Builds and verifies the signed, stateless access token.

    The claim bundle lives under ``settings.claims_namespace`` so that a
    GraphQL engine reading x-hasura-* claims can consume the token directly.
    """

    def __init__(self, settings: AuthSettings):
        settings.validate()
        self.settings = settings

    @property
    def expires_in(self) -> int:
        """Access token lifetime in seconds."""
        return self.settings.jwt_token_expires * 60

    def claims_for(self, user) -> Dict[str, Any]:
        return {
            "x-hasura-allowed-roles": effective_roles(user.roles, user.default_role),
            "x-hasura-default-role": user.default_role,
            "x-hasura-user-id": str(user.id),
        }

    def mint(self, user, now: Optional[datetime] = None) -> str:
        issued = now or _now()
        exp = issued + timedelta(minutes=self.settings.jwt_token_expires)
        payload = {
            "sub": str(user.id),
            "iat": int(issued.timestamp()),
            "exp": int(exp.timestamp()),
            "type": "access",
            self.settings.claims_namespace: self.claims_for(user),
        }
        return jwt.encode(payload, self.settings.jwt_secret, algorithm=self.settings.jwt_algorithm)

    def decode(self, token: str) -> Dict[str, Any]:
        """
        Verify signature and expiry of an access token and return its claims.
        Any failure is reported as InvalidCredential.
        """
        try:
            decoded = jwt.decode(
                token,
                self.settings.verification_key,
                algorithms=[self.settings.jwt_algorithm],
                options={"require": ["exp", "sub"]},
            )
        except jwt.ExpiredSignatureError:
            raise InvalidCredential("Token expired")
        except jwt.InvalidTokenError:
            raise InvalidCredential("Invalid token")

        if decoded.get("type") != "access":
            raise InvalidCredential("Wrong token type")
        return decoded
