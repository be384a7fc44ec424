from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from services.exceptions import ConfigurationError

DEFAULT_CLAIMS_NAMESPACE = "https://hasura.io/jwt/claims"


@dataclass(frozen=True)
class AuthSettings:
    """
    Read-only settings shared by the minter, the rotation engine and the
    account controller. Built once at startup and passed to each component.

    TTLs are in minutes.
    """

    jwt_secret: Optional[str]
    jwt_algorithm: Optional[str] = "HS256"
    jwt_public_key: Optional[str] = None
    jwt_token_expires: int = 15
    refresh_token_expires: int = 43200
    claims_namespace: str = DEFAULT_CLAIMS_NAMESPACE
    registration_auto_active: bool = False
    default_role: str = "user"

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "AuthSettings":
        """Build settings from a Flask config (or any mapping with the same keys)."""
        return cls(
            jwt_secret=config.get("JWT_SECRET"),
            jwt_algorithm=config.get("JWT_ALGORITHM"),
            jwt_public_key=config.get("JWT_PUBLIC_KEY"),
            jwt_token_expires=int(config.get("JWT_TOKEN_EXPIRES", 15)),
            refresh_token_expires=int(config.get("REFRESH_TOKEN_EXPIRES", 43200)),
            claims_namespace=config.get("JWT_CLAIMS_NAMESPACE") or DEFAULT_CLAIMS_NAMESPACE,
            registration_auto_active=bool(config.get("USER_REGISTRATION_AUTO_ACTIVE", False)),
            default_role=config.get("DEFAULT_USER_ROLE") or "user",
        )

    @property
    def verification_key(self) -> Optional[str]:
        # asymmetric algorithms verify with the public half; HMAC reuses the secret
        return self.jwt_public_key or self.jwt_secret

    def validate(self) -> None:
        if not self.jwt_secret:
            raise ConfigurationError("JWT_SECRET must be set")
        if not self.jwt_algorithm:
            raise ConfigurationError("JWT_ALGORITHM must be set")
        if self.jwt_token_expires <= 0 or self.refresh_token_expires <= 0:
            raise ConfigurationError("Token lifetimes must be positive minutes")
