"""
Refresh token rotation.

A refresh token is ISSUED at login, then either ROTATED (deleted and replaced
on its single use) or silently EXPIRED. A rotated token can never be
presented again: the conditional delete affects no rows and the request is
rejected like any other bad token.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

from models.credential_store import CredentialStore
from services.exceptions import InvalidCredential, translate_store_errors
from services.settings import AuthSettings
from services.single_use import consume_and_replace
from utils.security import generate_token

logger = logging.getLogger(__name__)

INVALID_REFRESH_TOKEN = "Invalid 'refresh_token' or 'user_id'"


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class IssuedRefreshToken:
    token: str
    user_id: str
    expires_at: datetime


@dataclass(frozen=True)
class Rotation:
    refresh_token: IssuedRefreshToken
    # owner as re-read during validation, so its roles are current
    user: Any


class RefreshRotationEngine:
    def __init__(
        self,
        store: CredentialStore,
        settings: AuthSettings,
        clock: Callable[[], datetime] = _now,
    ):
        self.store = store
        self.settings = settings
        self.clock = clock

    def _expiry(self, now: datetime) -> datetime:
        return now + timedelta(minutes=self.settings.refresh_token_expires)

    def issue(self, user_id: str) -> IssuedRefreshToken:
        issued = IssuedRefreshToken(
            token=generate_token(),
            user_id=str(user_id),
            expires_at=self._expiry(self.clock()),
        )
        with translate_store_errors("issue a refresh token"):
            self.store.insert_refresh_token(issued.user_id, issued.token, issued.expires_at)
        return issued

    def rotate(self, presented_token: str, user_id: str, now: Optional[datetime] = None) -> Rotation:
        now = now or self.clock()
        user_id = str(user_id)

        with translate_store_errors("validate a refresh token"):
            user = self.store.find_valid_refresh_token(presented_token, user_id, now)
        if user is None:
            logger.info("Refresh rejected for user %s: no live matching token", user_id)
            raise InvalidCredential(INVALID_REFRESH_TOKEN)

        expires_at = self._expiry(now)
        new_token = consume_and_replace(
            lambda replacement: self.store.rotate_refresh_token(
                presented_token, user_id, replacement, expires_at, now
            ),
            action="rotate a refresh token",
            failure_message=INVALID_REFRESH_TOKEN,
        )
        return Rotation(
            refresh_token=IssuedRefreshToken(token=new_token, user_id=user_id, expires_at=expires_at),
            user=user,
        )
