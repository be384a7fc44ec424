"""
Account lifecycle: registration, activation, password reset, login and
refresh.

Activation and password reset consume the user's ``secret_token`` through
the same consume-and-replace primitive as refresh rotation, so a link works
once and every successful use invalidates any other outstanding link.

Login failures are deliberately uniform: unknown user, wrong password and
an inactive account all raise the same InvalidCredential. The precise
reason only goes to the log.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import IntegrityError

from models.credential_store import CredentialStore
from services.exceptions import Conflict, InvalidCredential, translate_store_errors
from services.refresh_tokens import RefreshRotationEngine
from services.settings import AuthSettings
from services.single_use import consume_and_replace
from utils.security import TokenMinter, generate_token, hash_password, verify_password

logger = logging.getLogger(__name__)

INVALID_LOGIN = "Invalid 'username' or 'password'"


def normalize_email(email: Optional[str]) -> Optional[str]:
    if not email:
        return None
    return email.strip().lower()


@dataclass(frozen=True)
class SessionTokens:
    access_token: str
    refresh_token: str
    user_id: str
    expires_in: int


class AccountLifecycleController:
    def __init__(
        self,
        store: CredentialStore,
        settings: AuthSettings,
        minter: TokenMinter,
        refresh_tokens: RefreshRotationEngine,
    ):
        self.store = store
        self.settings = settings
        self.minter = minter
        self.refresh_tokens = refresh_tokens

    def register(self, username: str, password: str, email: Optional[str] = None):
        # emails are stored lower-cased; login looks them up the same way
        email = normalize_email(email)
        with translate_store_errors("check for 'username' duplication"):
            taken = self.store.find_user_by_username(username) is not None
            if not taken and email:
                taken = self.store.find_user_by_email(email) is not None
        if taken:
            raise Conflict("The 'username' or 'email' is already registered")

        password_hash = hash_password(password)

        with translate_store_errors("create user"):
            try:
                user = self.store.insert_user(
                    username=username,
                    email=email,
                    password_hash=password_hash,
                    secret_token=generate_token(),
                    active=self.settings.registration_auto_active,
                    default_role=self.settings.default_role,
                )
            except IntegrityError:
                # lost a race against a concurrent registration
                raise Conflict("The 'username' or 'email' is already registered")

        logger.info("Registered user %s (active=%s)", user.id, user.active)
        return user

    def activate(self, secret_token: str) -> None:
        consume_and_replace(
            lambda replacement: self.store.activate_user(secret_token, replacement),
            action="activate account",
            failure_message="Account is already activated or there is no account",
        )

    def reset_password(self, secret_token: str, new_password: str) -> None:
        password_hash = hash_password(new_password)
        consume_and_replace(
            lambda replacement: self.store.update_user_password(secret_token, password_hash, replacement),
            action="update password",
            failure_message="Invalid or already used token",
        )

    def _find_login_user(self, identifier: str):
        user = self.store.find_user_by_username(identifier)
        if user is None and "@" in identifier:
            user = self.store.find_user_by_email(normalize_email(identifier))
        return user

    def login(self, identifier: str, password: str) -> SessionTokens:
        with translate_store_errors("find user"):
            user = self._find_login_user(identifier)

        if user is None:
            logger.info("Login rejected: no such user")
            raise InvalidCredential(INVALID_LOGIN)
        if not verify_password(password, user.password_hash):
            logger.info("Login rejected for user %s: password mismatch", user.id)
            raise InvalidCredential(INVALID_LOGIN)
        if not user.active:
            logger.info("Login rejected for user %s: account not activated", user.id)
            raise InvalidCredential(INVALID_LOGIN)

        access_token = self.minter.mint(user)
        issued = self.refresh_tokens.issue(user.id)
        return SessionTokens(
            access_token=access_token,
            refresh_token=issued.token,
            user_id=str(user.id),
            expires_in=self.minter.expires_in,
        )

    def refresh(self, refresh_token: str, user_id: str) -> SessionTokens:
        rotation = self.refresh_tokens.rotate(refresh_token, user_id)
        return SessionTokens(
            access_token=self.minter.mint(rotation.user),
            refresh_token=rotation.refresh_token.token,
            user_id=rotation.refresh_token.user_id,
            expires_in=self.minter.expires_in,
        )


def build_accounts(store: CredentialStore, settings: AuthSettings) -> AccountLifecycleController:
    """Wire the minter, the rotation engine and the controller from one settings object."""
    minter = TokenMinter(settings)
    return AccountLifecycleController(
        store=store,
        settings=settings,
        minter=minter,
        refresh_tokens=RefreshRotationEngine(store, settings),
    )
