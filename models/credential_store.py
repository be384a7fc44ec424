"""
Credential store client.

Every method is one round-trip against the database through the storage's
scoped session. Conditional mutations report affected rows; callers treat
``0`` as "did not take effect" and never re-read to find out why.

SQLAlchemy errors propagate after a rollback; translating them is the
workflow's job (services.exceptions.translate_store_errors).
"""
from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError

from models.db_storage import DBStorage
from models.refresh_token import RefreshToken
from models.user import User


class CredentialStore:
    def __init__(self, storage: DBStorage):
        self.storage = storage

    @property
    def session(self):
        return self.storage.get_session()

    def _first(self, stmt) -> Optional[User]:
        # never answer from the identity map: always a fresh read
        return self.session.execute(
            stmt.limit(1).execution_options(populate_existing=True)
        ).scalars().first()

    # users

    def find_user_by_username(self, username: str) -> Optional[User]:
        return self._first(select(User).where(User.username == username))

    def find_user_by_email(self, email: str) -> Optional[User]:
        return self._first(select(User).where(User.email == email))

    def insert_user(
        self,
        username: str,
        password_hash: str,
        secret_token: str,
        active: bool,
        default_role: str,
        email: Optional[str] = None,
        roles: Optional[Iterable[str]] = None,
    ) -> User:
        user = User(
            username=username,
            email=email,
            password_hash=password_hash,
            secret_token=secret_token,
            active=active,
            default_role=default_role,
            roles=list(roles or []),
        )
        self.storage.new(user)
        self.storage.save()
        return user

    def activate_user(self, secret_token: str, new_secret_token: str) -> int:
        """Activate the inactive user holding ``secret_token`` and rotate the token."""
        stmt = (
            update(User)
            .where(User.secret_token == secret_token, User.active.is_(False))
            .values(active=True, secret_token=new_secret_token)
        )
        return self._execute_write(stmt)

    def update_user_password(self, secret_token: str, password_hash: str, new_secret_token: str) -> int:
        stmt = (
            update(User)
            .where(User.secret_token == secret_token)
            .values(password_hash=password_hash, secret_token=new_secret_token)
        )
        return self._execute_write(stmt)

    # refresh tokens

    def insert_refresh_token(self, user_id: str, token: str, expires_at: datetime) -> None:
        self.storage.new(RefreshToken(user_id=user_id, token=token, expires_at=expires_at))
        self.storage.save()

    def find_valid_refresh_token(self, token: str, user_id: str, now: datetime) -> Optional[User]:
        """Owner of a live token, or None if wrong, expired, foreign or the owner is inactive."""
        stmt = (
            select(User)
            .join(RefreshToken, RefreshToken.user_id == User.id)
            .where(
                RefreshToken.token == token,
                RefreshToken.user_id == user_id,
                RefreshToken.expires_at >= now,
                User.active.is_(True),
            )
        )
        return self._first(stmt)

    def rotate_refresh_token(
        self,
        old_token: str,
        user_id: str,
        new_token: str,
        new_expires_at: datetime,
        now: datetime,
    ) -> int:
        """
        Delete ``old_token`` and insert ``new_token`` in one transaction.

        The delete is conditional; when it removes nothing (a concurrent
        rotation won, or the token expired in between) the insert is skipped
        and 0 is returned.
        """
        session = self.session
        try:
            result = session.execute(
                delete(RefreshToken)
                .where(
                    RefreshToken.token == old_token,
                    RefreshToken.user_id == user_id,
                    RefreshToken.expires_at >= now,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                session.rollback()
                return 0
            session.add(RefreshToken(user_id=user_id, token=new_token, expires_at=new_expires_at))
            session.commit()
            return result.rowcount
        except SQLAlchemyError:
            session.rollback()
            raise

    def _execute_write(self, stmt) -> int:
        session = self.session
        try:
            result = session.execute(stmt.execution_options(synchronize_session=False))
            session.commit()
            return result.rowcount
        except SQLAlchemyError:
            session.rollback()
            raise
