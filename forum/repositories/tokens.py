"""Data access for email-confirmation, password-reset, refresh and revoked tokens."""
from __future__ import annotations

import hashlib
import secrets
from datetime import datetime, timedelta

from sqlalchemy import delete, select, update

from forum.database import dialect_insert
from forum.models import EmailToken, RefreshToken, ResetToken, RevokedToken, utcnow
from forum.repositories.base import Repository


def sha256(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


class TokenRepository(Repository):
    # ------------------------------------------------------------------
    # One-time account tokens (email confirmation, password reset)
    # ------------------------------------------------------------------

    async def create_email_token(self, user_id: int, ttl_days: int) -> str:
        token = secrets.token_hex(24)
        self.session.add(
            EmailToken(user_id=user_id, token=token, expires_at=utcnow() + timedelta(days=ttl_days))
        )
        await self.session.flush()
        return token

    async def find_email_token(self, token: str) -> EmailToken | None:
        result = await self.session.execute(select(EmailToken).where(EmailToken.token == token))
        return result.scalar_one_or_none()

    async def delete_email_token(self, token_id: int) -> int:
        result = await self.session.execute(delete(EmailToken).where(EmailToken.id == token_id))
        return result.rowcount

    async def create_reset_token(self, user_id: int, ttl_days: int) -> str:
        token = secrets.token_hex(24)
        self.session.add(
            ResetToken(user_id=user_id, token=token, expires_at=utcnow() + timedelta(days=ttl_days))
        )
        await self.session.flush()
        return token

    async def find_reset_token(self, token: str) -> ResetToken | None:
        result = await self.session.execute(select(ResetToken).where(ResetToken.token == token))
        return result.scalar_one_or_none()

    async def delete_reset_token(self, token_id: int) -> int:
        result = await self.session.execute(delete(ResetToken).where(ResetToken.id == token_id))
        return result.rowcount

    # ------------------------------------------------------------------
    # Refresh tokens (only the SHA-256 hash is stored)
    # ------------------------------------------------------------------

    async def create_refresh_token(
        self, *, user_id: int, jti: str, expires_at: datetime
    ) -> str:
        plain = secrets.token_hex(32)
        self.session.add(
            RefreshToken(
                user_id=user_id,
                token_hash=sha256(plain),
                jti=jti,
                expires_at=expires_at,
            )
        )
        await self.session.flush()
        return plain

    async def find_active_refresh_token(self, plain: str) -> RefreshToken | None:
        result = await self.session.execute(
            select(RefreshToken).where(
                RefreshToken.token_hash == sha256(plain),
                RefreshToken.revoked_at.is_(None),
                RefreshToken.expires_at > utcnow(),
            )
        )
        return result.scalar_one_or_none()

    async def revoke_refresh_token(self, token_id: int) -> int:
        result = await self.session.execute(
            update(RefreshToken)
            .where(RefreshToken.id == token_id, RefreshToken.revoked_at.is_(None))
            .values(revoked_at=utcnow())
        )
        return result.rowcount

    async def revoke_user_refresh_tokens(self, user_id: int) -> int:
        result = await self.session.execute(
            update(RefreshToken)
            .where(RefreshToken.user_id == user_id, RefreshToken.revoked_at.is_(None))
            .values(revoked_at=utcnow())
        )
        return result.rowcount

    # ------------------------------------------------------------------
    # Revoked access tokens (by jti)
    # ------------------------------------------------------------------

    async def revoke_access_token(self, jti: str, expires_at: datetime) -> None:
        stmt = dialect_insert(self.session, RevokedToken).values(jti=jti, expires_at=expires_at)
        await self.session.execute(stmt.on_conflict_do_nothing())

    async def is_access_token_revoked(self, jti: str) -> bool:
        result = await self.session.execute(
            select(RevokedToken.jti).where(RevokedToken.jti == jti).limit(1)
        )
        return result.first() is not None

    async def purge_expired(self) -> int:
        now = utcnow()
        revoked = await self.session.execute(
            delete(RevokedToken).where(RevokedToken.expires_at < now)
        )
        refresh = await self.session.execute(
            delete(RefreshToken).where(
                (RefreshToken.expires_at <= now) | RefreshToken.revoked_at.is_not(None)
            )
        )
        return revoked.rowcount + refresh.rowcount
