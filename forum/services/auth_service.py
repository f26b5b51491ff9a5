"""
Authentication service: registration, login, token rotation and the
email-confirmation / password-reset flows.

Access tokens are short-lived JWTs.  Refresh tokens are opaque random
strings stored only as SHA-256 hashes; every refresh rotates the pair.
Mail goes out after the transaction commits and never fails a request.
"""
import logging
from datetime import datetime, timedelta, timezone

from forum import mailer
from forum.config import settings
from forum.database import Gateway
from forum.errors import BadRequestError, ConflictError, NotFoundError, UnauthorizedError
from forum.repositories import TokenRepository, UserRepository
from forum.schemas import LoginRequest, RegisterRequest
from forum.security import (
    TokenClaims,
    create_access_token,
    hash_password,
    verify_password,
)
from forum.services.serializers import user_to_dict

logger = logging.getLogger(__name__)


def _aware(value: datetime) -> datetime:
    # SQLite hands timestamps back without tzinfo.
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def _expired(value: datetime) -> bool:
    return _aware(value) <= datetime.now(timezone.utc)


def _expose_token() -> bool:
    """Return account tokens in responses when nobody could receive them by mail."""
    return not settings.MAIL_ENABLED and not settings.is_production


async def _issue_pair(tokens: TokenRepository, user) -> dict:
    access_token, claims = create_access_token(user.id, user.role)
    refresh_token = await tokens.create_refresh_token(
        user_id=user.id,
        jti=claims.jti,
        expires_at=datetime.now(timezone.utc) + timedelta(days=settings.REFRESH_TOKEN_TTL_DAYS),
    )
    return {
        "access_token": access_token,
        "refresh_token": refresh_token,
        "token_type": "bearer",
        "expires_in": settings.ACCESS_TOKEN_TTL_MINUTES * 60,
    }


# ---------------------------------------------------------------------------
# Registration and email confirmation
# ---------------------------------------------------------------------------

async def register(gateway: Gateway, data: RegisterRequest) -> dict:
    async with gateway.transaction() as session:
        users = UserRepository(session)
        if await users.login_taken(data.login):
            raise ConflictError("Login already in use")
        if await users.email_taken(data.email):
            raise ConflictError("Email already in use")

        user_id = await users.create(
            login=data.login,
            email=data.email,
            password_hash=hash_password(data.password),
            full_name=data.full_name,
        )
        token = await TokenRepository(session).create_email_token(
            user_id, settings.EMAIL_TOKEN_TTL_DAYS
        )
        user = await users.get_by_id(user_id)

    logger.info("User %d registered", user_id)
    await mailer.send_verification_email(user.email, token)
    return {
        "user": user_to_dict(user, private=True),
        "verification_token": token if _expose_token() else None,
    }


async def verify_email(gateway: Gateway, token: str) -> dict:
    async with gateway.transaction() as session:
        tokens = TokenRepository(session)
        row = await tokens.find_email_token(token)
        if row is None:
            raise NotFoundError("Verification token not found")
        if _expired(row.expires_at):
            raise BadRequestError("Verification token expired")

        await UserRepository(session).update(row.user_id, {"email_confirmed": True})
        await tokens.delete_email_token(row.id)

    logger.info("User %d confirmed their email", row.user_id)
    return {"message": "Email confirmed"}


async def resend_verification(gateway: Gateway, email: str) -> dict:
    """Issue a fresh confirmation token; the reply never reveals whether *email* exists."""
    token = None
    async with gateway.transaction() as session:
        user = await UserRepository(session).get_by_email(email)
        if user is not None and not user.email_confirmed:
            token = await TokenRepository(session).create_email_token(
                user.id, settings.EMAIL_TOKEN_TTL_DAYS
            )

    if token is not None:
        await mailer.send_verification_email(email, token)
    return {
        "message": "If the account exists and is unconfirmed, a message has been sent",
        "token": token if _expose_token() else None,
    }


# ---------------------------------------------------------------------------
# Password reset
# ---------------------------------------------------------------------------

async def request_password_reset(gateway: Gateway, email: str) -> dict:
    token = None
    async with gateway.transaction() as session:
        user = await UserRepository(session).get_by_email(email)
        if user is not None:
            token = await TokenRepository(session).create_reset_token(
                user.id, settings.RESET_TOKEN_TTL_DAYS
            )

    if token is not None:
        await mailer.send_reset_email(email, token)
    return {
        "message": "If the account exists, a reset message has been sent",
        "token": token if _expose_token() else None,
    }


async def reset_password(gateway: Gateway, token: str, new_password: str) -> dict:
    async with gateway.transaction() as session:
        tokens = TokenRepository(session)
        row = await tokens.find_reset_token(token)
        if row is None:
            raise NotFoundError("Reset token not found")
        if _expired(row.expires_at):
            raise BadRequestError("Reset token expired")

        await UserRepository(session).update(
            row.user_id, {"password_hash": hash_password(new_password)}
        )
        await tokens.delete_reset_token(row.id)
        # A new password ends every existing session.
        await tokens.revoke_user_refresh_tokens(row.user_id)

    logger.info("User %d reset their password", row.user_id)
    return {"message": "Password updated"}


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------

async def login(gateway: Gateway, data: LoginRequest) -> dict:
    async with gateway.transaction() as session:
        user = await UserRepository(session).get_by_identifier(data.identifier)
        if user is None or not verify_password(data.password, user.password_hash):
            raise UnauthorizedError("Invalid credentials")
        if settings.BLOCK_UNVERIFIED_LOGIN and not user.email_confirmed:
            raise UnauthorizedError("Email is not confirmed")

        pair = await _issue_pair(TokenRepository(session), user)

    logger.info("User %d logged in", user.id)
    return {**pair, "user": user_to_dict(user, private=True)}


async def refresh(gateway: Gateway, refresh_token: str) -> dict:
    async with gateway.transaction() as session:
        tokens = TokenRepository(session)
        row = await tokens.find_active_refresh_token(refresh_token)
        if row is None:
            raise UnauthorizedError("Invalid refresh token")

        user = await UserRepository(session).get_by_id(row.user_id)
        if user is None:
            raise UnauthorizedError("Invalid refresh token")

        await tokens.revoke_refresh_token(row.id)
        pair = await _issue_pair(tokens, user)

    logger.debug("Refresh token rotated for user %d", user.id)
    return pair


async def logout(
    gateway: Gateway, claims: TokenClaims, refresh_token: str | None = None
) -> dict:
    """
    Revoke the presented access token, and either the given refresh token
    or, when none is given, every refresh token of the user.
    """
    async with gateway.transaction() as session:
        tokens = TokenRepository(session)
        await tokens.revoke_access_token(claims.jti, claims.expires_at)
        if refresh_token:
            row = await tokens.find_active_refresh_token(refresh_token)
            if row is not None and row.user_id == claims.user_id:
                await tokens.revoke_refresh_token(row.id)
        else:
            await tokens.revoke_user_refresh_tokens(claims.user_id)

    logger.info("User %d logged out", claims.user_id)
    return {"message": "Logged out"}


async def purge_expired_tokens(gateway: Gateway) -> int:
    """Drop expired revocations and dead refresh tokens; returns the row count."""
    async with gateway.transaction() as session:
        removed = await TokenRepository(session).purge_expired()
    if removed:
        logger.info("Purged %d expired token row(s)", removed)
    return removed
