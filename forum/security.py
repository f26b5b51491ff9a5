"""Password hashing and JWT access tokens."""
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from werkzeug.security import check_password_hash, generate_password_hash

from forum.config import settings
from forum.errors import UnauthorizedError
from forum.models import Role


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return check_password_hash(password_hash, password)


@dataclass(frozen=True)
class TokenClaims:
    """Validated claims of an access token."""

    user_id: int
    role: Role
    jti: str
    expires_at: datetime


def create_access_token(user_id: int, role: Role) -> tuple[str, TokenClaims]:
    """Return an encoded access JWT together with the claims it carries."""
    expires_at = datetime.now(timezone.utc) + timedelta(minutes=settings.ACCESS_TOKEN_TTL_MINUTES)
    claims = TokenClaims(
        user_id=user_id,
        role=Role(role),
        jti=uuid.uuid4().hex,
        expires_at=expires_at,
    )
    to_encode = {
        "sub": str(user_id),
        "role": claims.role.value,
        "jti": claims.jti,
        "exp": expires_at,
        "iss": settings.JWT_ISSUER,
        "aud": settings.JWT_AUDIENCE,
    }
    token = jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)
    return token, claims


def decode_access_token(token: str) -> TokenClaims:
    """
    Validate signature, expiry, issuer and audience of *token*.

    Raises UnauthorizedError for anything that is not a well-formed,
    current access token.
    """
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
            audience=settings.JWT_AUDIENCE,
            issuer=settings.JWT_ISSUER,
        )
    except JWTError as err:
        raise UnauthorizedError("Could not validate credentials") from err

    try:
        return TokenClaims(
            user_id=int(payload["sub"]),
            role=Role(payload.get("role", Role.USER.value)),
            jti=str(payload["jti"]),
            expires_at=datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc),
        )
    except (KeyError, TypeError, ValueError) as err:
        raise UnauthorizedError("Could not validate credentials") from err
