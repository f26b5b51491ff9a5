"""
User service: profiles, self-service updates and user administration.

Login and email uniqueness is checked up front to produce a readable
Conflict; the unique constraints in the schema still back it up, and
``forum.main`` maps a late ``IntegrityError`` to 409 as well.
"""
import logging

from forum.database import Gateway
from forum.errors import BadRequestError, ConflictError, NotFoundError
from forum.models import Role
from forum.repositories import LikeRepository, UserRepository
from forum.schemas import MeUpdate, RoleUpdate, UserCreate, UserFilters, UserUpdate
from forum.security import hash_password
from forum.services.access import Actor, ensure_admin
from forum.services.rating import refresh_ratings
from forum.services.serializers import page_to_dict, user_to_dict

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

async def _load(users: UserRepository, user_id: int):
    user = await users.get_by_id(user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


async def _ensure_unique(
    users: UserRepository,
    login: str | None = None,
    email: str | None = None,
    exclude_id: int | None = None,
) -> None:
    if login is not None and await users.login_taken(login, exclude_id):
        raise ConflictError("Login already in use")
    if email is not None and await users.email_taken(email, exclude_id):
        raise ConflictError("Email already in use")


def _with_password(patch: dict) -> dict:
    """Replace a plain ``password`` in *patch* by its hash."""
    password = patch.pop("password", None)
    if password is not None:
        patch["password_hash"] = hash_password(password)
    return patch


# ---------------------------------------------------------------------------
# Self-service
# ---------------------------------------------------------------------------

async def get_me(gateway: Gateway, actor: Actor) -> dict:
    async with gateway.session() as session:
        user = await _load(UserRepository(session), actor.id)
    return user_to_dict(user, private=True)


async def update_me(gateway: Gateway, actor: Actor, data: MeUpdate) -> dict:
    patch = _with_password(data.model_dump(exclude_unset=True))
    if not patch:
        raise BadRequestError("No fields to update")

    async with gateway.transaction() as session:
        users = UserRepository(session)
        await _load(users, actor.id)
        await users.update(actor.id, patch)
        user = await _load(users, actor.id)

    logger.info("User %d updated own profile", actor.id)
    return user_to_dict(user, private=True)


async def get_public_user(gateway: Gateway, user_id: int) -> dict:
    async with gateway.session() as session:
        user = await _load(UserRepository(session), user_id)
    return user_to_dict(user)


# ---------------------------------------------------------------------------
# Administration
# ---------------------------------------------------------------------------

async def list_users(gateway: Gateway, actor: Actor, filters: UserFilters) -> dict:
    ensure_admin(actor)
    async with gateway.session() as session:
        page = await UserRepository(session).list_paged(
            q=filters.q,
            role=filters.role,
            limit=filters.limit,
            offset=filters.offset,
            sort_by=filters.sort_by,
            order=filters.order,
        )
    return page_to_dict(page, lambda u: user_to_dict(u, private=True))


async def create_user(gateway: Gateway, actor: Actor, data: UserCreate) -> dict:
    ensure_admin(actor)
    async with gateway.transaction() as session:
        users = UserRepository(session)
        await _ensure_unique(users, login=data.login, email=data.email)
        user_id = await users.create(
            login=data.login,
            email=data.email,
            password_hash=hash_password(data.password),
            full_name=data.full_name,
            role=data.role,
            email_confirmed=data.email_confirmed,
        )
        user = await _load(users, user_id)

    logger.info("User %d created by admin %d", user_id, actor.id)
    return user_to_dict(user, private=True)


async def update_user(gateway: Gateway, actor: Actor, user_id: int, data: UserUpdate) -> dict:
    ensure_admin(actor)
    patch = _with_password(data.model_dump(exclude_unset=True))
    if not patch:
        raise BadRequestError("No fields to update")
    for field in ("login", "email", "password_hash", "email_confirmed"):
        if field in patch and patch[field] is None:
            raise BadRequestError(f"{field} cannot be null")

    async with gateway.transaction() as session:
        users = UserRepository(session)
        await _load(users, user_id)
        await _ensure_unique(
            users, login=patch.get("login"), email=patch.get("email"), exclude_id=user_id
        )
        await users.update(user_id, patch)
        user = await _load(users, user_id)

    logger.info("User %d updated by admin %d", user_id, actor.id)
    return user_to_dict(user, private=True)


async def set_role(gateway: Gateway, actor: Actor, user_id: int, data: RoleUpdate) -> dict:
    ensure_admin(actor)
    async with gateway.transaction() as session:
        users = UserRepository(session)
        await _load(users, user_id)
        await users.update(user_id, {"role": Role(data.role)})
        user = await _load(users, user_id)

    logger.info("User %d role set to %s by admin %d", user_id, user.role.value, actor.id)
    return user_to_dict(user, private=True)


async def delete_user(gateway: Gateway, actor: Actor, user_id: int) -> None:
    """Delete a user together with their posts, comments, likes and tokens."""
    ensure_admin(actor)
    async with gateway.transaction() as session:
        users = UserRepository(session)
        await _load(users, user_id)
        # Their reactions vanish with them; the authors they rated need a recompute.
        affected = await LikeRepository(session).target_author_ids(user_id)
        await users.delete(user_id)
        await refresh_ratings(session, affected - {user_id})

    logger.info("User %d deleted by admin %d", user_id, actor.id)
