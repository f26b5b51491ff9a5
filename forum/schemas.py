from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, StrictBool

from forum.models import LikeType, Role, Status

_EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


# --- Pagination ---

class PaginatedResponse(BaseModel):
    items: list
    total: int
    limit: int
    offset: int


# --- User ---

class UserSummary(BaseModel):
    id: int
    login: str
    full_name: str | None = None
    profile_picture: str | None = None
    model_config = ConfigDict(from_attributes=True)


class UserPublic(UserSummary):
    role: Role
    rating: int = 0
    created_at: datetime


class UserPrivate(UserPublic):
    email: str
    email_confirmed: bool


class UserPage(PaginatedResponse):
    items: list[UserPrivate]


class UserCreate(BaseModel):
    login: str = Field(min_length=3, max_length=64)
    email: str = Field(max_length=255, pattern=_EMAIL_PATTERN)
    password: str = Field(min_length=6, max_length=128)
    full_name: str | None = Field(None, max_length=128)
    role: Role = Role.USER
    email_confirmed: bool = False


class UserUpdate(BaseModel):
    login: str | None = Field(None, min_length=3, max_length=64)
    email: str | None = Field(None, max_length=255, pattern=_EMAIL_PATTERN)
    password: str | None = Field(None, min_length=6, max_length=128)
    full_name: str | None = Field(None, max_length=128)
    profile_picture: str | None = Field(None, max_length=500)
    email_confirmed: bool | None = None


class MeUpdate(BaseModel):
    full_name: str | None = Field(None, max_length=128)
    profile_picture: str | None = Field(None, max_length=500)
    password: str | None = Field(None, min_length=6, max_length=128)


class RoleUpdate(BaseModel):
    role: Role


# --- Auth ---

class RegisterRequest(BaseModel):
    login: str = Field(min_length=3, max_length=64)
    email: str = Field(max_length=255, pattern=_EMAIL_PATTERN)
    password: str = Field(min_length=6, max_length=128)
    full_name: str | None = Field(None, max_length=128)


class RegisterResponse(BaseModel):
    user: UserPrivate
    # Only returned outside production while mail delivery is disabled.
    verification_token: str | None = None


class LoginRequest(BaseModel):
    identifier: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=6, max_length=128)


class TokenPair(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int


class LoginResponse(TokenPair):
    user: UserPrivate


class TokenRequest(BaseModel):
    token: str = Field(min_length=1, max_length=128)


class EmailRequest(BaseModel):
    email: str = Field(max_length=255, pattern=_EMAIL_PATTERN)


class PasswordResetConfirm(BaseModel):
    password: str = Field(min_length=6, max_length=128)


class PasswordReset(PasswordResetConfirm):
    token: str = Field(min_length=1, max_length=128)


class RefreshRequest(BaseModel):
    refresh_token: str = Field(min_length=20, max_length=512)


class LogoutRequest(BaseModel):
    refresh_token: str | None = Field(None, min_length=20, max_length=512)


class MessageResponse(BaseModel):
    message: str
    # Only returned outside production while mail delivery is disabled.
    token: str | None = None


# --- Category ---

class CategoryCreate(BaseModel):
    title: str = Field(min_length=1, max_length=100)
    description: str | None = None


class CategoryUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = None


class CategoryResponse(BaseModel):
    id: int
    title: str
    description: str | None = None
    model_config = ConfigDict(from_attributes=True)


class CategoryPage(PaginatedResponse):
    items: list[CategoryResponse]


# --- Post ---

class PostCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    content: str = Field(min_length=1)
    status: Status = Status.ACTIVE
    image: str | None = Field(None, max_length=500)
    category_ids: list[int] = []


class PostUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=255)
    content: str | None = Field(None, min_length=1)
    status: Status | None = None
    image: str | None = Field(None, max_length=500)
    category_ids: list[int] | None = None


class PostResponse(BaseModel):
    id: int
    author_id: int
    author: UserSummary | None = None
    title: str
    content: str
    image: str | None = None
    status: Status
    locked: bool
    publish_date: datetime
    categories: list[CategoryResponse] = []
    likes_count: int = 0
    dislikes_count: int = 0
    likes_net: int = 0
    comments_count: int = 0


class PostPage(PaginatedResponse):
    items: list[PostResponse]


class LockRequest(BaseModel):
    locked: StrictBool


# --- Comment ---

class CommentCreate(BaseModel):
    content: str = Field(min_length=1, max_length=5000)


class CommentCreateForPost(CommentCreate):
    post_id: int = Field(ge=1)


class CommentUpdate(BaseModel):
    # Accepted only so the service can refuse it explicitly.
    content: str | None = None
    status: Status | None = None


class CommentResponse(BaseModel):
    id: int
    post_id: int
    author_id: int
    author: UserSummary | None = None
    content: str
    status: Status
    locked: bool
    publish_date: datetime


class CommentPage(PaginatedResponse):
    items: list[CommentResponse]


# --- Like ---

class LikeRequest(BaseModel):
    type: LikeType


class LikeTarget(BaseModel):
    post_id: int | None = Field(None, ge=1)
    comment_id: int | None = Field(None, ge=1)


class LikeTargetRequest(LikeRequest, LikeTarget):
    pass


class LikeState(BaseModel):
    """Outcome of a like mutation."""

    post_id: int | None = None
    comment_id: int | None = None
    type: LikeType | None = None
    target_author_id: int
    target_author_rating: int
    likes_count: int
    dislikes_count: int


class LikeResponse(BaseModel):
    id: int
    user_id: int
    login: str
    full_name: str | None = None
    type: LikeType
    publish_date: datetime


class LikePage(PaginatedResponse):
    items: list[LikeResponse]


# --- Listing filters ---

class PostFilters(BaseModel):
    q: str | None = None
    author_id: int | None = None
    category_id: int | None = None
    status: Status | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None
    limit: int | None = None
    offset: int | None = None
    sort_by: str | None = None
    order: str | None = None


class ListParams(BaseModel):
    limit: int | None = None
    offset: int | None = None
    sort_by: str | None = None
    order: str | None = None


class CommentFilters(ListParams):
    status: Status | None = None


class UserFilters(ListParams):
    q: str | None = None
    role: Role | None = None


class CategoryFilters(ListParams):
    q: str | None = None


# --- Metrics ---

class MetricsResponse(BaseModel):
    total_users: int
    total_posts: int
    total_comments: int
    total_likes: int
    total_categories: int
    avg_comments_per_post: float
    cache_info: dict = {}
