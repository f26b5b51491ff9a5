# Repositories package.
#
# One class per table group, each wrapping the AsyncSession it is built
# with.  Services build repositories from a session obtained through
# ``Gateway.transaction()`` for writes or ``Gateway.session()`` for
# reads, so the same methods serve both paths.
from forum.repositories.base import Page
from forum.repositories.categories import CategoryRepository
from forum.repositories.comments import CommentRepository
from forum.repositories.likes import LikeRepository
from forum.repositories.posts import PostRepository
from forum.repositories.tokens import TokenRepository
from forum.repositories.users import RatingRepository, UserRepository

__all__ = [
    "Page",
    "CategoryRepository",
    "CommentRepository",
    "LikeRepository",
    "PostRepository",
    "RatingRepository",
    "TokenRepository",
    "UserRepository",
]
