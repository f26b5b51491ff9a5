"""
Serialisation helpers shared by the services.

Services return plain dicts; the routers validate them against the
response models in ``forum.schemas``.
"""
from forum.models import Category, Comment, User
from forum.repositories import Page


def _iso(value):
    return value.isoformat() if value else None


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

def user_summary_to_dict(user: User | None) -> dict | None:
    """Author block embedded in posts and comments."""
    if user is None:
        return None
    return {
        "id": user.id,
        "login": user.login,
        "full_name": user.full_name,
        "profile_picture": user.profile_picture,
    }


def user_to_dict(user: User, private: bool = False) -> dict:
    """
    Serialise a User; *private* adds the fields only the user and admins
    may see.  The password hash never leaves the service layer.
    """
    data = user_summary_to_dict(user)
    data["role"] = user.role
    data["rating"] = user.rating
    data["created_at"] = _iso(user.created_at)
    if private:
        data["email"] = user.email
        data["email_confirmed"] = user.email_confirmed
    return data


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------

def category_to_dict(category: Category) -> dict:
    return {
        "id": category.id,
        "title": category.title,
        "description": category.description,
    }


# ---------------------------------------------------------------------------
# Posts and comments
# ---------------------------------------------------------------------------

def post_row_to_dict(row) -> dict:
    """Serialise a row produced by ``PostRepository.get_detail`` / ``list_paged``."""
    post = row.Post
    return {
        "id": post.id,
        "author_id": post.author_id,
        "author": user_summary_to_dict(post.author),
        "title": post.title,
        "content": post.content,
        "image": post.image,
        "status": post.status,
        "locked": post.locked,
        "publish_date": _iso(post.publish_date),
        "categories": [category_to_dict(c) for c in post.categories],
        "likes_count": row.likes_count or 0,
        "dislikes_count": row.dislikes_count or 0,
        "likes_net": row.likes_net or 0,
        "comments_count": row.comments_count or 0,
    }


def comment_to_dict(comment: Comment) -> dict:
    return {
        "id": comment.id,
        "post_id": comment.post_id,
        "author_id": comment.author_id,
        "author": user_summary_to_dict(comment.author),
        "content": comment.content,
        "status": comment.status,
        "locked": comment.locked,
        "publish_date": _iso(comment.publish_date),
    }


def like_row_to_dict(row) -> dict:
    return {
        "id": row.id,
        "user_id": row.user_id,
        "login": row.login,
        "full_name": row.full_name,
        "type": row.type,
        "publish_date": _iso(row.publish_date),
    }


def page_to_dict(page: Page, serialise) -> dict:
    return {
        "items": [serialise(item) for item in page.items],
        "total": page.total,
        "limit": page.limit,
        "offset": page.offset,
    }
