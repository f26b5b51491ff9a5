from fastapi import APIRouter, Depends
from sqlalchemy import func, select

from forum.cache import cache
from forum.database import Gateway, get_gateway
from forum.dependencies import require_admin
from forum.models import Category, Comment, Like, Post, User
from forum.schemas import MetricsResponse
from forum.services.access import Actor

router = APIRouter(prefix="/api/metrics", tags=["metrics"])


@router.get("", response_model=MetricsResponse)
async def get_metrics(
    actor: Actor = Depends(require_admin),
    gateway: Gateway = Depends(get_gateway),
):
    totals = {}
    for name, model in (
        ("users", User),
        ("posts", Post),
        ("comments", Comment),
        ("likes", Like),
        ("categories", Category),
    ):
        result = await gateway.query(select(func.count()).select_from(model))
        totals[name] = result.scalar_one()

    avg_comments = totals["comments"] / totals["posts"] if totals["posts"] > 0 else 0

    return MetricsResponse(
        total_users=totals["users"],
        total_posts=totals["posts"],
        total_comments=totals["comments"],
        total_likes=totals["likes"],
        total_categories=totals["categories"],
        avg_comments_per_post=round(avg_comments, 2),
        cache_info=cache.stats,
    )
