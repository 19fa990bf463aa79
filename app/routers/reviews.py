"""
Reviews router: GET /v1/reviews/workers/{id}, GET /v1/reviews/workers/{id}/stats
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.middleware.auth import Actor, get_current_user
from app.redis_client import get_redis
from app.schemas.schemas import ReviewResponse, WorkerReviewStats
from app.services.reviews import list_worker_reviews, worker_review_stats

router = APIRouter(prefix="/v1/reviews", tags=["Reviews"])


@router.get("/workers/{worker_id}", response_model=list[ReviewResponse])
async def worker_reviews(
    worker_id: int,
    db: AsyncSession = Depends(get_db),
    _: Actor = Depends(get_current_user),
):
    reviews = await list_worker_reviews(db, worker_id)
    return [ReviewResponse.model_validate(r) for r in reviews]


@router.get("/workers/{worker_id}/stats", response_model=WorkerReviewStats)
async def worker_stats(
    worker_id: int,
    db: AsyncSession = Depends(get_db),
    _: Actor = Depends(get_current_user),
):
    redis = await get_redis()
    return await worker_review_stats(db, worker_id, redis=redis)
