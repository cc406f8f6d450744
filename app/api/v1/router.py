"""Main API router for v1."""
from fastapi import APIRouter

from app.api.v1.endpoints import polls, quizzes, rewards, stats, webhook

api_router = APIRouter(prefix="/api/v1")

# Include all endpoint routers
api_router.include_router(polls.router, prefix="/polls", tags=["Polls"])
api_router.include_router(quizzes.router, prefix="/quizzes", tags=["Quizzes"])
api_router.include_router(quizzes.attempts_router, prefix="/attempts", tags=["Quizzes"])
api_router.include_router(rewards.router, prefix="/rewards", tags=["Rewards"])
api_router.include_router(webhook.router, prefix="/webhook", tags=["Webhook"])
api_router.include_router(stats.router, tags=["Stats"])
