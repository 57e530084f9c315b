"""
API v1 router.
"""
from fastapi import APIRouter

from cio.api.v1.endpoints import auth, health, jobs, webhooks

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(jobs.router, tags=["jobs"])
api_router.include_router(webhooks.router, tags=["webhooks"])
api_router.include_router(auth.router, tags=["authentication"])
