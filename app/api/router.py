"""
Main API router that includes all versioned route modules.
"""
from fastapi import APIRouter
from app.api.routes import auth, profile, runs, friends, leaderboard

api_router = APIRouter()

# Include all route modules
api_router.include_router(auth.router)
api_router.include_router(profile.router)
api_router.include_router(runs.router)
api_router.include_router(friends.router)
api_router.include_router(leaderboard.router)
