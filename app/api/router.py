from fastapi import APIRouter
from app.api.endpoints import auth, stats, urls

api_router = APIRouter()

# Combine all sub-routers into one
api_router.include_router(auth.router)
api_router.include_router(stats.router)
api_router.include_router(urls.router)
