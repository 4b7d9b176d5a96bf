from fastapi import APIRouter
from app.api.v1.endpoints import auth, dashboard, health, projects, users

api_router = APIRouter()

api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(users.router, prefix="/users", tags=["users"])

# Resource endpoints
api_router.include_router(projects.router, prefix="/projects", tags=["projects"])
api_router.include_router(dashboard.router, prefix="/dashboard", tags=["dashboard"])
