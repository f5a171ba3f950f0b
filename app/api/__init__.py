from fastapi import APIRouter

from .routes import (
    health,
    signup,
    stamps,
    wallets,
)

api_router = APIRouter()

# Health check
api_router.include_router(health.router, tags=["health"])

# Customer-facing endpoints
api_router.include_router(signup.router, prefix="/api", tags=["signup"])
api_router.include_router(stamps.router, prefix="/api/stamps", tags=["stamps"])
api_router.include_router(wallets.router, prefix="/api/wallets", tags=["wallets"])
