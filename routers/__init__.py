# routers/__init__.py

from fastapi import APIRouter

from .permissions import router as permissions_router
from .roles import router as roles_router
from .user_roles import router as user_roles_router
from .requirements import router as requirements_router
from .health import router as health_router


# Master router for mounting under a prefix
api_router = APIRouter()

api_router.include_router(permissions_router)
api_router.include_router(roles_router)
api_router.include_router(user_roles_router)
api_router.include_router(requirements_router)
api_router.include_router(health_router)

__all__ = ["api_router"]
