"""API routes."""

from .documents import router as documents_router
from .organizations import router as organizations_router
from .users import router as users_router

__all__ = [
    "documents_router",
    "organizations_router",
    "users_router",
]
