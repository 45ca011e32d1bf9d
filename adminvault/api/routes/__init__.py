"""
API routes package.

Contains the admin account and authentication routers.
"""

from adminvault.api.routes.admin import router as admin_router
from adminvault.api.routes.auth import router as auth_router

__all__ = ["admin_router", "auth_router"]
