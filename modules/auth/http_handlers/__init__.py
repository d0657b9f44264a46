"""
Auth HTTP Handlers Package.
"""
from .auth import router as auth_router
from .dependencies import require_user, require_verified_user

__all__ = ["auth_router", "require_user", "require_verified_user"]
