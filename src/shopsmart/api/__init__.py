"""HTTP surface: one router per resource plus the shared error handlers."""

from .auth import router as auth_router
from .chats import router as chats_router
from .errors import install_error_handlers
from .profiles import router as profiles_router
from .sample import router as sample_router
from .users import router as users_router

ROUTERS = (auth_router, users_router, profiles_router, chats_router, sample_router)

__all__ = ["ROUTERS", "install_error_handlers"]
