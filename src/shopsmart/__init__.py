"""
Public surface for shopsmart.
Importing this module does **not** touch Redis or the database; call
`shopsmart.init_shopsmart(backend)` (or let `create_app` do it) on start-up.
"""

from .bootstrap import Services, build_backend, init_shopsmart
from .config import Settings
from .core import Chat, Message, Preferences, Profile, Record, RecordEngine, User
from .runtime import create_app

__all__ = [
    "Chat",
    "Message",
    "Preferences",
    "Profile",
    "Record",
    "RecordEngine",
    "Services",
    "Settings",
    "User",
    "build_backend",
    "create_app",
    "init_shopsmart",
]
