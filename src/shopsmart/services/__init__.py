from .chats import CHATS, ChatService
from .profiles import PROFILES, ProfileService
from .ratelimit import RateLimiter
from .users import USERS, UserService

__all__ = [
    "CHATS",
    "PROFILES",
    "USERS",
    "ChatService",
    "ProfileService",
    "RateLimiter",
    "UserService",
]
