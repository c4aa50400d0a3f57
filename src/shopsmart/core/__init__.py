from .engine import RecordEngine
from .record import Chat, Message, Preferences, Profile, Record, User

__all__ = ["Chat", "Message", "Preferences", "Profile", "Record", "RecordEngine", "User"]
