from .config import Base, DatabaseHandle, DatabaseSettings
from .models import User, Story
from .crud import StoryStore, UserStore

__all__ = [
    "Base",
    "DatabaseHandle",
    "DatabaseSettings",
    "User",
    "Story",
    "StoryStore",
    "UserStore",
]
