"""
Database models for Picture Tales.

Table definitions:
- users(id, name, email, loginMethod, role, createdAt, lastSignedIn)
- stories(id, userId, imageUrl, imageDescription, story, title, genre, mood,
  characters, setting, createdAt, updatedAt, seq)

Column names are camelCase to match the public JSON shape; Python attributes
are snake_case.
"""
import json
import threading
import time
from datetime import datetime
from typing import List

from sqlalchemy import BigInteger, Column, String, Text, DateTime, Enum
from sqlalchemy.sql import func

from .config import Base

_sequence_lock = threading.Lock()
_last_sequence = 0


def next_insertion_sequence() -> int:
    """Strictly increasing insertion key, seeded from the wall clock in nanoseconds."""
    global _last_sequence
    with _sequence_lock:
        _last_sequence = max(time.time_ns(), _last_sequence + 1)
        return _last_sequence


class User(Base):
    """User table - identities asserted by the authentication gateway."""

    __tablename__ = "users"

    id = Column(String(64), primary_key=True)
    name = Column(Text, nullable=True)
    email = Column(String(320), nullable=True)
    login_method = Column("loginMethod", String(64), nullable=True)
    role = Column(Enum("user", "admin", name="user_role"), default="user", nullable=False)
    created_at = Column("createdAt", DateTime, default=func.now())
    last_signed_in = Column("lastSignedIn", DateTime, default=func.now())

    def __repr__(self):
        return f"<User(id='{self.id}', role='{self.role}')>"


class Story(Base):
    """Stories table - one generated narrative per uploaded image."""

    __tablename__ = "stories"

    id = Column(String(64), primary_key=True)  # UUID4, assigned by the pipeline
    user_id = Column("userId", String(64), nullable=False, index=True)
    image_url = Column("imageUrl", Text, nullable=False)
    image_description = Column("imageDescription", Text, nullable=True)
    story = Column(Text, nullable=False)
    title = Column(String(255), nullable=True)
    genre = Column(String(100), nullable=True)
    mood = Column(String(100), nullable=True)
    characters = Column(Text, nullable=True)  # JSON array
    setting = Column(Text, nullable=True)
    created_at = Column("createdAt", DateTime, default=datetime.utcnow)
    updated_at = Column("updatedAt", DateTime, default=datetime.utcnow)
    # Listing tie-break for stories sharing a createdAt value
    seq = Column(BigInteger, nullable=False, default=next_insertion_sequence, index=True)

    def character_list(self) -> List[str]:
        """Deserialize the stored character array."""
        if not self.characters:
            return []
        return json.loads(self.characters)

    def __repr__(self):
        return f"<Story(id='{self.id}', title='{self.title}', user_id='{self.user_id}')>"
