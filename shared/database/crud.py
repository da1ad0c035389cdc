"""
CRUD operations for Picture Tales database models.

Every store is built around an injected DatabaseHandle. When the database is
unavailable the operations log a warning and return a safe empty value
instead of raising.
"""
import logging
from datetime import datetime
from typing import List, Optional, Dict, Any

from sqlalchemy import desc
from sqlalchemy.exc import SQLAlchemyError, OperationalError, InterfaceError
from sqlalchemy.orm import Session

from ..errors import PersistenceError
from .config import DatabaseHandle
from .models import User, Story

logger = logging.getLogger(__name__)


class BaseCRUD:
    """Base class for handle-backed CRUD operations."""

    def __init__(self, model, db: DatabaseHandle):
        self.model = model
        self.db = db

    def _session(self, action: str) -> Optional[Session]:
        session = self.db.get_session()
        if session is None:
            logger.warning(f"[Database] Cannot {action}: database not available")
        return session

    def _lost_connection(self, session: Session, action: str, error: Exception):
        session.rollback()
        logger.error(f"[Database] Connection lost while trying to {action}: {error}")
        self.db.reset()
        raise PersistenceError(f"Database connection lost during {action}") from error


class StoryStore(BaseCRUD):
    """CRUD operations for the stories table."""

    def __init__(self, db: DatabaseHandle):
        super().__init__(Story, db)

    def create(self, **fields) -> Optional[Story]:
        """
        Insert a story and read it back.

        Args:
            **fields: Column values; `id` and `user_id` are required,
                `characters` is JSON array text.

        Returns:
            The persisted Story, or None if the write did not complete.

        Raises:
            PersistenceError: If the connection drops during the write.
        """
        session = self._session("create story")
        if session is None:
            return None

        try:
            story = Story(**fields)
            session.add(story)
            session.commit()
            session.refresh(story)
            return story
        except (OperationalError, InterfaceError) as e:
            self._lost_connection(session, "create story", e)
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"[Database] Failed to create story: {e}")
            return None
        finally:
            session.close()

    def list_by_user(self, user_id: str) -> List[Story]:
        """Get a user's stories, most recent first."""
        session = self._session("get stories")
        if session is None:
            return []

        try:
            return (session.query(Story)
                    .filter(Story.user_id == user_id)
                    .order_by(desc(Story.created_at), desc(Story.seq))
                    .all())
        except SQLAlchemyError as e:
            logger.error(f"[Database] Failed to get stories: {e}")
            return []
        finally:
            session.close()

    def get_by_id(self, id: str, user_id: Optional[str] = None) -> Optional[Story]:
        """
        Get a story by id.

        Without `user_id` no ownership filter is applied; callers must compare
        `story.user_id` before exposing the record.
        """
        session = self._session("get story")
        if session is None:
            return None

        try:
            query = session.query(Story).filter(Story.id == id)
            if user_id is not None:
                query = query.filter(Story.user_id == user_id)
            return query.first()
        except SQLAlchemyError as e:
            logger.error(f"[Database] Failed to get story: {e}")
            return None
        finally:
            session.close()

    def delete_by_id(self, id: str) -> bool:
        """Delete a story by id. Performs no ownership check."""
        session = self._session("delete story")
        if session is None:
            return False

        try:
            session.query(Story).filter(Story.id == id).delete(synchronize_session=False)
            session.commit()
            return True
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"[Database] Failed to delete story: {e}")
            return False
        finally:
            session.close()


class UserStore(BaseCRUD):
    """CRUD operations for the users table."""

    TEXT_FIELDS = ("name", "email", "login_method")

    def __init__(self, db: DatabaseHandle, owner_id: Optional[str] = None):
        super().__init__(User, db)
        self.owner_id = owner_id

    def upsert_user(self, id: str, role: Optional[str] = None,
                    last_signed_in: Optional[datetime] = None, **fields: Any) -> Optional[User]:
        """
        Insert a user or update the supplied fields of an existing one.

        Fields passed as None are cleared; fields not passed are left alone.
        The configured owner is promoted to admin when no role is given.
        """
        if not id:
            raise ValueError("User ID is required for upsert")

        session = self._session("upsert user")
        if session is None:
            return None

        values: Dict[str, Any] = {
            key: value for key, value in fields.items() if key in self.TEXT_FIELDS
        }
        if role is None and self.owner_id and id == self.owner_id:
            role = "admin"
        if role is not None:
            values["role"] = role
        values["last_signed_in"] = last_signed_in or datetime.utcnow()

        try:
            user = session.get(User, id)
            if user is None:
                user = User(id=id, **values)
                session.add(user)
            else:
                for key, value in values.items():
                    setattr(user, key, value)
            session.commit()
            session.refresh(user)
            return user
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"[Database] Failed to upsert user: {e}")
            raise
        finally:
            session.close()

    def get_user(self, id: str) -> Optional[User]:
        """Get user by id."""
        session = self._session("get user")
        if session is None:
            return None

        try:
            return session.get(User, id)
        except SQLAlchemyError as e:
            logger.error(f"[Database] Failed to get user: {e}")
            return None
        finally:
            session.close()
