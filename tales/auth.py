"""
Caller identity and story ownership.

Authentication happens upstream: the gateway asserts the caller through the
X-User-Id header (plus optional profile headers). Every story read or delete
passes through authorize_story_access.
"""
import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.exc import SQLAlchemyError

from shared.database import Story, UserStore

from .dependencies import get_user_store
from .errors import UnauthorizedAccess
from .models import CurrentUser

logger = logging.getLogger(__name__)


async def get_current_user(
    x_user_id: Optional[str] = Header(None),
    x_user_name: Optional[str] = Header(None),
    x_user_email: Optional[str] = Header(None),
    x_login_method: Optional[str] = Header(None),
    user_store: UserStore = Depends(get_user_store)
) -> CurrentUser:
    """Resolve the authenticated caller and record the sign-in."""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Unauthorized")

    profile = {
        key: value for key, value in (
            ("name", x_user_name),
            ("email", x_user_email),
            ("login_method", x_login_method),
        ) if value is not None
    }

    try:
        user = user_store.upsert_user(x_user_id, **profile)
    except SQLAlchemyError as e:
        logger.error(f"Failed to record sign-in for {x_user_id}: {e}")
        user = None

    if user is None:
        return CurrentUser(id=x_user_id, **profile)
    return CurrentUser.model_validate(user)


def authorize_story_access(story: Optional[Story], user: CurrentUser) -> Story:
    """
    Return the story if the caller owns it.

    Raises:
        UnauthorizedAccess: The story is absent or owned by someone else
    """
    if story is None or story.user_id != user.id:
        raise UnauthorizedAccess()
    return story
