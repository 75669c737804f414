"""
FastAPI Dependencies
Dependency injection for the acting user and the live-view session factory
Source: https://fastapi.tiangolo.com/tutorial/dependencies/
"""

from typing import Optional

from fastapi import Header
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from healthcover.db.connection import get_session_maker
from healthcover.services.audit import UserContext


async def get_user_context(
    x_user_id: Optional[str] = Header(default=None),
    x_user_name: Optional[str] = Header(default=None),
) -> UserContext:
    """
    Acting user taken from the X-User-Id / X-User-Name headers.

    Requests without X-User-Id are attributed to the system.
    """
    user_id = x_user_id.strip() if x_user_id else None
    user_name = x_user_name.strip() if x_user_name else None
    return UserContext(user_id=user_id or None, user_name=user_name or None)


def get_view_session_maker() -> async_sessionmaker[AsyncSession]:
    """
    Session factory handed to live views.

    Each view fetch opens its own session from it.
    """
    return get_session_maker()
