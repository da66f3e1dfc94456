"""
Session authentication for the dashboard's own API.

The dashboard sends its session token as ``Authorization: Bearer <token>``.
Sessions live in the ``user_sessions`` table, written by the login service;
this module only validates them and resolves the current user id.
"""

import logging
from datetime import datetime, timezone
from typing import Optional, Dict, Any

from fastapi import Header

from .database import DatabaseManager, db_manager
from .errors import AuthenticationError

logger = logging.getLogger(__name__)

__all__ = [
    'AuthManager',
    'auth_manager',
    'extract_bearer_token',
    'get_current_user',
    'get_current_user_id',
]


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Strip the ``Bearer`` prefix from an Authorization header"""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(' ')
    if scheme.lower() != 'bearer' or not token.strip():
        return None
    return token.strip()


class AuthManager:
    """Validates dashboard sessions against the user_sessions table"""

    def __init__(self, db: DatabaseManager = db_manager):
        self.db = db

    async def validate_session(self, session_token: str) -> Optional[Dict[str, Any]]:
        """
        Validate a session token and return user info if valid
        """
        if not session_token:
            return None

        session = await self.db.fetch_one(
            """
            SELECT user_id, user_email, expires_at
            FROM user_sessions
            WHERE session_token = $1
            """,
            session_token
        )

        if not session:
            logger.debug("🔐 Session token not found in database")
            return None

        expires_at = session['expires_at']
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)

        if datetime.now(timezone.utc) > expires_at:
            logger.info(f"🔐 Session expired for user {session['user_id']}")
            return None

        return {
            'id': str(session['user_id']),
            'email': session['user_email'],
        }


# Global instance
auth_manager = AuthManager()


async def get_current_user(authorization: Optional[str] = Header(None)) -> Dict[str, Any]:
    """
    FastAPI dependency resolving the authenticated user
    Usage: user = Depends(get_current_user)
    """
    token = extract_bearer_token(authorization)
    if not token:
        raise AuthenticationError("Not authenticated")

    user = await auth_manager.validate_session(token)
    if not user:
        raise AuthenticationError("User not found")

    return user


async def get_current_user_id(authorization: Optional[str] = Header(None)) -> str:
    """FastAPI dependency returning only the user id"""
    user = await get_current_user(authorization)
    return user['id']
