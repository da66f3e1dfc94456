"""
OAuth ``state`` nonces for CSRF protection.

The server issues the nonce when it builds the authorization URL, remembers
who asked for it, and accepts it exactly once within STATE_TOKEN_MAX_AGE.
Nonces are kept in ``oauth_states`` so any worker can validate the callback.
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from adboard.core.database import DatabaseManager, db_manager
from adboard.core.errors import InvalidRequest

logger = logging.getLogger(__name__)

# Maximum age for state tokens
STATE_TOKEN_MAX_AGE = timedelta(minutes=10)


@dataclass
class OAuthState:
    state: str
    user_id: str
    provider: str
    redirect_uri: str
    created_at: datetime


class StateManager:
    """Issues and consumes single-use OAuth state nonces"""

    def __init__(self, db: DatabaseManager = db_manager):
        self.db = db

    async def issue(self, user_id: str, provider: str, redirect_uri: str) -> str:
        await self._cleanup_expired()

        state = secrets.token_urlsafe(32)
        await self.db.execute(
            '''
            INSERT INTO oauth_states (state, user_id, provider, redirect_uri, created_at)
            VALUES ($1, $2, $3, $4, $5)
            ''',
            state, user_id, provider, redirect_uri, datetime.now(timezone.utc)
        )
        logger.info(f"OAuth state issued for user {user_id} ({provider})")
        return state

    async def consume(self, state: str, user_id: str, provider: str) -> OAuthState:
        """
        Validate and delete a state nonce.

        Only the user and provider it was issued to can consume it; anyone else
        gets the same rejection and leaves the nonce in place.

        Raises:
            InvalidRequest: unknown, replayed, expired, or issued to someone else
        """
        row = await self.db.fetch_one(
            '''
            DELETE FROM oauth_states
            WHERE state = $1 AND user_id = $2 AND provider = $3
            RETURNING state, user_id, provider, redirect_uri, created_at
            ''',
            state, user_id, provider
        )
        if not row:
            logger.warning(f"⚠️ Unknown OAuth state presented by user {user_id} for {provider}")
            raise InvalidRequest("Invalid or expired state token")

        record = OAuthState(
            state=row['state'],
            user_id=str(row['user_id']),
            provider=row['provider'],
            redirect_uri=row['redirect_uri'],
            created_at=row['created_at'],
        )

        created_at = record.created_at
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        if datetime.now(timezone.utc) - created_at > STATE_TOKEN_MAX_AGE:
            raise InvalidRequest("State token expired")

        return record

    async def _cleanup_expired(self) -> None:
        cutoff = datetime.now(timezone.utc) - STATE_TOKEN_MAX_AGE
        await self.db.execute("DELETE FROM oauth_states WHERE created_at < $1", cutoff)


# Global instance
state_manager = StateManager()


def get_state_manager() -> StateManager:
    """FastAPI dependency"""
    return state_manager
