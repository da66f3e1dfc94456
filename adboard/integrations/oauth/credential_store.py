"""
Credential Store - per-user, per-provider OAuth credentials in ``api_tokens``.

Contract:
    get(user_id, provider)            -> Credential | None
    upsert(credential)                -> Credential   (keyed on (user_id, provider))
    update_tokens(user_id, provider, access_token, expires_at)

Tokens are encrypted before they reach the database. "Not found" is ``None``;
an unreachable store raises ``StorageFailure`` (from the database manager).
"""

import logging
from datetime import datetime
from typing import Optional

from adboard.core.crypto import encrypt_token, decrypt_token
from adboard.core.database import DatabaseManager, db_manager

from .models import Credential

logger = logging.getLogger(__name__)


class CredentialStore:
    """Credential persistence backed by PostgreSQL"""

    def __init__(self, db: DatabaseManager = db_manager):
        self.db = db

    async def get(self, user_id: str, provider: str) -> Optional[Credential]:
        row = await self.db.fetch_one(
            '''
            SELECT user_id, provider, access_token_encrypted, refresh_token_encrypted, expires_at
            FROM api_tokens
            WHERE user_id = $1 AND provider = $2
            ''',
            user_id, provider
        )
        if not row:
            return None
        return self._from_row(row)

    async def upsert(self, credential: Credential) -> Credential:
        """
        Create or replace the credential for (user_id, provider).

        A credential without a refresh token keeps the one already stored,
        so re-consenting against a provider that only issues refresh tokens
        on first consent doesn't lose it.
        """
        encrypted_refresh = encrypt_token(credential.refresh_token) if credential.refresh_token else None

        row = await self.db.fetch_one(
            '''
            INSERT INTO api_tokens
                (user_id, provider, access_token_encrypted, refresh_token_encrypted, expires_at)
            VALUES ($1, $2, $3, $4, $5)
            ON CONFLICT (user_id, provider) DO UPDATE SET
                access_token_encrypted = EXCLUDED.access_token_encrypted,
                refresh_token_encrypted = COALESCE(EXCLUDED.refresh_token_encrypted,
                                                   api_tokens.refresh_token_encrypted),
                expires_at = EXCLUDED.expires_at,
                updated_at = NOW()
            RETURNING user_id, provider, access_token_encrypted, refresh_token_encrypted, expires_at
            ''',
            credential.user_id,
            credential.provider,
            encrypt_token(credential.access_token),
            encrypted_refresh,
            credential.expires_at,
        )

        logger.info(f"💾 Stored {credential.provider} credential for user {credential.user_id}")
        return self._from_row(row)

    async def update_tokens(self, user_id: str, provider: str,
                            access_token: str, expires_at: datetime) -> None:
        """Update only the access token after a refresh (refresh token stays the same)"""
        await self.db.execute(
            '''
            UPDATE api_tokens
            SET access_token_encrypted = $1, expires_at = $2, updated_at = NOW()
            WHERE user_id = $3 AND provider = $4
            ''',
            encrypt_token(access_token), expires_at, user_id, provider
        )
        logger.debug(f"Updated {provider} access token for user {user_id}")

    @staticmethod
    def _from_row(row) -> Credential:
        encrypted_refresh = row['refresh_token_encrypted']
        return Credential(
            user_id=str(row['user_id']),
            provider=row['provider'],
            access_token=decrypt_token(row['access_token_encrypted']),
            refresh_token=decrypt_token(encrypted_refresh) if encrypted_refresh else None,
            expires_at=row['expires_at'],
        )


# Global instance
credential_store = CredentialStore()


def get_credential_store() -> CredentialStore:
    """FastAPI dependency"""
    return credential_store
