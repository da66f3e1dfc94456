"""
Linked accounts (``ad_accounts``) and the user's selected-account preference
(``user_preferences``).
"""

import logging
from typing import List, Optional

from adboard.core.database import DatabaseManager, db_manager

from .models import LinkedAccount

logger = logging.getLogger(__name__)


class AccountStore:
    """Linked account persistence, unique on (user_id, platform, account_id)"""

    def __init__(self, db: DatabaseManager = db_manager):
        self.db = db

    async def upsert(self, account: LinkedAccount) -> None:
        await self.db.execute(
            '''
            INSERT INTO ad_accounts (user_id, platform, account_id, account_name)
            VALUES ($1, $2, $3, $4)
            ON CONFLICT (user_id, platform, account_id) DO UPDATE SET
                account_name = EXCLUDED.account_name,
                updated_at = NOW()
            ''',
            account.user_id, account.platform, account.account_id, account.account_name
        )

    async def list_for_user(self, user_id: str, platform: Optional[str] = None) -> List[LinkedAccount]:
        if platform:
            rows = await self.db.fetch_all(
                '''
                SELECT user_id, platform, account_id, account_name
                FROM ad_accounts
                WHERE user_id = $1 AND platform = $2
                ORDER BY account_name
                ''',
                user_id, platform
            )
        else:
            rows = await self.db.fetch_all(
                '''
                SELECT user_id, platform, account_id, account_name
                FROM ad_accounts
                WHERE user_id = $1
                ORDER BY platform, account_name
                ''',
                user_id
            )

        return [
            LinkedAccount(
                user_id=str(row['user_id']),
                platform=row['platform'],
                account_id=row['account_id'],
                account_name=row['account_name'],
            )
            for row in rows
        ]


class PreferenceStore:
    """Which linked account the user is currently looking at, per provider"""

    def __init__(self, db: DatabaseManager = db_manager):
        self.db = db

    async def get_selected_account(self, user_id: str, provider: str) -> Optional[str]:
        row = await self.db.fetch_one(
            '''
            SELECT selected_account_id FROM user_preferences
            WHERE user_id = $1 AND provider = $2
            ''',
            user_id, provider
        )
        return row['selected_account_id'] if row else None

    async def set_selected_account(self, user_id: str, provider: str, account_id: Optional[str]) -> None:
        await self.db.execute(
            '''
            INSERT INTO user_preferences (user_id, provider, selected_account_id)
            VALUES ($1, $2, $3)
            ON CONFLICT (user_id, provider) DO UPDATE SET
                selected_account_id = EXCLUDED.selected_account_id,
                updated_at = NOW()
            ''',
            user_id, provider, account_id
        )


# Global instances
account_store = AccountStore()
preference_store = PreferenceStore()


def get_account_store() -> AccountStore:
    """FastAPI dependency"""
    return account_store


def get_preference_store() -> PreferenceStore:
    """FastAPI dependency"""
    return preference_store
