"""Records persisted by the OAuth integration"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional


@dataclass
class Credential:
    """One OAuth grant for one (user, provider) pair"""
    user_id: str
    provider: str
    access_token: str
    expires_at: datetime
    refresh_token: Optional[str] = None

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(timezone.utc)
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return now >= expires_at

    def __repr__(self) -> str:
        # Never render token material
        return (f"Credential(user_id={self.user_id!r}, provider={self.provider!r}, "
                f"expires_at={self.expires_at.isoformat()}, has_refresh_token={bool(self.refresh_token)})")


@dataclass
class LinkedAccount:
    """A remote account/property discovered under a credential"""
    user_id: str
    platform: str
    account_id: str
    account_name: Optional[str] = None
