# adboard/integrations/oauth/token_exchange.py
"""
Token Exchange Service

Turns an authorization code from the consent redirect into a stored
credential:

1. POST the code to the provider's token endpoint (form-encoded)
2. Reject non-success responses or responses without an access token
3. Work out the expiry (expires_in, else the provider's fallback window)
4. Upsert the credential (refresh token only when one was issued)
5. Best-effort: list the provider's accounts and upsert them as linked accounts

Tokens never leave this service; callers get the credential identity only.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from adboard.core.errors import InvalidRequest, TokenExchangeFailed
from adboard.core.http_client import ProviderHttpClient

from .account_store import AccountStore
from .credential_store import CredentialStore
from .models import Credential
from .providers import Provider, get_strategy

logger = logging.getLogger(__name__)


def expiry_from_response(token_data: Dict[str, Any], fallback: timedelta,
                         now: Optional[datetime] = None) -> datetime:
    """Absolute expiry from ``expires_in`` seconds, or now + fallback when absent"""
    now = now or datetime.now(timezone.utc)
    expires_in = token_data.get('expires_in')
    try:
        seconds = int(expires_in) if expires_in is not None else None
    except (TypeError, ValueError):
        logger.warning(f"Ignoring unparseable expires_in: {expires_in!r}")
        seconds = None
    if seconds is None:
        return now + fallback
    return now + timedelta(seconds=seconds)


@dataclass
class ExchangeResult:
    """What the caller learns about a successful exchange"""
    user_id: str
    provider: str
    expires_at: datetime
    linked_accounts: int
    success: bool = True


class TokenExchangeService:
    """Authorization-code exchange for every supported provider"""

    def __init__(self, credentials: CredentialStore, accounts: AccountStore, http: ProviderHttpClient):
        self.credentials = credentials
        self.accounts = accounts
        self.http = http

    async def exchange(self, provider: Provider, code: str, redirect_uri: str, user_id: str) -> ExchangeResult:
        """
        Exchange an authorization code for tokens and persist them

        Raises:
            InvalidRequest: code or redirect URI missing
            ConfigurationError: client id/secret not configured
            TokenExchangeFailed: provider rejected the code
            StorageFailure: credential could not be stored
        """
        if not code or not redirect_uri:
            raise InvalidRequest("Missing code or redirectUri")

        strategy = get_strategy(provider)
        payload = strategy.exchange_payload(code, redirect_uri)

        logger.info(f"🔄 Exchanging {strategy.provider.value} authorization code for user {user_id}")
        response = await self.http.post_form(strategy.token_endpoint, payload)
        token_data = response.payload

        if not response.ok or not token_data.get('access_token'):
            logger.error(f"❌ {strategy.provider.value} token exchange failed: HTTP {response.status}")
            raise TokenExchangeFailed(strategy.error_message(token_data), details=token_data)

        credential = await self.credentials.upsert(Credential(
            user_id=user_id,
            provider=strategy.provider.value,
            access_token=token_data['access_token'],
            refresh_token=token_data.get('refresh_token') or None,
            expires_at=expiry_from_response(token_data, strategy.default_expiry),
        ))

        linked = await self._discover_accounts(provider, user_id, token_data['access_token'])

        logger.info(
            f"✅ {strategy.provider.value} connected for user {user_id} "
            f"(expires {credential.expires_at.isoformat()}, {linked} linked accounts)"
        )
        return ExchangeResult(
            user_id=user_id,
            provider=strategy.provider.value,
            expires_at=credential.expires_at,
            linked_accounts=linked,
        )

    async def _discover_accounts(self, provider: Provider, user_id: str, access_token: str) -> int:
        """Returns the number of accounts stored; never raises"""
        strategy = get_strategy(provider)
        try:
            accounts = await strategy.discover_accounts(self.http, user_id, access_token)
            for account in accounts:
                await self.accounts.upsert(account)
            return len(accounts)
        except Exception as e:
            # Credentials are already stored; discovery can be retried by reconnecting
            logger.warning(f"⚠️ {strategy.provider.value} account discovery failed for user {user_id}: {e}")
            return 0
