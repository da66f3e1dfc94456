"""
Token refresh and on-demand access token resolution.

Refresh never mutates the stored credential unless the provider returned a
new access token. A credential without a refresh token (Meta, or a Google
grant that never issued one) can only be recovered by reconnecting.
"""

import logging
from datetime import datetime
from typing import Optional

from adboard.core.errors import ReauthenticationRequired, TokenRefreshFailed
from adboard.core.http_client import ProviderHttpClient

from .credential_store import CredentialStore
from .models import Credential
from .providers import Provider, get_strategy
from .token_exchange import expiry_from_response

logger = logging.getLogger(__name__)


class TokenRefreshService:
    """Trades a stored refresh token for a new access token"""

    def __init__(self, credentials: CredentialStore, http: ProviderHttpClient):
        self.credentials = credentials
        self.http = http

    async def refresh(self, credential: Credential) -> Credential:
        """
        Returns the refreshed credential (same refresh token, new access token/expiry)

        Raises:
            ReauthenticationRequired: no refresh token stored
            ConfigurationError: client id/secret not configured
            TokenRefreshFailed: provider rejected the refresh token
        """
        if not credential.refresh_token:
            logger.warning(f"⚠️ No refresh token for {credential.provider} (user {credential.user_id})")
            raise ReauthenticationRequired(
                f"No refresh token available for {credential.provider}. Please reconnect your account."
            )

        strategy = get_strategy(credential.provider)
        payload = strategy.refresh_payload(credential.refresh_token)

        logger.info(f"🔄 Refreshing {strategy.provider.value} access token for user {credential.user_id}")
        response = await self.http.post_form(strategy.token_endpoint, payload)
        token_data = response.payload

        if not response.ok or not token_data.get('access_token'):
            logger.error(f"❌ {strategy.provider.value} token refresh failed: HTTP {response.status}")
            raise TokenRefreshFailed(
                "Token refresh failed. Please reconnect your account.",
                details={'provider_error': strategy.error_message(token_data)}
            )

        expires_at = expiry_from_response(token_data, strategy.refresh_default_expiry)
        await self.credentials.update_tokens(
            credential.user_id, credential.provider, token_data['access_token'], expires_at
        )

        logger.info(f"✅ {strategy.provider.value} token refreshed for user {credential.user_id}")
        return Credential(
            user_id=credential.user_id,
            provider=credential.provider,
            access_token=token_data['access_token'],
            refresh_token=credential.refresh_token,
            expires_at=expires_at,
        )


class CredentialResolver:
    """Loads a user's credential and refreshes it first when it has expired"""

    def __init__(self, credentials: CredentialStore, refresher: TokenRefreshService):
        self.credentials = credentials
        self.refresher = refresher

    async def get_credential(self, user_id: str, provider: Provider,
                             now: Optional[datetime] = None) -> Credential:
        provider = Provider(provider)
        credential = await self.credentials.get(user_id, provider.value)
        if credential is None:
            raise ReauthenticationRequired(
                f"No {provider.value} credentials found. Please connect your account."
            )

        if credential.is_expired(now):
            logger.info(f"⏰ {provider.value} token expired for user {user_id}, refreshing")
            credential = await self.refresher.refresh(credential)

        return credential

    async def get_access_token(self, user_id: str, provider: Provider) -> str:
        credential = await self.get_credential(user_id, provider)
        return credential.access_token
