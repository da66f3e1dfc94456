"""
OAuth provider strategies.

One ``ProviderStrategy`` per ``Provider`` captures everything that differs
between Google Search Console, Google Ads and Meta: token endpoint, client
credential variables, expiry fallback, how errors are worded, and how linked
accounts are discovered after a successful exchange.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Dict, List, Optional
from urllib.parse import urlencode, urlparse

from adboard.config.settings import settings
from adboard.core.errors import ConfigurationError
from adboard.core.http_client import ProviderHttpClient

from .models import LinkedAccount

logger = logging.getLogger(__name__)

GOOGLE_TOKEN_URL = 'https://oauth2.googleapis.com/token'
GOOGLE_AUTH_URL = 'https://accounts.google.com/o/oauth2/v2/auth'
SEARCH_CONSOLE_SITES_URL = 'https://www.googleapis.com/webmasters/v3/sites'
GOOGLE_ADS_API_BASE = 'https://googleads.googleapis.com/v17'
META_GRAPH_BASE = 'https://graph.facebook.com/v19.0'
META_AUTH_URL = 'https://www.facebook.com/v19.0/dialog/oauth'


class Provider(str, Enum):
    GOOGLE_SEARCH_CONSOLE = 'google_search_console'
    GOOGLE_ADS = 'google_ads'
    META = 'meta'


class AccountDiscoveryError(Exception):
    """Listing the provider's accounts failed; never fails an exchange"""


@dataclass(frozen=True)
class ClientCredentials:
    client_id: str
    client_secret: str


class ProviderStrategy:
    """Base strategy; subclasses fill in the provider specifics"""

    provider: Provider
    token_endpoint: str
    authorization_endpoint: str
    client_id_env: str
    client_secret_env: str
    scopes: List[str] = []
    # Used when the token response omits expires_in
    default_expiry: timedelta = timedelta(hours=1)
    refresh_default_expiry: timedelta = timedelta(seconds=3600)

    def client_credentials(self) -> ClientCredentials:
        """Raises ConfigurationError when the client id/secret is absent"""
        client_id = settings.lookup(self.client_id_env)
        client_secret = settings.lookup(self.client_secret_env)
        missing = [name for name, value in (
            (self.client_id_env, client_id),
            (self.client_secret_env, client_secret),
        ) if not value]
        if missing:
            raise ConfigurationError(
                f"Missing {self.provider.value} OAuth credentials. Check {' and '.join(missing)}.",
                details={self.client_id_env: bool(client_id), self.client_secret_env: bool(client_secret)}
            )
        return ClientCredentials(client_id, client_secret)

    def client_id(self) -> str:
        return self.client_credentials().client_id

    def exchange_payload(self, code: str, redirect_uri: str) -> Dict[str, str]:
        creds = self.client_credentials()
        return {
            'code': code,
            'client_id': creds.client_id,
            'client_secret': creds.client_secret,
            'redirect_uri': redirect_uri,
            'grant_type': 'authorization_code',
        }

    def refresh_payload(self, refresh_token: str) -> Dict[str, str]:
        creds = self.client_credentials()
        return {
            'client_id': creds.client_id,
            'client_secret': creds.client_secret,
            'refresh_token': refresh_token,
            'grant_type': 'refresh_token',
        }

    def authorization_url(self, redirect_uri: str, state: str) -> str:
        params = {
            'client_id': self.client_id(),
            'redirect_uri': redirect_uri,
            'response_type': 'code',
            'scope': ' '.join(self.scopes),
            'state': state,
        }
        params.update(self.extra_authorization_params())
        return f"{self.authorization_endpoint}?{urlencode(params)}"

    def extra_authorization_params(self) -> Dict[str, str]:
        return {}

    def error_message(self, payload: Dict) -> str:
        for key in ('error_description', 'error'):
            message = payload.get(key)
            if isinstance(message, str) and message:
                return message
        return 'Failed to get access token'

    async def discover_accounts(self, http: ProviderHttpClient, user_id: str,
                                access_token: str) -> List[LinkedAccount]:
        raise NotImplementedError

    @staticmethod
    def _bearer(access_token: str) -> Dict[str, str]:
        return {'Authorization': f'Bearer {access_token}'}


class _GoogleStrategy(ProviderStrategy):
    token_endpoint = GOOGLE_TOKEN_URL
    authorization_endpoint = GOOGLE_AUTH_URL
    client_id_env = 'GOOGLE_CLIENT_ID'
    client_secret_env = 'GOOGLE_CLIENT_SECRET'

    def extra_authorization_params(self) -> Dict[str, str]:
        # offline + consent so Google issues a refresh token
        return {'access_type': 'offline', 'prompt': 'consent'}


class SearchConsoleStrategy(_GoogleStrategy):
    provider = Provider.GOOGLE_SEARCH_CONSOLE
    scopes = ['https://www.googleapis.com/auth/webmasters.readonly']
    default_expiry = timedelta(days=7)

    async def discover_accounts(self, http: ProviderHttpClient, user_id: str,
                                access_token: str) -> List[LinkedAccount]:
        response = await http.get_json(SEARCH_CONSOLE_SITES_URL, headers=self._bearer(access_token))
        if not response.ok:
            raise AccountDiscoveryError(f"Search Console sites listing failed: {response.error_summary()}")

        accounts = []
        for site in response.payload.get('siteEntry', []):
            site_url = site.get('siteUrl')
            if not site_url:
                continue
            accounts.append(LinkedAccount(
                user_id=user_id,
                platform=self.provider.value,
                account_id=site_url,
                account_name=_site_label(site_url),
            ))
        return accounts


class GoogleAdsStrategy(_GoogleStrategy):
    provider = Provider.GOOGLE_ADS
    scopes = ['https://www.googleapis.com/auth/adwords']
    default_expiry = timedelta(hours=1)

    def developer_token(self) -> Optional[str]:
        return settings.lookup('GOOGLE_ADS_DEVELOPER_TOKEN')

    def api_headers(self, access_token: str) -> Dict[str, str]:
        headers = self._bearer(access_token)
        developer_token = self.developer_token()
        if developer_token:
            headers['developer-token'] = developer_token
        return headers

    async def discover_accounts(self, http: ProviderHttpClient, user_id: str,
                                access_token: str) -> List[LinkedAccount]:
        headers = self.api_headers(access_token)
        if 'developer-token' not in headers:
            logger.warning("⚠️ GOOGLE_ADS_DEVELOPER_TOKEN not configured - account listing will likely fail")

        response = await http.get_json(f"{GOOGLE_ADS_API_BASE}/customers:listAccessibleCustomers", headers=headers)
        if not response.ok:
            raise AccountDiscoveryError(f"Google Ads customer listing failed: {response.error_summary()}")

        accounts = []
        for resource_name in response.payload.get('resourceNames', []):
            customer_id = resource_name.rsplit('/', 1)[-1]
            account_name = f"Google Ads Account {customer_id}"

            # Names are best-effort; a customer we can't read still gets linked
            detail = await http.get_json(f"{GOOGLE_ADS_API_BASE}/customers/{customer_id}", headers=headers)
            if detail.ok:
                account_name = detail.payload.get('descriptiveName') or detail.payload.get('name') or account_name
            else:
                logger.info(f"Could not fetch details for customer {customer_id}, using default name")

            accounts.append(LinkedAccount(
                user_id=user_id,
                platform=self.provider.value,
                account_id=customer_id,
                account_name=account_name,
            ))
        return accounts


class MetaStrategy(ProviderStrategy):
    provider = Provider.META
    token_endpoint = f'{META_GRAPH_BASE}/oauth/access_token'
    authorization_endpoint = META_AUTH_URL
    client_id_env = 'META_APP_ID'
    client_secret_env = 'META_APP_SECRET'
    scopes = ['ads_read', 'ads_management']
    default_expiry = timedelta(days=60)

    def error_message(self, payload: Dict) -> str:
        error = payload.get('error')
        if isinstance(error, dict) and error.get('message'):
            return error['message']
        return super().error_message(payload)

    async def discover_accounts(self, http: ProviderHttpClient, user_id: str,
                                access_token: str) -> List[LinkedAccount]:
        response = await http.get_json(
            f"{META_GRAPH_BASE}/me/adaccounts?fields=id,name,account_id",
            headers=self._bearer(access_token)
        )
        if not response.ok:
            raise AccountDiscoveryError(f"Meta ad account listing failed: {response.error_summary()}")

        accounts = []
        for account in response.payload.get('data', []):
            raw_id = account.get('id', '')
            account_id = account.get('account_id') or raw_id.replace('act_', '')
            if not account_id:
                continue
            accounts.append(LinkedAccount(
                user_id=user_id,
                platform=self.provider.value,
                account_id=account_id,
                account_name=account.get('name') or f"Meta Ad Account {raw_id}",
            ))
        return accounts


def _site_label(site_url: str) -> str:
    # Domain properties look like "sc-domain:example.com"
    if site_url.startswith('sc-domain:'):
        return site_url.split(':', 1)[1]
    return urlparse(site_url).hostname or site_url


PROVIDER_STRATEGIES: Dict[Provider, ProviderStrategy] = {
    Provider.GOOGLE_SEARCH_CONSOLE: SearchConsoleStrategy(),
    Provider.GOOGLE_ADS: GoogleAdsStrategy(),
    Provider.META: MetaStrategy(),
}


def get_strategy(provider: Provider) -> ProviderStrategy:
    return PROVIDER_STRATEGIES[Provider(provider)]


def check_provider_configuration() -> Dict[str, bool]:
    """Which providers have client credentials configured (for health checks)"""
    status = {}
    for provider, strategy in PROVIDER_STRATEGIES.items():
        try:
            strategy.client_credentials()
            status[provider.value] = True
        except ConfigurationError:
            status[provider.value] = False
    return status
