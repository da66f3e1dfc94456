"""FastAPI dependencies wiring the OAuth services to their stores"""

from fastapi import Depends

from adboard.core.http_client import ProviderHttpClient, get_provider_http

from .account_store import AccountStore, get_account_store
from .credential_store import CredentialStore, get_credential_store
from .token_exchange import TokenExchangeService
from .token_refresh import CredentialResolver, TokenRefreshService


def get_token_exchange_service(
    credentials: CredentialStore = Depends(get_credential_store),
    accounts: AccountStore = Depends(get_account_store),
    http: ProviderHttpClient = Depends(get_provider_http),
) -> TokenExchangeService:
    return TokenExchangeService(credentials, accounts, http)


def get_token_refresh_service(
    credentials: CredentialStore = Depends(get_credential_store),
    http: ProviderHttpClient = Depends(get_provider_http),
) -> TokenRefreshService:
    return TokenRefreshService(credentials, http)


def get_credential_resolver(
    credentials: CredentialStore = Depends(get_credential_store),
    refresher: TokenRefreshService = Depends(get_token_refresh_service),
) -> CredentialResolver:
    return CredentialResolver(credentials, refresher)
