# adboard/integrations/oauth/router.py
"""
OAuth FastAPI Router
Connect flow for Google Search Console, Google Ads and Meta

Endpoints:
- POST /oauth/{provider}                      - action dispatch (exchange_code, get_client_id, authorize_url)
- GET  /oauth/accounts                        - linked accounts, optionally filtered by ?platform=
- GET  /oauth/{provider}/selected-account     - account the dashboard is showing
- PUT  /oauth/{provider}/selected-account     - change it

All endpoints require the dashboard session (Authorization: Bearer <token>).
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field

from adboard.config.settings import settings
from adboard.core.auth import get_current_user_id
from adboard.core.errors import InvalidRequest, ResourceNotFound

from .account_store import AccountStore, PreferenceStore, get_account_store, get_preference_store
from .dependencies import get_token_exchange_service
from .providers import Provider, get_strategy
from .state_manager import StateManager, get_state_manager
from .token_exchange import TokenExchangeService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/oauth", tags=["OAuth"])

# ============================================================================
# REQUEST MODELS
# ============================================================================

class OAuthActionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    action: str
    code: Optional[str] = None
    redirect_uri: Optional[str] = Field(None, alias='redirectUri')
    state: Optional[str] = None


class SelectedAccountRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    account_id: Optional[str] = Field(None, alias='accountId')


def _parse_provider(provider: str) -> Provider:
    try:
        return Provider(provider)
    except ValueError:
        raise InvalidRequest(f"Unsupported provider: {provider}")


# ============================================================================
# ACCOUNTS
# ============================================================================

@router.get("/accounts")
async def list_linked_accounts(
    platform: Optional[str] = Query(None),
    user_id: str = Depends(get_current_user_id),
    accounts: AccountStore = Depends(get_account_store),
):
    if platform:
        platform = _parse_provider(platform).value

    linked = await accounts.list_for_user(user_id, platform)
    return {
        'success': True,
        'accounts': [
            {
                'platform': account.platform,
                'accountId': account.account_id,
                'accountName': account.account_name,
            }
            for account in linked
        ],
    }


# ============================================================================
# CONNECT FLOW
# ============================================================================

@router.post("/{provider}")
async def oauth_action(
    provider: str,
    request: OAuthActionRequest,
    user_id: str = Depends(get_current_user_id),
    exchange_service: TokenExchangeService = Depends(get_token_exchange_service),
    states: StateManager = Depends(get_state_manager),
):
    """Dispatch on ``action``; unknown actions are a 400"""
    provider_enum = _parse_provider(provider)
    strategy = get_strategy(provider_enum)

    if request.action == 'get_client_id':
        return {'success': True, 'clientId': strategy.client_id()}

    if request.action == 'authorize_url':
        if not request.redirect_uri:
            raise InvalidRequest("Missing redirectUri")
        # Fail on missing configuration before a nonce is stored
        strategy.client_credentials()
        state = await states.issue(user_id, provider_enum.value, request.redirect_uri)
        return {
            'success': True,
            'authorizationUrl': strategy.authorization_url(request.redirect_uri, state),
            'state': state,
        }

    if request.action == 'exchange_code':
        if not request.code or not request.redirect_uri:
            raise InvalidRequest("Missing code or redirectUri")

        if request.state:
            issued = await states.consume(request.state, user_id, provider_enum.value)
            if issued.redirect_uri != request.redirect_uri:
                raise InvalidRequest("redirectUri does not match the authorization request")
        elif settings.oauth_require_state:
            raise InvalidRequest("Missing state")

        result = await exchange_service.exchange(provider_enum, request.code, request.redirect_uri, user_id)
        return {
            'success': True,
            'provider': result.provider,
            'userId': result.user_id,
            'expiresAt': result.expires_at.isoformat(),
            'linkedAccounts': result.linked_accounts,
        }

    raise InvalidRequest("Invalid action")


# ============================================================================
# SELECTED ACCOUNT
# ============================================================================

@router.get("/{provider}/selected-account")
async def get_selected_account(
    provider: str,
    user_id: str = Depends(get_current_user_id),
    preferences: PreferenceStore = Depends(get_preference_store),
):
    provider_enum = _parse_provider(provider)
    account_id = await preferences.get_selected_account(user_id, provider_enum.value)
    return {'success': True, 'accountId': account_id}


@router.put("/{provider}/selected-account")
async def set_selected_account(
    provider: str,
    request: SelectedAccountRequest,
    user_id: str = Depends(get_current_user_id),
    accounts: AccountStore = Depends(get_account_store),
    preferences: PreferenceStore = Depends(get_preference_store),
):
    provider_enum = _parse_provider(provider)

    if request.account_id is not None:
        linked = await accounts.list_for_user(user_id, provider_enum.value)
        if request.account_id not in {account.account_id for account in linked}:
            raise ResourceNotFound("Account is not linked to this user")

    await preferences.set_selected_account(user_id, provider_enum.value, request.account_id)
    logger.info(f"📌 User {user_id} selected {provider_enum.value} account {request.account_id}")
    return {'success': True, 'accountId': request.account_id}
