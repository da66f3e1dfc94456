"""
Google Ads FastAPI Router

Endpoints:
- POST /google-ads/data - campaign and daily performance for one customer
"""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from adboard.core.auth import get_current_user_id
from adboard.core.errors import InvalidRequest
from adboard.core.http_client import ProviderHttpClient, get_provider_http
from adboard.integrations.oauth.dependencies import get_credential_resolver
from adboard.integrations.oauth.token_refresh import CredentialResolver

from .client import GoogleAdsClient

router = APIRouter(prefix="/google-ads", tags=["Google Ads"])


class GoogleAdsDataRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    account_id: Optional[str] = Field(None, alias='accountId')
    start_date: Optional[str] = Field(None, alias='startDate')
    end_date: Optional[str] = Field(None, alias='endDate')


def get_google_ads_client(
    resolver: CredentialResolver = Depends(get_credential_resolver),
    http: ProviderHttpClient = Depends(get_provider_http),
) -> GoogleAdsClient:
    return GoogleAdsClient(resolver, http)


@router.post("/data")
async def google_ads_data(
    request: GoogleAdsDataRequest,
    user_id: str = Depends(get_current_user_id),
    client: GoogleAdsClient = Depends(get_google_ads_client),
):
    if not request.account_id:
        raise InvalidRequest("accountId is required")

    return await client.fetch_account_data(user_id, request.account_id, request.start_date, request.end_date)
