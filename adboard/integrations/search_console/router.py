"""
Search Console FastAPI Router

Endpoints:
- POST /search-console/data - keywords, pages, URL inspection and stats for one property
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from adboard.core.auth import get_current_user_id
from adboard.core.errors import InvalidRequest
from adboard.core.http_client import ProviderHttpClient, get_provider_http
from adboard.integrations.oauth.dependencies import get_credential_resolver
from adboard.integrations.oauth.token_refresh import CredentialResolver

from .client import SearchConsoleClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/search-console", tags=["Search Console"])


class SearchConsoleDataRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    website_url: Optional[str] = Field(None, alias='websiteUrl')
    start_date: Optional[str] = Field(None, alias='startDate')
    end_date: Optional[str] = Field(None, alias='endDate')


def get_search_console_client(
    resolver: CredentialResolver = Depends(get_credential_resolver),
    http: ProviderHttpClient = Depends(get_provider_http),
) -> SearchConsoleClient:
    return SearchConsoleClient(resolver, http)


@router.post("/data")
async def search_console_data(
    request: SearchConsoleDataRequest,
    user_id: str = Depends(get_current_user_id),
    client: SearchConsoleClient = Depends(get_search_console_client),
):
    if not request.website_url:
        raise InvalidRequest("Website URL is required")

    return await client.fetch_site_data(user_id, request.website_url, request.start_date, request.end_date)
