# adboard/integrations/search_console/client.py
"""
Search Console Client - Direct REST API Implementation
Fetches keyword, page and URL inspection data for one property.

Each query is isolated: a failing query is recorded as a failure marker and
the response carries whatever did succeed, with stats computed from it.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from adboard.config.settings import settings
from adboard.core.errors import PartialDataFailure
from adboard.core.http_client import ProviderHttpClient
from adboard.integrations.oauth.providers import Provider
from adboard.integrations.oauth.token_refresh import CredentialResolver

from . import data_processor

logger = logging.getLogger(__name__)

SEARCH_CONSOLE_API_BASE = "https://searchconsole.googleapis.com/webmasters/v3"

KEYWORDS_ROW_LIMIT = 25000
PAGES_ROW_LIMIT = 10000


class SearchConsoleClient:
    """Google Search Console client using direct REST API calls"""

    def __init__(self, resolver: CredentialResolver, http: ProviderHttpClient,
                 inspection_concurrency: Optional[int] = None,
                 inspection_limit: Optional[int] = None):
        self.resolver = resolver
        self.http = http
        self.inspection_concurrency = inspection_concurrency or settings.url_inspection_concurrency
        self.inspection_limit = inspection_limit if inspection_limit is not None else settings.url_inspection_limit

    async def fetch_site_data(self, user_id: str, website_url: str,
                              start_date: Optional[str] = None,
                              end_date: Optional[str] = None) -> Dict[str, Any]:
        """
        Keywords, pages, URL inspection and stats for one property

        Raises:
            ReauthenticationRequired / TokenRefreshFailed: no usable access token
        """
        access_token = await self.resolver.get_access_token(user_id, Provider.GOOGLE_SEARCH_CONSOLE)

        site_url = data_processor.format_website_url(website_url)
        start, end = data_processor.get_date_range(start_date, end_date)
        logger.info(f"🔍 Fetching Search Console data for {site_url} ({start} to {end})")

        failures: List[Dict[str, str]] = []

        keyword_result, page_result = await asyncio.gather(
            self._search_analytics(site_url, access_token, start, end, ['query', 'page'], KEYWORDS_ROW_LIMIT, 'keywords'),
            self._search_analytics(site_url, access_token, start, end, ['page'], PAGES_ROW_LIMIT, 'pages'),
            return_exceptions=True,
        )

        keywords: List[Dict[str, Any]] = []
        if isinstance(keyword_result, PartialDataFailure):
            failures.append(keyword_result.as_marker())
        elif isinstance(keyword_result, BaseException):
            raise keyword_result
        else:
            keywords = data_processor.normalize_keyword_rows(keyword_result, site_url)

        pages: List[Dict[str, Any]] = []
        if isinstance(page_result, PartialDataFailure):
            failures.append(page_result.as_marker())
        elif isinstance(page_result, BaseException):
            raise page_result
        else:
            pages = data_processor.normalize_page_rows(page_result)

        url_meta_data, inspection_failure = await self._inspect_urls(site_url, access_token, pages)
        if inspection_failure:
            failures.append(inspection_failure.as_marker())

        stats = data_processor.calculate_stats(keywords, pages, start, end)

        logger.info(
            f"✅ Search Console data for {site_url}: {len(keywords)} keywords, {len(pages)} pages, "
            f"{len(url_meta_data)} inspected, {len(failures)} failed queries"
        )

        return {
            'success': True,
            'keywords': keywords,
            'pages': pages,
            'url_meta_data': url_meta_data,
            'site_performance': data_processor.calculate_site_performance(url_meta_data, pages),
            'stats': stats,
            'failures': failures,
        }

    async def _search_analytics(self, site_url: str, access_token: str, start: str, end: str,
                                dimensions: List[str], row_limit: int, query_name: str) -> List[Dict[str, Any]]:
        """Raises PartialDataFailure when the query fails"""
        response = await self.http.post_json(
            f"{SEARCH_CONSOLE_API_BASE}/sites/{quote(site_url, safe='')}/searchAnalytics/query",
            {
                'startDate': start,
                'endDate': end,
                'dimensions': dimensions,
                'rowLimit': row_limit,
            },
            headers={'Authorization': f'Bearer {access_token}'},
        )

        if not response.ok:
            logger.error(f"❌ Search Console {query_name} query failed: {response.error_summary()}")
            raise PartialDataFailure(query_name, f"{query_name} query failed with HTTP {response.status}")

        return response.payload.get('rows', [])

    async def _inspect_urls(self, site_url: str, access_token: str, pages: List[Dict[str, Any]]):
        """
        Inspect up to ``inspection_limit`` pages with bounded concurrency.

        Returns (results, failure_or_None); one failed URL never affects the others.
        """
        targets = [page['page'] for page in pages[:self.inspection_limit]]
        if not targets:
            return [], None

        semaphore = asyncio.Semaphore(self.inspection_concurrency)
        endpoint = f"{SEARCH_CONSOLE_API_BASE}/sites/{quote(site_url, safe='')}/urlInspection/index:inspect"
        headers = {'Authorization': f'Bearer {access_token}'}

        async def inspect(page_url: str):
            async with semaphore:
                response = await self.http.post_json(
                    endpoint, {'inspectionUrl': page_url, 'siteUrl': site_url}, headers=headers
                )
            if not response.ok:
                logger.debug(f"Failed to inspect URL {page_url}: HTTP {response.status}")
                return None, response.status
            return data_processor.normalize_inspection(page_url, response.payload), None

        logger.info(f"Inspecting {len(targets)} URLs (concurrency {self.inspection_concurrency})")
        outcomes = await asyncio.gather(*(inspect(url) for url in targets))

        results = [result for result, _ in outcomes if result is not None]
        failed_statuses = [status for _, status in outcomes if status is not None]
        if not failed_statuses:
            return results, None

        logger.warning(f"⚠️ {len(failed_statuses)} of {len(targets)} URL inspections failed")
        return results, PartialDataFailure(
            'url_inspection',
            f"{len(failed_statuses)} of {len(targets)} URL inspections failed "
            f"(last HTTP {failed_statuses[-1]})",
        )
