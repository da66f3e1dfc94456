# adboard/integrations/google_ads/client.py
"""
Google Ads Client - campaign and daily performance via googleAds:searchStream

Two GAQL queries per request (campaigns, daily). Each is isolated; a failed
query becomes a failure marker and the metrics are computed from what came back.
Money is reported in account currency (cost micros / 1e6), rounded to 2dp.
"""

import asyncio
import logging
import re
from collections import OrderedDict
from datetime import datetime, timedelta, timezone, date
from typing import Any, Dict, List, Optional, Tuple

from adboard.core.errors import ConfigurationError, InvalidRequest, PartialDataFailure
from adboard.core.http_client import ProviderHttpClient, ProviderResponse
from adboard.integrations.oauth.providers import GOOGLE_ADS_API_BASE, GoogleAdsStrategy, Provider, get_strategy
from adboard.integrations.oauth.token_refresh import CredentialResolver

logger = logging.getLogger(__name__)

DEFAULT_LOOKBACK_DAYS = 30
MICROS_PER_UNIT = 1_000_000

CAMPAIGN_QUERY = """
    SELECT
        campaign.id,
        campaign.name,
        campaign.status,
        metrics.impressions,
        metrics.clicks,
        metrics.cost_micros,
        metrics.conversions,
        metrics.ctr,
        metrics.average_cpc
    FROM campaign
    WHERE segments.date BETWEEN '{start}' AND '{end}'
"""

DAILY_QUERY = """
    SELECT
        segments.date,
        metrics.impressions,
        metrics.clicks,
        metrics.cost_micros,
        metrics.conversions
    FROM campaign
    WHERE segments.date BETWEEN '{start}' AND '{end}'
"""

_CUSTOMER_ID = re.compile(r'^\d+$')


def get_date_range(start_date: Optional[str] = None, end_date: Optional[str] = None,
                   today: Optional[date] = None) -> Tuple[str, str]:
    """ISO dates; defaults to the last 30 days through today. Dates are validated before entering GAQL."""
    today = today or datetime.now(timezone.utc).date()
    start = start_date or (today - timedelta(days=DEFAULT_LOOKBACK_DAYS)).isoformat()
    end = end_date or today.isoformat()
    for value in (start, end):
        try:
            datetime.strptime(value, '%Y-%m-%d')
        except ValueError:
            raise InvalidRequest(f"Invalid date: {value}. Expected YYYY-MM-DD")
    return start, end


def normalize_customer_id(account_id: str) -> str:
    customer_id = (account_id or '').replace('-', '').strip()
    if not _CUSTOMER_ID.match(customer_id):
        raise InvalidRequest("accountId must be a Google Ads customer id")
    return customer_id


def _metric(metrics: Dict[str, Any], snake: str, camel: str, default: Any = 0) -> Any:
    # REST responses use camelCase; keep snake_case for payloads built elsewhere
    value = metrics.get(camel, metrics.get(snake))
    return default if value is None else value


def _results(payload: Dict[str, Any]) -> List[Dict[str, Any]]:
    """searchStream returns an array of batches; a single batch is also accepted"""
    if 'results' in payload:
        return payload.get('results') or []
    rows = []
    for batch in payload.get('data', []):
        rows.extend(batch.get('results', []) if isinstance(batch, dict) else [])
    return rows


def normalize_campaign(result: Dict[str, Any]) -> Dict[str, Any]:
    campaign = result.get('campaign') or {}
    metrics = result.get('metrics') or {}
    return {
        'id': campaign.get('id'),
        'name': campaign.get('name') or 'Unnamed Campaign',
        'status': campaign.get('status'),
        'impressions': int(_metric(metrics, 'impressions', 'impressions')),
        'clicks': int(_metric(metrics, 'clicks', 'clicks')),
        'spend': round(int(_metric(metrics, 'cost_micros', 'costMicros')) / MICROS_PER_UNIT, 2),
        'conversions': round(float(_metric(metrics, 'conversions', 'conversions')), 2),
        # Per-row CTR is the provider's own ratio
        'ctr': round(float(_metric(metrics, 'ctr', 'ctr')) * 100, 2),
        'cpc': round(int(float(_metric(metrics, 'average_cpc', 'averageCpc'))) / MICROS_PER_UNIT, 2),
    }


def aggregate_daily(results: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Rows arrive per campaign per day; sum them into one row per date"""
    days: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()
    for result in results:
        day = (result.get('segments') or {}).get('date')
        if not day:
            continue
        metrics = result.get('metrics') or {}
        row = days.setdefault(day, {'date': day, 'impressions': 0, 'clicks': 0, 'spend': 0.0, 'conversions': 0.0})
        row['impressions'] += int(_metric(metrics, 'impressions', 'impressions'))
        row['clicks'] += int(_metric(metrics, 'clicks', 'clicks'))
        row['spend'] += int(_metric(metrics, 'cost_micros', 'costMicros')) / MICROS_PER_UNIT
        row['conversions'] += float(_metric(metrics, 'conversions', 'conversions'))

    daily = sorted(days.values(), key=lambda r: r['date'])
    for row in daily:
        row['spend'] = round(row['spend'], 2)
        row['conversions'] = round(row['conversions'], 2)
    return daily


def calculate_metrics(campaigns: List[Dict[str, Any]]) -> Dict[str, float]:
    """Account totals; avg_ctr is the ratio of summed clicks to summed impressions"""
    total_spend = sum(c['spend'] for c in campaigns)
    total_clicks = sum(c['clicks'] for c in campaigns)
    total_impressions = sum(c['impressions'] for c in campaigns)
    total_conversions = sum(c['conversions'] for c in campaigns)

    return {
        'total_spend': round(total_spend, 2),
        'total_clicks': total_clicks,
        'total_impressions': total_impressions,
        'total_conversions': round(total_conversions, 2),
        'avg_ctr': round(total_clicks / total_impressions * 100, 2) if total_impressions else 0.0,
        'avg_cpc': round(total_spend / total_clicks, 2) if total_clicks else 0.0,
        'conversion_rate': round(total_conversions / total_clicks * 100, 2) if total_clicks else 0.0,
        'cost_per_conversion': round(total_spend / total_conversions, 2) if total_conversions else 0.0,
    }


class GoogleAdsClient:
    """Reporting client for one Google Ads customer"""

    def __init__(self, resolver: CredentialResolver, http: ProviderHttpClient):
        self.resolver = resolver
        self.http = http
        self.strategy: GoogleAdsStrategy = get_strategy(Provider.GOOGLE_ADS)

    async def fetch_account_data(self, user_id: str, account_id: str,
                                 start_date: Optional[str] = None,
                                 end_date: Optional[str] = None) -> Dict[str, Any]:
        """
        Campaigns, daily performance and account metrics

        Raises:
            InvalidRequest: malformed account id or dates
            ConfigurationError: GOOGLE_ADS_DEVELOPER_TOKEN not configured
            ReauthenticationRequired / TokenRefreshFailed: no usable access token
        """
        customer_id = normalize_customer_id(account_id)
        start, end = get_date_range(start_date, end_date)

        if not self.strategy.developer_token():
            raise ConfigurationError("Google Ads Developer Token not configured")

        access_token = await self.resolver.get_access_token(user_id, Provider.GOOGLE_ADS)
        headers = self.strategy.api_headers(access_token)

        logger.info(f"📊 Fetching Google Ads data for customer {customer_id} ({start} to {end})")

        campaign_result, daily_result = await asyncio.gather(
            self._search_stream(customer_id, headers, CAMPAIGN_QUERY.format(start=start, end=end), 'campaigns'),
            self._search_stream(customer_id, headers, DAILY_QUERY.format(start=start, end=end), 'daily_performance'),
            return_exceptions=True,
        )

        failures: List[Dict[str, str]] = []
        campaigns: List[Dict[str, Any]] = []
        daily: List[Dict[str, Any]] = []

        for result, name in ((campaign_result, 'campaigns'), (daily_result, 'daily_performance')):
            if isinstance(result, PartialDataFailure):
                failures.append(result.as_marker())
            elif isinstance(result, BaseException):
                raise result
            elif name == 'campaigns':
                campaigns = [normalize_campaign(row) for row in result]
            else:
                daily = aggregate_daily(result)

        logger.info(
            f"✅ Google Ads data for {customer_id}: {len(campaigns)} campaigns, "
            f"{len(daily)} days, {len(failures)} failed queries"
        )

        return {
            'success': True,
            'campaigns': campaigns,
            'daily_performance': daily,
            'metrics': calculate_metrics(campaigns),
            'date_range': {'start_date': start, 'end_date': end},
            'failures': failures,
        }

    async def _search_stream(self, customer_id: str, headers: Dict[str, str],
                             query: str, query_name: str) -> List[Dict[str, Any]]:
        response: ProviderResponse = await self.http.post_json(
            f"{GOOGLE_ADS_API_BASE}/customers/{customer_id}/googleAds:searchStream",
            {'query': query},
            headers=headers,
        )
        if not response.ok:
            logger.error(f"❌ Google Ads {query_name} query failed: {response.error_summary()}")
            raise PartialDataFailure(query_name, f"{query_name} query failed with HTTP {response.status}")
        return _results(response.payload)
