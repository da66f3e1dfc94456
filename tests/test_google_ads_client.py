"""Google Ads reporting: searchStream parsing, metrics and partial failures."""

from datetime import date, datetime, timedelta, timezone

import pytest

from adboard.core.errors import ConfigurationError, InvalidRequest
from adboard.integrations.google_ads import client as ads
from adboard.integrations.oauth.models import Credential
from adboard.integrations.oauth.providers import GOOGLE_ADS_API_BASE
from adboard.integrations.oauth.token_refresh import CredentialResolver, TokenRefreshService

from .conftest import USER_ID, error, ok

STREAM_URL = f'{GOOGLE_ADS_API_BASE}/customers/1234567890/googleAds:searchStream'

CAMPAIGN_BATCHES = {'data': [{'results': [
    {
        'campaign': {'id': '1', 'name': 'Brand', 'status': 'ENABLED'},
        'metrics': {'impressions': '1000', 'clicks': '50', 'costMicros': '25000000',
                    'conversions': 5.0, 'ctr': 0.05, 'averageCpc': 500000.0},
    },
    {
        'campaign': {'id': '2', 'status': 'PAUSED'},
        'metrics': {'impressions': '3000', 'clicks': '30', 'costMicros': '15000000', 'conversions': 0},
    },
]}]}

DAILY_BATCHES = {'data': [{'results': [
    {'segments': {'date': '2024-01-02'}, 'metrics': {'impressions': '10', 'clicks': '1', 'costMicros': '1000000'}},
    {'segments': {'date': '2024-01-01'}, 'metrics': {'impressions': '20', 'clicks': '2', 'costMicros': '2500000'}},
    {'segments': {'date': '2024-01-02'}, 'metrics': {'impressions': '5', 'clicks': '0', 'costMicros': '0'}},
]}]}


def is_campaign_query(body):
    return 'campaign.name' in body['query']


def is_daily_query(body):
    return 'segments.date,' in body['query']


@pytest.fixture
async def connected(credential_store):
    await credential_store.upsert(Credential(
        USER_ID, 'google_ads', 'ads-token', datetime.now(timezone.utc) + timedelta(hours=1), 'rt'
    ))


@pytest.fixture
def ads_client(credential_store, provider_http):
    resolver = CredentialResolver(credential_store, TokenRefreshService(credential_store, provider_http))
    return ads.GoogleAdsClient(resolver, provider_http)


async def test_campaigns_daily_and_metrics(provider_env, connected, ads_client, provider_http):
    provider_http.add('POST', STREAM_URL, ok(CAMPAIGN_BATCHES), when=is_campaign_query)
    provider_http.add('POST', STREAM_URL, ok(DAILY_BATCHES), when=is_daily_query)

    data = await ads_client.fetch_account_data(USER_ID, '123-456-7890', '2024-01-01', '2024-01-31')

    brand, unnamed = data['campaigns']
    assert brand == {'id': '1', 'name': 'Brand', 'status': 'ENABLED', 'impressions': 1000, 'clicks': 50,
                     'spend': 25.0, 'conversions': 5.0, 'ctr': 5.0, 'cpc': 0.5}
    assert unnamed['name'] == 'Unnamed Campaign'
    assert unnamed['ctr'] == 0.0

    assert data['daily_performance'] == [
        {'date': '2024-01-01', 'impressions': 20, 'clicks': 2, 'spend': 2.5, 'conversions': 0.0},
        {'date': '2024-01-02', 'impressions': 15, 'clicks': 1, 'spend': 1.0, 'conversions': 0.0},
    ]
    assert data['metrics'] == {
        'total_spend': 40.0,
        'total_clicks': 80,
        'total_impressions': 4000,
        'total_conversions': 5.0,
        'avg_ctr': 2.0,
        'avg_cpc': 0.5,
        'conversion_rate': 6.25,
        'cost_per_conversion': 8.0,
    }
    assert data['failures'] == []

    call = provider_http.calls_to(STREAM_URL)[0]
    assert call['headers']['developer-token'] == 'dev-token'
    assert call['headers']['Authorization'] == 'Bearer ads-token'
    assert "BETWEEN '2024-01-01' AND '2024-01-31'" in call['body']['query']


async def test_daily_failure_keeps_campaigns(provider_env, connected, ads_client, provider_http):
    provider_http.add('POST', STREAM_URL, ok(CAMPAIGN_BATCHES), when=is_campaign_query)
    provider_http.add('POST', STREAM_URL, error(500), when=is_daily_query)

    data = await ads_client.fetch_account_data(USER_ID, '1234567890')

    assert len(data['campaigns']) == 2
    assert data['daily_performance'] == []
    assert data['failures'] == [{'query': 'daily_performance',
                                 'error': 'daily_performance query failed with HTTP 500'}]


async def test_missing_developer_token_is_configuration_error(provider_env, monkeypatch, connected, ads_client, provider_http):
    monkeypatch.delenv('GOOGLE_ADS_DEVELOPER_TOKEN')

    with pytest.raises(ConfigurationError):
        await ads_client.fetch_account_data(USER_ID, '1234567890')

    assert provider_http.calls == []


@pytest.mark.parametrize('account_id', ['', 'abc', "1' OR 1=1"])
def test_customer_id_must_be_numeric(account_id):
    with pytest.raises(InvalidRequest):
        ads.normalize_customer_id(account_id)


def test_dates_are_validated_and_default_to_30_days():
    assert ads.get_date_range(today=date(2024, 1, 31)) == ('2024-01-01', '2024-01-31')
    with pytest.raises(InvalidRequest):
        ads.get_date_range("2024-01-01' OR '1'='1", '2024-01-31')


def test_metrics_are_zero_safe():
    assert ads.calculate_metrics([]) == {
        'total_spend': 0,
        'total_clicks': 0,
        'total_impressions': 0,
        'total_conversions': 0,
        'avg_ctr': 0.0,
        'avg_cpc': 0.0,
        'conversion_rate': 0.0,
        'cost_per_conversion': 0.0,
    }
