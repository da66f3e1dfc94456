"""Refresh on expiry: no refresh token means reconnect, and a failed refresh changes nothing."""

from datetime import datetime, timedelta, timezone

import pytest

from adboard.core.errors import ReauthenticationRequired, TokenRefreshFailed
from adboard.integrations.oauth.models import Credential
from adboard.integrations.oauth.providers import GOOGLE_TOKEN_URL, Provider
from adboard.integrations.oauth.token_refresh import CredentialResolver, TokenRefreshService

from .conftest import USER_ID, error, ok

EXPIRED = datetime(2020, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def refresher(credential_store, provider_http):
    return TokenRefreshService(credential_store, provider_http)


@pytest.fixture
def resolver(credential_store, refresher):
    return CredentialResolver(credential_store, refresher)


async def _store(credential_store, provider='google_search_console', refresh_token='rt', expires_at=EXPIRED):
    return await credential_store.upsert(Credential(USER_ID, provider, 'old-at', expires_at, refresh_token))


async def test_missing_refresh_token_never_calls_provider(provider_env, refresher, credential_store, provider_http):
    credential = await _store(credential_store, provider='meta', refresh_token=None)

    with pytest.raises(ReauthenticationRequired):
        await refresher.refresh(credential)

    assert provider_http.calls == []


async def test_failed_refresh_leaves_credential_unchanged(provider_env, refresher, credential_store, provider_http):
    credential = await _store(credential_store)
    before = await credential_store.get(USER_ID, 'google_search_console')
    provider_http.add('POST', GOOGLE_TOKEN_URL, error(400, {'error': 'invalid_grant'}))

    with pytest.raises(TokenRefreshFailed) as exc_info:
        await refresher.refresh(credential)

    after = await credential_store.get(USER_ID, 'google_search_console')
    assert (after.access_token, after.expires_at, after.refresh_token) == \
        (before.access_token, before.expires_at, before.refresh_token)
    assert credential_store.update_calls == 0
    assert exc_info.value.to_response()['reconnect'] is True


async def test_refresh_response_without_access_token_is_a_failure(provider_env, refresher, credential_store, provider_http):
    credential = await _store(credential_store)
    provider_http.add('POST', GOOGLE_TOKEN_URL, ok({'token_type': 'Bearer'}))

    with pytest.raises(TokenRefreshFailed):
        await refresher.refresh(credential)

    assert credential_store.update_calls == 0


async def test_successful_refresh_keeps_refresh_token_and_defaults_expiry(
        provider_env, refresher, credential_store, provider_http):
    credential = await _store(credential_store)
    provider_http.add('POST', GOOGLE_TOKEN_URL, ok({'access_token': 'new-at'}))

    started = datetime.now(timezone.utc)
    refreshed = await refresher.refresh(credential)

    assert refreshed.access_token == 'new-at'
    assert refreshed.refresh_token == 'rt'
    assert timedelta(seconds=3595) <= refreshed.expires_at - started <= timedelta(seconds=3605)

    stored = await credential_store.get(USER_ID, 'google_search_console')
    assert stored.access_token == 'new-at'
    assert stored.refresh_token == 'rt'

    body = provider_http.calls_to(GOOGLE_TOKEN_URL)[0]['body']
    assert body['grant_type'] == 'refresh_token'
    assert body['refresh_token'] == 'rt'


async def test_resolver_returns_valid_token_without_refreshing(provider_env, resolver, credential_store, provider_http):
    await _store(credential_store, expires_at=datetime.now(timezone.utc) + timedelta(hours=1))

    assert await resolver.get_access_token(USER_ID, Provider.GOOGLE_SEARCH_CONSOLE) == 'old-at'
    assert provider_http.calls == []


async def test_resolver_refreshes_expired_token(provider_env, resolver, credential_store, provider_http):
    await _store(credential_store, provider='google_ads')
    provider_http.add('POST', GOOGLE_TOKEN_URL, ok({'access_token': 'fresh-at', 'expires_in': 3600}))

    assert await resolver.get_access_token(USER_ID, Provider.GOOGLE_ADS) == 'fresh-at'


async def test_resolver_without_credential_requires_reconnect(resolver):
    with pytest.raises(ReauthenticationRequired, match='Please connect'):
        await resolver.get_access_token(USER_ID, Provider.GOOGLE_ADS)


def test_expiry_boundary_counts_as_expired():
    moment = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
    credential = Credential(USER_ID, 'google_ads', 'secret-access', moment, 'secret-refresh')

    assert credential.is_expired(moment)
    assert not credential.is_expired(moment - timedelta(seconds=1))
    assert 'secret' not in repr(credential)
