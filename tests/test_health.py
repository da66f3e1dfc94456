"""Health endpoint aggregation."""

from unittest.mock import AsyncMock

from adboard.core import health


async def test_health_reports_database_encryption_and_providers(provider_env, monkeypatch, client):
    monkeypatch.setattr(health.db_manager, 'health_check',
                        AsyncMock(return_value={'status': 'healthy', 'connected': True}))

    response = await client.get('/health')

    body = response.json()
    assert response.status_code == 200
    assert body['status'] == 'healthy'
    assert body['services']['database']['connected'] is True
    assert body['services']['encryption']['initialized'] is True
    assert body['providers_configured'] == {'google_search_console': True, 'google_ads': True, 'meta': True}


async def test_unreachable_database_is_unhealthy(no_provider_env, monkeypatch):
    monkeypatch.setattr(health.db_manager, 'health_check',
                        AsyncMock(return_value={'status': 'unhealthy', 'connected': False, 'error': 'down'}))

    status = await health.get_health_status()

    assert status['status'] == 'unhealthy'
    assert status['providers_configured']['meta'] is False
