"""Shared fixtures: in-memory stores, a scripted provider HTTP client and an app wired to them."""

import itertools
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

from adboard.app import create_app
from adboard.core.auth import get_current_user_id
from adboard.core.errors import InvalidRequest, StorageFailure
from adboard.core.http_client import ProviderResponse, get_provider_http
from adboard.integrations.forms.database_manager import get_form_store, get_lead_store
from adboard.integrations.forms.models import FormMapping
from adboard.integrations.oauth.account_store import get_account_store, get_preference_store
from adboard.integrations.oauth.credential_store import get_credential_store
from adboard.integrations.oauth.models import Credential
from adboard.integrations.oauth.state_manager import OAuthState, get_state_manager

USER_ID = 'user-1'

PROVIDER_ENV = {
    'GOOGLE_CLIENT_ID': 'google-client-id',
    'GOOGLE_CLIENT_SECRET': 'google-client-secret',
    'GOOGLE_ADS_DEVELOPER_TOKEN': 'dev-token',
    'META_APP_ID': 'meta-app-id',
    'META_APP_SECRET': 'meta-app-secret',
}


# ---------------------------------------------------------------------------
# In-memory stores
# ---------------------------------------------------------------------------


class FakeCredentialStore:
    def __init__(self):
        self.rows: Dict[tuple, Credential] = {}
        self.update_calls = 0

    async def get(self, user_id, provider):
        row = self.rows.get((user_id, provider))
        if row is None:
            return None
        return Credential(row.user_id, row.provider, row.access_token, row.expires_at, row.refresh_token)

    async def upsert(self, credential):
        key = (credential.user_id, credential.provider)
        existing = self.rows.get(key)
        refresh_token = credential.refresh_token or (existing.refresh_token if existing else None)
        self.rows[key] = Credential(
            credential.user_id, credential.provider, credential.access_token,
            credential.expires_at, refresh_token,
        )
        return await self.get(*key)

    async def update_tokens(self, user_id, provider, access_token, expires_at):
        self.update_calls += 1
        row = self.rows[(user_id, provider)]
        row.access_token = access_token
        row.expires_at = expires_at


class FakeAccountStore:
    def __init__(self):
        self.rows: Dict[tuple, Any] = {}

    async def upsert(self, account):
        self.rows[(account.user_id, account.platform, account.account_id)] = account

    async def list_for_user(self, user_id, platform=None):
        return [
            account for (uid, plat, _), account in self.rows.items()
            if uid == user_id and (platform is None or plat == platform)
        ]


class FakePreferenceStore:
    def __init__(self):
        self.rows: Dict[tuple, Optional[str]] = {}

    async def get_selected_account(self, user_id, provider):
        return self.rows.get((user_id, provider))

    async def set_selected_account(self, user_id, provider, account_id):
        self.rows[(user_id, provider)] = account_id


class FakeStateManager:
    def __init__(self):
        self.states: Dict[str, OAuthState] = {}
        self._counter = itertools.count(1)

    async def issue(self, user_id, provider, redirect_uri):
        state = f"state-{next(self._counter)}"
        self.states[state] = OAuthState(state, user_id, provider, redirect_uri, datetime.now(timezone.utc))
        return state

    async def consume(self, state, user_id, provider):
        record = self.states.get(state)
        if record is None or record.user_id != user_id or record.provider != provider:
            raise InvalidRequest("Invalid or expired state token")
        return self.states.pop(state)


class FakeFormStore:
    def __init__(self):
        self.forms: Dict[str, FormMapping] = {}

    async def get_by_form_id(self, form_id):
        return self.forms.get(form_id)

    async def save(self, form):
        existing = self.forms.get(form.form_id)
        if existing and existing.user_id != form.user_id:
            return None
        form.form_id = form.form_id or f"form-{len(self.forms) + 1}"
        self.forms[form.form_id] = form
        return form

    async def list_for_user(self, user_id):
        return [form for form in self.forms.values() if form.user_id == user_id]


class FakeLeadStore:
    def __init__(self):
        self.leads: List[Any] = []
        self.fail_with: Optional[Exception] = None

    async def insert(self, lead):
        if self.fail_with:
            raise self.fail_with
        lead.id = f"lead-{len(self.leads) + 1}"
        self.leads.append(lead)
        return lead.id


# ---------------------------------------------------------------------------
# Scripted provider HTTP
# ---------------------------------------------------------------------------


class FakeProviderHttp:
    """
    Routes (method, url prefix[, body predicate]) to queued responses.
    The last queued response of a route repeats; unmatched calls fail the test.
    """

    def __init__(self):
        self.routes: List[Dict[str, Any]] = []
        self.calls: List[Dict[str, Any]] = []

    def add(self, method: str, url_prefix: str, *responses: ProviderResponse,
            when: Optional[Callable[[Any], bool]] = None) -> None:
        self.routes.append({'method': method, 'prefix': url_prefix, 'when': when, 'responses': list(responses)})

    def calls_to(self, url_prefix: str) -> List[Dict[str, Any]]:
        return [call for call in self.calls if call['url'].startswith(url_prefix)]

    async def post_form(self, url, data, headers=None):
        return self._dispatch('POST', url, data, headers)

    async def post_json(self, url, body, headers=None):
        return self._dispatch('POST', url, body, headers)

    async def get_json(self, url, headers=None):
        return self._dispatch('GET', url, None, headers)

    def _dispatch(self, method, url, body, headers):
        self.calls.append({'method': method, 'url': url, 'body': body, 'headers': headers or {}})
        for route in self.routes:
            if route['method'] != method or not url.startswith(route['prefix']):
                continue
            if route['when'] is not None and not route['when'](body):
                continue
            responses = route['responses']
            return responses.pop(0) if len(responses) > 1 else responses[0]
        raise AssertionError(f"Unexpected provider call: {method} {url}")


def ok(payload: Optional[Dict[str, Any]] = None) -> ProviderResponse:
    return ProviderResponse(200, payload or {})


def error(status: int, payload: Optional[Dict[str, Any]] = None) -> ProviderResponse:
    return ProviderResponse(status, payload or {'error': 'server_error'})


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def provider_env(monkeypatch):
    for key, value in PROVIDER_ENV.items():
        monkeypatch.setenv(key, value)


@pytest.fixture
def no_provider_env(monkeypatch):
    for key in PROVIDER_ENV:
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def credential_store():
    return FakeCredentialStore()


@pytest.fixture
def account_store():
    return FakeAccountStore()


@pytest.fixture
def preference_store():
    return FakePreferenceStore()


@pytest.fixture
def state_manager():
    return FakeStateManager()


@pytest.fixture
def form_store():
    return FakeFormStore()


@pytest.fixture
def lead_store():
    return FakeLeadStore()


@pytest.fixture
def provider_http():
    return FakeProviderHttp()


@pytest.fixture
def app(credential_store, account_store, preference_store, state_manager,
        form_store, lead_store, provider_http):
    """App with every store replaced and the caller authenticated as USER_ID"""
    application = create_app()
    application.dependency_overrides.update({
        get_current_user_id: lambda: USER_ID,
        get_credential_store: lambda: credential_store,
        get_account_store: lambda: account_store,
        get_preference_store: lambda: preference_store,
        get_state_manager: lambda: state_manager,
        get_form_store: lambda: form_store,
        get_lead_store: lambda: lead_store,
        get_provider_http: lambda: provider_http,
    })
    return application


@pytest.fixture
async def client(app):
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as http_client:
        yield http_client


@pytest.fixture
def lead_store_down(lead_store):
    lead_store.fail_with = StorageFailure("Database unavailable")
    return lead_store
