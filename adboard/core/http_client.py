"""
Outbound HTTP to provider APIs (token endpoints, Search Console, Google Ads, Meta Graph).

Every call is bounded by a timeout. A timeout or connection error is returned
as a synthetic non-success ``ProviderResponse`` (504 / 502) so callers classify
it exactly like a provider error response.
"""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Dict, Any, Optional

import aiohttp

from adboard.config.settings import settings

logger = logging.getLogger(__name__)

__all__ = [
    'ProviderResponse',
    'ProviderHttpClient',
    'provider_http',
    'get_provider_http',
]

TIMEOUT_STATUS = 504
CONNECTION_ERROR_STATUS = 502


@dataclass
class ProviderResponse:
    """Status plus decoded JSON body (or ``{"raw": text}`` when not JSON)"""
    status: int
    payload: Dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def error_summary(self, limit: int = 200) -> str:
        return f"HTTP {self.status}: {json.dumps(self.payload)[:limit]}"


class ProviderHttpClient:
    """Thin aiohttp wrapper shared by the OAuth services and data fetchers"""

    def __init__(self, timeout_seconds: Optional[float] = None):
        self.timeout_seconds = timeout_seconds or settings.provider_timeout_seconds

    async def post_form(self, url: str, data: Dict[str, str],
                        headers: Optional[Dict[str, str]] = None) -> ProviderResponse:
        """POST an application/x-www-form-urlencoded body"""
        return await self._request('POST', url, headers=headers, data=data)

    async def post_json(self, url: str, body: Dict[str, Any],
                        headers: Optional[Dict[str, str]] = None) -> ProviderResponse:
        return await self._request('POST', url, headers=headers, json=body)

    async def get_json(self, url: str, headers: Optional[Dict[str, str]] = None) -> ProviderResponse:
        return await self._request('GET', url, headers=headers)

    async def _request(self, method: str, url: str, **kwargs) -> ProviderResponse:
        timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.request(method, url, **kwargs) as response:
                    text = await response.text()
                    return ProviderResponse(status=response.status, payload=_decode(text))

        except asyncio.TimeoutError:
            logger.warning(f"⏱️ {method} {_strip_query(url)} timed out after {self.timeout_seconds}s")
            return ProviderResponse(
                status=TIMEOUT_STATUS,
                payload={'error': 'timeout', 'error_description': 'Provider request timed out'}
            )

        except aiohttp.ClientError as e:
            logger.warning(f"🔌 {method} {_strip_query(url)} failed: {e}")
            return ProviderResponse(
                status=CONNECTION_ERROR_STATUS,
                payload={'error': 'connection_error', 'error_description': str(e)}
            )


def _decode(text: str) -> Dict[str, Any]:
    if not text:
        return {}
    try:
        decoded = json.loads(text)
    except ValueError:
        return {'raw': text[:1000]}
    if isinstance(decoded, dict):
        return decoded
    return {'data': decoded}


def _strip_query(url: str) -> str:
    return url.split('?', 1)[0]


# Global instance
provider_http = ProviderHttpClient()


def get_provider_http() -> ProviderHttpClient:
    """FastAPI dependency"""
    return provider_http
