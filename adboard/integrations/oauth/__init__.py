"""
OAuth integration for the ad platforms the dashboard reports on.

Covers the whole credential lifecycle:
- Authorization-code exchange and account discovery
- Encrypted credential storage (one grant per user and provider)
- Refresh on expiry, with a reconnect signal when a refresh is impossible
- Server-side CSRF state nonces and the selected-account preference
"""

from .providers import Provider, get_strategy
from .models import Credential, LinkedAccount

__version__ = "2.0.0"

MODULE_NAME = 'oauth'
SUPPORTED_PROVIDERS = [provider.value for provider in Provider]

__all__ = [
    'Provider',
    'get_strategy',
    'Credential',
    'LinkedAccount',
    'SUPPORTED_PROVIDERS',
]
