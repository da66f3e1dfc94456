"""
Error taxonomy for the adboard backend.

Every handler maps failures onto one of these classes before producing an
HTTP response. The app-level exception handler in ``adboard.app`` turns a
``DashboardError`` into ``{"error": ..., "details"?: ..., "reconnect"?: true}``.

    ConfigurationError        500  operator-facing, never retried
    AuthenticationError       401  caller identity missing/invalid
    InvalidRequest            400  missing or malformed parameters
    TokenExchangeFailed       400  provider rejected the authorization code
    TokenRefreshFailed        400  provider rejected the refresh grant
    ReauthenticationRequired  400  no usable grant; redo the consent flow
    ResourceNotFound          404  e.g. unknown formId
    StorageFailure            500  backing store unreachable, safe to retry
    PartialDataFailure        -    one sub-query failed; recorded, not raised
"""

from typing import Any, Dict, Optional

__all__ = [
    'DashboardError',
    'ConfigurationError',
    'AuthenticationError',
    'InvalidRequest',
    'TokenExchangeFailed',
    'TokenRefreshFailed',
    'ReauthenticationRequired',
    'ResourceNotFound',
    'StorageFailure',
    'StoreUnavailable',
    'PartialDataFailure',
]


class DashboardError(Exception):
    """Base class for errors that map onto an HTTP response"""

    status_code = 500
    # Whether ``details`` may be echoed to the (authenticated) caller
    expose_details = False
    # Whether the dashboard should offer to re-run the connect flow
    reconnect = False

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_response(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {'error': self.message}
        if self.expose_details and self.details is not None:
            body['details'] = self.details
        if self.reconnect:
            body['reconnect'] = True
        return body


class ConfigurationError(DashboardError):
    """Server is missing configuration (client id/secret, database url)"""
    status_code = 500


class AuthenticationError(DashboardError):
    """Caller is not authenticated"""
    status_code = 401


class InvalidRequest(DashboardError):
    """Request is missing required parameters"""
    status_code = 400


class TokenExchangeFailed(DashboardError):
    """Provider rejected the authorization code"""
    status_code = 400
    expose_details = True
    reconnect = True


class TokenRefreshFailed(DashboardError):
    """Provider rejected the refresh grant; the stored credential is untouched"""
    status_code = 400
    reconnect = True


class ReauthenticationRequired(DashboardError):
    """No refresh token (or no credential at all) - retrying cannot help"""
    status_code = 400
    reconnect = True


class ResourceNotFound(DashboardError):
    status_code = 404


class StorageFailure(DashboardError):
    """Backing store unreachable or rejected the write"""
    status_code = 500


# Name used by the credential store contract
StoreUnavailable = StorageFailure


class PartialDataFailure(DashboardError):
    """
    One sub-query of a multi-query fetch failed.

    Never propagated out of a fetcher; converted into a marker with
    ``as_marker()`` and returned alongside whatever did succeed.
    """

    status_code = 502

    def __init__(self, query: str, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.query = query

    def as_marker(self) -> Dict[str, Any]:
        return {'query': self.query, 'error': self.message}
