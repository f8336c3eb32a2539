"""
Exception hierarchy for the sync, credential and listing-action flows.

Remote failures are caught per page / per item by the services and turned into
partial results; credential and persistence failures propagate and end the
enclosing operation. The API layer renders every ProfitNavError as JSON.
"""
from typing import Optional, Dict, Any


class ProfitNavError(Exception):
    """Base error"""

    default_code = "PROFITNAV_ERROR"
    http_status = 500

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class ReconnectRequiredError(ProfitNavError):
    """The marketplace credential is invalid and cannot be refreshed"""

    default_code = "RECONNECT_REQUIRED"
    http_status = 401

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["requires_reauth"] = True
        return data


class IntegrationNotFoundError(ProfitNavError):
    default_code = "INTEGRATION_NOT_FOUND"
    http_status = 404


class OAuthStateError(ProfitNavError):
    default_code = "INVALID_OAUTH_STATE"
    http_status = 400


class SyncInProgressError(ProfitNavError):
    default_code = "SYNC_IN_PROGRESS"
    http_status = 409


class MarketplaceAPIError(ProfitNavError):
    """Non-2xx answer (or transport failure) from the marketplace API"""

    default_code = "MARKETPLACE_REQUEST_FAILED"
    http_status = 502

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
        endpoint: Optional[str] = None,
    ):
        super().__init__(
            message,
            details={"status_code": status_code, "endpoint": endpoint},
        )
        self.status_code = status_code
        self.body = body
        self.endpoint = endpoint


class ListingValidationError(ProfitNavError):
    default_code = "INVALID_ACTION_VALUE"
    http_status = 422


class PersistenceError(ProfitNavError):
    default_code = "PERSISTENCE_ERROR"
    http_status = 500


class OrderNotFoundError(ProfitNavError):
    default_code = "ORDER_NOT_FOUND"
    http_status = 404
