"""
API error types.

Services raise these; the handler registered in app.main renders them as
``{"error": message, **extra}`` with the carried status code.
"""

from typing import Any, Dict, Optional


class APIError(Exception):
    """Error with an HTTP status and a client-facing message."""

    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None, **extra: Any):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.extra: Dict[str, Any] = extra

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, **self.extra}


class ValidationFailed(APIError):
    """Client-fixable request problem."""
    status_code = 400


class Unauthorized(APIError):
    status_code = 401


class NotFound(APIError):
    status_code = 404


class QuotaExceeded(APIError):
    """Swipe allowance used up. Always offers the purchase flow."""

    def __init__(self, message: str, status_code: int, **extra: Any):
        super().__init__(message, status_code=status_code, canPurchaseMore=True, **extra)


class PaymentGatewayError(APIError):
    """Cashfree rejected or failed an API call."""
    status_code = 502
