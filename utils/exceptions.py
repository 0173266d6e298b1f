"""
Error taxonomy of the rate resolution and courier layer.

ServiceUnavailable is deliberately missing here: "no courier serves this
route" is a result value (see modules/serviceability/serviceability_schema.py).
"""

from typing import Dict, List, Optional


class RateLayerError(Exception):
    """Base class for every error raised out of this layer."""

    message = "An internal server error occurred. Please try again later."

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.message
        super().__init__(self.message)


class ValidationError(RateLayerError):
    """Bad input shape, e.g. a missing weight or a 5 digit pincode."""

    message = "Validation error occurred."

    def __init__(
        self, message: Optional[str] = None, fields: Optional[Dict[str, List[str]]] = None
    ):
        super().__init__(message)
        self.fields = fields or {}


class NotFound(RateLayerError):
    """Unknown seller, override, base rate card or courier reference."""

    message = "Requested resource was not found."


class ProviderUnavailable(RateLayerError):
    """
    A courier could not serve the call (auth, timeout, rejection, bad payload).

    Only the courier id is meant for callers; the underlying adapter error is
    kept on `detail` / `__cause__` for logging.
    """

    def __init__(self, courier: str, detail: Optional[Exception] = None):
        super().__init__("Courier partner {} is currently unavailable".format(courier))
        self.courier = courier
        self.detail = detail


class InternalError(RateLayerError):
    """Anything unexpected."""


# ============================================
# COURIER ADAPTER ERRORS
# ============================================


class CourierAdapterError(Exception):
    """Raised inside adapters; never leaves the adapter registry unwrapped."""

    kind = "UpstreamError"

    def __init__(self, courier: str, message: str):
        self.courier = courier
        self.message = message
        super().__init__("[{}] {}".format(courier, message))


class AuthFailed(CourierAdapterError):
    kind = "AuthFailed"


class UpstreamTimeout(CourierAdapterError):
    kind = "UpstreamTimeout"


class UpstreamRejected(CourierAdapterError):
    kind = "UpstreamRejected"

    def __init__(self, courier: str, code, message: str):
        super().__init__(courier, message)
        self.code = code


class InvalidResponseShape(CourierAdapterError):
    kind = "InvalidResponseShape"
