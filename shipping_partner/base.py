"""
Common contract of every courier integration.

Subclasses only describe their wire format: how to log in, which headers a
token turns into, and how to build / parse the booking, tracking,
cancellation and pickup calls. Token caching, error mapping, retries and the
"never fail loudly" behaviour of the public methods live here.

Error mapping for every upstream call:
    httpx timeout           -> UpstreamTimeout
    401 / 403               -> AuthFailed (cached token dropped)
    any other 4xx / 5xx     -> UpstreamRejected(status, message)
    body that is not JSON   -> InvalidResponseShape
    JSON of the wrong shape -> InvalidResponseShape
"""

import math
from abc import ABC, abstractmethod
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx

import settings
from context_manager.context import context_user_data
from logger import logger

# schema
from modules.serviceability.serviceability_schema import CourierQuote
from modules.shipping_partner.shipping_partner_schema import (
    BookingResult,
    CancelResult,
    PickupResult,
    RateRequest,
    SANITIZED_MESSAGES,
    ShipmentRequest,
    TrackingEvent,
    TrackingResult,
    error_kind_of,
)

# utils
from utils.cache import Token, TokenCache
from utils.exceptions import (
    AuthFailed,
    CourierAdapterError,
    InvalidResponseShape,
    UpstreamRejected,
    UpstreamTimeout,
)
from utils.weight_calc import chargeable_weight


DEFAULT_STATUS = {"status": "in transit", "sub_status": "in transit"}

# what reading an unexpected courier payload raises; pydantic errors are ValueErrors
PAYLOAD_ERRORS = (
    KeyError,
    IndexError,
    TypeError,
    AttributeError,
    ValueError,
    ArithmeticError,
)


class CourierAdapter(ABC):
    courier_id: str = None
    display_name: str = None
    base_url: str = None
    tracking_url_template: str = None

    # legacy pricing used by calculate_rate when the courier has no rate api
    fallback_pricing = {
        "base_rate": Decimal("40"),
        "per_kg": Decimal("20"),
        "cod_charge": Decimal("30"),
        "fuel_surcharge_percent": Decimal("0"),
        "tax_percent": Decimal("18"),
    }

    status_mapping: Dict[str, Dict[str, str]] = {}

    def __init__(
        self,
        credentials: Optional[Dict[str, str]] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        token_cache: Optional[TokenCache] = None,
        timeout: float = settings.UPSTREAM_TIMEOUT_SECONDS,
        retry_count: int = settings.SAFE_RETRY_COUNT,
    ):
        self.credentials = (
            credentials if credentials is not None else self.load_credentials()
        )
        self.token_cache = token_cache or TokenCache()
        self.timeout = timeout
        self.retry_count = retry_count
        self._http_client = http_client

    # ============================================
    # CONFIGURATION
    # ============================================

    @classmethod
    def load_credentials(cls) -> Dict[str, str]:
        """Read the courier's credentials from the environment."""
        return {}

    required_credentials = ()

    def is_configured(self) -> bool:
        return all(self.credentials.get(key) for key in self.required_credentials)

    @property
    def client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                base_url=self.base_url, timeout=self.timeout
            )
        return self._http_client

    async def aclose(self):
        if self._http_client is not None:
            await self._http_client.aclose()

    def tracking_url(self, awb: Optional[str]) -> Optional[str]:
        if not awb or not self.tracking_url_template:
            return None
        return self.tracking_url_template.format(awb=awb)

    # ============================================
    # AUTHENTICATION
    # ============================================

    async def authenticate(self) -> Token:
        """Cached token; at most one login is in flight per courier."""
        return await self.token_cache.get_or_create(
            self.courier_id, lambda: self._parsed("authentication", self._login)
        )

    @abstractmethod
    async def _login(self) -> Token:
        pass

    @abstractmethod
    def _auth_headers(self, token: Token) -> Dict[str, str]:
        pass

    # ============================================
    # HTTP
    # ============================================

    async def _request(
        self,
        method: str,
        url: str,
        authenticated: bool = True,
        headers: Optional[Dict[str, str]] = None,
        as_text: bool = False,
        **kwargs,
    ) -> Any:
        request_headers = {"Content-Type": "application/json"}
        if authenticated:
            token = await self.authenticate()
            request_headers.update(self._auth_headers(token))
        request_headers.update(headers or {})

        try:
            response = await self.client.request(
                method, url, headers=request_headers, timeout=self.timeout, **kwargs
            )
        except httpx.TimeoutException as e:
            raise UpstreamTimeout(
                self.courier_id, "{} {} timed out".format(method, url)
            ) from e
        except httpx.RequestError as e:
            raise UpstreamRejected(
                self.courier_id, None, "{} {} failed: {}".format(method, url, str(e))
            ) from e

        if response.status_code in (401, 403):
            if authenticated:
                await self.token_cache.invalidate(self.courier_id)
            raise AuthFailed(
                self.courier_id,
                "{} {} returned {}: {}".format(
                    method, url, response.status_code, response.text[:500]
                ),
            )

        if response.status_code >= 400:
            raise UpstreamRejected(
                self.courier_id, response.status_code, response.text[:500]
            )

        if as_text:
            return response.text
        return self._parse_json(response)

    def _parse_json(self, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise InvalidResponseShape(
                self.courier_id,
                "Response is not JSON: {}".format(response.text[:200]),
            ) from e

    def _field(self, data: Any, *path, required: bool = True, default=None) -> Any:
        """Walk dict keys / list indexes, raising InvalidResponseShape on a miss."""
        current = data
        for key in path:
            try:
                current = current[key]
            except (KeyError, IndexError, TypeError) as e:
                if not required:
                    return default
                raise InvalidResponseShape(
                    self.courier_id,
                    "Missing {} in response".format(".".join(str(k) for k in path)),
                ) from e
        return current

    async def _parsed(self, action: str, call: Callable[..., Awaitable[Any]], *args):
        """Run a courier call, reporting a payload it can not read as InvalidResponseShape."""
        try:
            return await call(*args)
        except PAYLOAD_ERRORS as e:
            raise InvalidResponseShape(
                self.courier_id,
                "Unreadable {} response: {}: {}".format(action, type(e).__name__, e),
            ) from e

    async def _with_retry(self, call: Callable[[], Awaitable[Any]], action: str):
        """Retry idempotent calls on timeout; never used for bookings."""
        attempt = 0
        while True:
            try:
                return await call()
            except UpstreamTimeout:
                if attempt >= self.retry_count:
                    raise
                attempt += 1
                logger.warning(
                    extra=context_user_data.get(),
                    msg="{} {} timed out, retry {}/{}".format(
                        self.courier_id, action, attempt, self.retry_count
                    ),
                )

    def _log_failure(self, action: str, error: CourierAdapterError):
        logger.error(
            extra=context_user_data.get(),
            msg="{} {} failed with {}: {}".format(
                self.courier_id, action, error.kind, str(error)
            ),
        )

    def map_status(self, code, status_type: Optional[str] = None) -> Dict[str, str]:
        mapping = self.status_mapping
        if status_type is not None:
            mapping = mapping.get(status_type, {})
        return mapping.get(code) or DEFAULT_STATUS

    # ============================================
    # PUBLIC CONTRACT
    # ============================================

    async def book_shipment(self, request: ShipmentRequest) -> BookingResult:
        """Book once. A failure is returned as such and never carries an AWB."""
        try:
            result = await self._parsed("booking", self._book, request)
        except CourierAdapterError as e:
            self._log_failure("booking of order {}".format(request.order_id), e)
            return BookingResult.failed(self.courier_id, e)

        if result.success and not result.awb:
            error = InvalidResponseShape(self.courier_id, "Booking succeeded without an AWB")
            self._log_failure("booking of order {}".format(request.order_id), error)
            return BookingResult.failed(self.courier_id, error)

        if result.success and result.tracking_url is None:
            result.tracking_url = self.tracking_url(result.awb)

        logger.info(
            extra=context_user_data.get(),
            msg="{} booking for order {}: success={} awb={}".format(
                self.courier_id, request.order_id, result.success, result.awb
            ),
        )
        return result

    async def track_shipment(self, awb: str) -> TrackingResult:
        try:
            result = await self._with_retry(
                lambda: self._parsed("tracking", self._track, awb), "tracking"
            )
        except CourierAdapterError as e:
            self._log_failure("tracking of {}".format(awb), e)
            return self.degraded_tracking(awb, e)

        if result.tracking_url is None:
            result.tracking_url = self.tracking_url(awb)
        return result

    async def cancel_shipment(self, awb: str) -> CancelResult:
        try:
            return await self._parsed("cancellation", self._cancel, awb)
        except CourierAdapterError as e:
            self._log_failure("cancellation of {}".format(awb), e)
            kind = error_kind_of(e)
            return CancelResult(
                success=False,
                courier=self.courier_id,
                awb=awb,
                error_kind=kind,
                message=SANITIZED_MESSAGES[kind],
            )

    async def request_pickup(self, awbs: List[str]) -> PickupResult:
        try:
            return await self._parsed("pickup", self._pickup, list(awbs))
        except CourierAdapterError as e:
            self._log_failure("pickup request for {} awbs".format(len(awbs)), e)
            kind = error_kind_of(e)
            return PickupResult(
                success=False,
                courier=self.courier_id,
                awbs=list(awbs),
                error_kind=kind,
                message=SANITIZED_MESSAGES[kind],
            )

    async def calculate_rate(self, request: RateRequest) -> CourierQuote:
        """
        Legacy pricing, only consulted when no rate card covers this courier.

        Raises CourierAdapterError; the registry turns it into ProviderUnavailable.
        """
        return await self._with_retry(
            lambda: self._parsed("rate", self._rate, request), "rate"
        )

    def degraded_tracking(self, awb: str, error: CourierAdapterError) -> TrackingResult:
        url = self.tracking_url(awb)
        instructions = "Live tracking from {} is unavailable right now. ".format(
            self.display_name
        )
        if url:
            instructions += "Track AWB {} at {} or contact {} support.".format(
                awb, url, self.display_name
            )
        else:
            instructions += "Contact {} support with AWB {}.".format(
                self.display_name, awb
            )

        return TrackingResult(
            awb=awb,
            courier=self.courier_id,
            status="unknown",
            status_detail="tracking unavailable",
            tracking_url=url,
            degraded=True,
            manual_instructions=instructions,
            error_kind=error_kind_of(error),
        )

    # ============================================
    # COURIER SPECIFIC
    # ============================================

    @abstractmethod
    async def _book(self, request: ShipmentRequest) -> BookingResult:
        pass

    @abstractmethod
    async def _track(self, awb: str) -> TrackingResult:
        pass

    @abstractmethod
    async def _cancel(self, awb: str) -> CancelResult:
        pass

    @abstractmethod
    async def _pickup(self, awbs: List[str]) -> PickupResult:
        pass

    async def _rate(self, request: RateRequest) -> CourierQuote:
        """Price from fallback_pricing, no upstream call."""
        pricing = self.fallback_pricing
        weight = chargeable_weight(request.weight_kg, request.dims)
        extra_kg = max(0, math.ceil(weight) - 1)

        subtotal = pricing["base_rate"] + extra_kg * pricing["per_kg"]
        if request.payment_mode.lower() == "cod":
            subtotal += pricing["cod_charge"]

        subtotal *= 1 + pricing["fuel_surcharge_percent"] / Decimal("100")
        total = subtotal * (1 + pricing["tax_percent"] / Decimal("100"))

        return self._fallback_quote(
            request, int(total.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
        )

    def _fallback_quote(self, request: RateRequest, total: int) -> CourierQuote:
        return CourierQuote(
            courier=self.courier_id,
            product_name=self.display_name,
            mode=request.service_type or "Surface",
            zone="Unknown",
            total=total,
            source="courier_api",
        )

    @staticmethod
    def history_sorted(events: List[TrackingEvent]) -> List[TrackingEvent]:
        """Newest first; events without a timestamp keep their order at the end."""
        dated = [event for event in events if event.timestamp is not None]
        undated = [event for event in events if event.timestamp is None]
        return sorted(dated, key=lambda event: event.timestamp, reverse=True) + undated
