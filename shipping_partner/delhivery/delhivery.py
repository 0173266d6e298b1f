import json
import os
from datetime import timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List

from context_manager.context import context_user_data
from logger import logger

# schema
from modules.serviceability.serviceability_schema import CourierQuote
from modules.shipping_partner.shipping_partner_schema import (
    BookingResult,
    CancelResult,
    PickupResult,
    RateRequest,
    ShipmentRequest,
    Token,
    TrackingEvent,
    TrackingResult,
)

from shipping_partner.base import CourierAdapter

# data
from .status_mapping import status_mapping

# utils
from utils.datetime import parse_courier_datetime, utc_now
from utils.exceptions import AuthFailed, UpstreamRejected
from utils.string import clean_text
from utils.weight_calc import chargeable_weight


class Delhivery(CourierAdapter):
    """Delhivery B2C. Authenticates with a static account token."""

    courier_id = "delhivery"
    display_name = "Delhivery"
    base_url = "https://track.delhivery.com"
    tracking_url_template = "https://www.delhivery.com/track/package/{awb}"

    # API URL'S
    create_order_url = "/api/cmu/create.json"
    track_order_url = "/api/v1/packages/json/"
    cancel_order_url = "/api/p/edit"
    pickup_request_url = "/fm/request/new/"
    rate_url = "/api/kinko/v1/invoice/charges/.json"

    required_credentials = ("token",)
    status_mapping = status_mapping

    # the account token does not expire; it is re-read once a day
    token_lifetime = timedelta(hours=24)

    @classmethod
    def load_credentials(cls) -> Dict[str, str]:
        return {
            "token": os.environ.get("DELHIVERY_API_TOKEN"),
            "pickup_location": os.environ.get("DELHIVERY_PICKUP_LOCATION"),
        }

    async def _login(self) -> Token:
        token = self.credentials.get("token")
        if not token:
            raise AuthFailed(self.courier_id, "DELHIVERY_API_TOKEN is not configured")

        return Token(
            access_token=token,
            expires_at=utc_now() + self.token_lifetime,
            token_type="Token",
        )

    def _auth_headers(self, token: Token) -> Dict[str, str]:
        return {"Authorization": "Token " + token.access_token}

    async def _book(self, request: ShipmentRequest) -> BookingResult:
        shipment = {
            "name": request.consignee.name,
            "add": clean_text(request.consignee.address),
            "pin": request.consignee.pincode,
            "city": request.consignee.city,
            "state": request.consignee.state,
            "country": "India",
            "phone": request.consignee.phone,
            "order": request.order_id,
            "payment_mode": "COD" if request.is_cod else "Pre-paid",
            "products_desc": clean_text(request.product_description),
            "cod_amount": float(request.cod_amount) if request.is_cod else 0,
            "total_amount": float(request.declared_value),
            "quantity": request.quantity,
            "shipment_length": request.dims.length,
            "shipment_width": request.dims.width,
            "shipment_height": request.dims.height,
            "weight": request.weight_kg * 1000,
            "shipping_mode": (
                "Express"
                if (request.service_type or "").lower() in ("express", "air")
                else "Surface"
            ),
        }
        payload = {
            "shipments": [shipment],
            "pickup_location": {
                "name": self.credentials.get("pickup_location")
                or request.pickup.name,
                "add": clean_text(request.pickup.address),
                "city": request.pickup.city,
                "pin_code": request.pickup.pincode,
                "country": "India",
                "phone": request.pickup.phone,
            },
        }

        response_data = await self._request(
            "POST",
            self.create_order_url,
            data={"format": "json", "data": json.dumps(payload)},
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )

        package = self._field(response_data, "packages", 0)
        if package.get("status") != "Success":
            remarks = package.get("remarks") or ["booking failed"]
            raise UpstreamRejected(self.courier_id, "BOOKING_FAILED", str(remarks[0]))

        awb = self._field(package, "waybill")
        return BookingResult(
            success=True,
            courier=self.courier_id,
            awb=str(awb),
            tracking_id=str(awb),
            raw_provider_response=response_data,
        )

    async def _track(self, awb: str) -> TrackingResult:
        response_data = await self._request(
            "GET", self.track_order_url, params={"waybill": awb, "ref_ids": ""}
        )

        if isinstance(response_data, dict) and "Error" in response_data:
            raise UpstreamRejected(
                self.courier_id, "TRACKING_FAILED", str(response_data["Error"])
            )

        shipment = self._field(response_data, "ShipmentData", 0, "Shipment")
        current = self._field(shipment, "Status")
        mapped = self.map_status(current.get("StatusCode"), current.get("StatusType"))

        history = []
        for scan in shipment.get("Scans") or []:
            detail = scan.get("ScanDetail") or {}
            scan_status = self.map_status(detail.get("StatusCode"), detail.get("ScanType"))
            history.append(
                TrackingEvent(
                    status=scan_status["status"],
                    status_detail=scan_status["sub_status"],
                    description=detail.get("Instructions") or detail.get("Scan"),
                    location=detail.get("ScannedLocation"),
                    timestamp=parse_courier_datetime(detail.get("StatusDateTime")),
                )
            )

        return TrackingResult(
            awb=str(shipment.get("AWB") or awb),
            courier=self.courier_id,
            status=mapped["status"],
            status_detail=mapped["sub_status"],
            courier_status=current.get("Status"),
            location=current.get("StatusLocation"),
            timestamp=parse_courier_datetime(current.get("StatusDateTime")),
            history=self.history_sorted(history),
        )

    async def _cancel(self, awb: str) -> CancelResult:
        response_data = await self._request(
            "POST", self.cancel_order_url, json={"waybill": awb, "cancellation": "true"}
        )

        status = response_data.get("status") if isinstance(response_data, dict) else None
        if status in (False, "Failure", "false"):
            raise UpstreamRejected(
                self.courier_id,
                "CANCEL_FAILED",
                str(response_data.get("remark") or response_data.get("error")),
            )

        return CancelResult(
            success=True,
            courier=self.courier_id,
            awb=awb,
            message="Shipment cancelled",
        )

    async def _pickup(self, awbs: List[str]) -> PickupResult:
        pickup_date = (utc_now() + timedelta(days=1)).strftime("%Y-%m-%d")
        response_data = await self._request(
            "POST",
            self.pickup_request_url,
            json={
                "pickup_time": "11:00:00",
                "pickup_date": pickup_date,
                "pickup_location": self.credentials.get("pickup_location"),
                "expected_package_count": len(awbs),
            },
        )

        pickup_id = self._field(response_data, "pickup_id")
        logger.info(
            extra=context_user_data.get(),
            msg="Delhivery pickup {} requested for {} packages".format(
                pickup_id, len(awbs)
            ),
        )
        return PickupResult(
            success=True,
            courier=self.courier_id,
            awbs=awbs,
            pickup_id=str(pickup_id),
            scheduled_date=response_data.get("pickup_date") or pickup_date,
            message="Pickup requested",
        )

    async def _rate(self, request: RateRequest) -> CourierQuote:
        weight = chargeable_weight(request.weight_kg, request.dims)
        is_cod = request.payment_mode.lower() == "cod"

        response_data = await self._request(
            "GET",
            self.rate_url,
            params={
                "md": "E" if (request.service_type or "").lower() == "express" else "S",
                "ss": "Delivered",
                "o_pin": request.origin_pincode,
                "d_pin": request.destination_pincode,
                "cgm": int(weight * 1000),
                "pt": "COD" if is_cod else "Pre-paid",
                "cod": float(request.cod_amount) if is_cod else 0,
            },
        )

        total = Decimal(str(self._field(response_data, 0, "total_amount")))
        return self._fallback_quote(
            request, int(total.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
        )
