import os
from datetime import timedelta
from decimal import Decimal
from typing import Dict, List

# schema
from modules.shipping_partner.shipping_partner_schema import (
    BookingResult,
    CancelResult,
    PickupResult,
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
from utils.string import clean_phone, clean_text


class Xpressbees(CourierAdapter):
    """XpressBees franchise API. Email / password login returning a bearer token."""

    courier_id = "xpressbees"
    display_name = "XpressBees"
    base_url = "https://ship.xpressbees.com"
    tracking_url_template = "https://www.xpressbees.com/track/{awb}"

    # API URL'S
    login_url = "/api/users/franchise_login"
    create_order_url = "/api/franchise/shipments"
    cancel_order_url = "/api/franchise/shipments/cancel_shipment"
    track_order_url = "/api/franchise/shipments/track_shipment"
    pickup_url = "/api/franchise/shipments/pickup"

    required_credentials = ("email", "password")
    status_mapping = status_mapping

    # tokens are issued for an hour
    token_lifetime = timedelta(hours=1)

    fallback_pricing = {
        "base_rate": Decimal("30"),
        "per_kg": Decimal("15"),
        "cod_charge": Decimal("25"),
        "fuel_surcharge_percent": Decimal("10"),
        "tax_percent": Decimal("18"),
    }

    # franchise service ids
    service_ids = {"standard": "16789", "express": "16790"}

    @classmethod
    def load_credentials(cls) -> Dict[str, str]:
        return {
            "email": os.environ.get("XPRESSBEES_EMAIL"),
            "password": os.environ.get("XPRESSBEES_PASSWORD"),
        }

    async def _login(self) -> Token:
        if not self.is_configured():
            raise AuthFailed(self.courier_id, "XpressBees credentials are not configured")

        response_data = await self._request(
            "POST",
            self.login_url,
            authenticated=False,
            json={
                "email": self.credentials["email"],
                "password": self.credentials["password"],
            },
        )

        if not response_data.get("status"):
            raise AuthFailed(
                self.courier_id, "Login refused: {}".format(response_data.get("message"))
            )

        return Token(
            access_token=self._field(response_data, "data"),
            expires_at=utc_now() + self.token_lifetime,
        )

    def _auth_headers(self, token: Token) -> Dict[str, str]:
        return {"Authorization": "Bearer " + token.access_token}

    def _service_id(self, service_type):
        if (service_type or "").lower() in ("express", "air"):
            return self.service_ids["express"]
        return self.service_ids["standard"]

    async def _book(self, request: ShipmentRequest) -> BookingResult:
        payload = {
            "id": request.order_id,
            "unique_order_number": "yes",
            "payment_method": "COD" if request.is_cod else "prepaid",
            "consigner_name": request.pickup.name,
            "consigner_phone": clean_phone(request.pickup.phone),
            "consigner_pincode": request.pickup.pincode,
            "consigner_city": request.pickup.city,
            "consigner_state": request.pickup.state,
            "consigner_address": clean_text(request.pickup.address),
            "consignee_name": request.consignee.name,
            "consignee_phone": clean_phone(request.consignee.phone),
            "consignee_pincode": request.consignee.pincode,
            "consignee_city": request.consignee.city,
            "consignee_state": request.consignee.state,
            "consignee_address": clean_text(request.consignee.address),
            "products": [
                {
                    "product_name": clean_text(request.product_description),
                    "product_qty": request.quantity,
                    "product_price": float(request.declared_value),
                }
            ],
            "invoice": [{"invoice_value": float(request.declared_value)}],
            "weight": int(request.weight_kg * 1000),
            "length": request.dims.length,
            "breadth": request.dims.width,
            "height": request.dims.height,
            "cod_amount": float(request.cod_amount) if request.is_cod else 0,
            "courier_id": self._service_id(request.service_type),
            "pickup_location": "franchise",
        }

        response_data = await self._request("POST", self.create_order_url, json=payload)

        if not response_data.get("status"):
            raise UpstreamRejected(
                self.courier_id, "BOOKING_FAILED", str(response_data.get("message"))
            )

        data = self._field(response_data, "data")
        awb = self._field(data, "awb_number")
        return BookingResult(
            success=True,
            courier=self.courier_id,
            awb=str(awb),
            tracking_id=str(data.get("shipment_id") or awb),
            raw_provider_response=response_data,
        )

    async def _track(self, awb: str) -> TrackingResult:
        response_data = await self._request(
            "POST", self.track_order_url, json={"awb": awb}
        )

        if not response_data.get("status"):
            raise UpstreamRejected(
                self.courier_id, "TRACKING_FAILED", str(response_data.get("message"))
            )

        data = self._field(response_data, "data")
        history = []
        for event in data.get("history") or []:
            mapped = self.map_status(event.get("status_code"))
            history.append(
                TrackingEvent(
                    status=mapped["status"],
                    status_detail=mapped["sub_status"],
                    description=event.get("message"),
                    location=event.get("location"),
                    timestamp=parse_courier_datetime(event.get("event_time")),
                )
            )
        history = self.history_sorted(history)

        current_code = data.get("status_code") or self._field(
            data, "history", 0, "status_code", required=False
        )
        mapped = self.map_status(current_code)
        latest = history[0] if history else None

        return TrackingResult(
            awb=awb,
            courier=self.courier_id,
            status=mapped["status"],
            status_detail=mapped["sub_status"],
            courier_status=data.get("status"),
            location=latest.location if latest else None,
            timestamp=latest.timestamp if latest else None,
            history=history,
        )

    async def _cancel(self, awb: str) -> CancelResult:
        response_data = await self._request(
            "POST", self.cancel_order_url, json={"awb": awb}
        )

        if not response_data.get("status"):
            raise UpstreamRejected(
                self.courier_id, "CANCEL_FAILED", str(response_data.get("message"))
            )

        return CancelResult(
            success=True,
            courier=self.courier_id,
            awb=awb,
            message=response_data.get("message") or "Shipment cancelled",
        )

    async def _pickup(self, awbs: List[str]) -> PickupResult:
        response_data = await self._request("POST", self.pickup_url, json={"awbs": awbs})

        if not response_data.get("status"):
            raise UpstreamRejected(
                self.courier_id, "PICKUP_FAILED", str(response_data.get("message"))
            )

        data = response_data.get("data") or {}
        return PickupResult(
            success=True,
            courier=self.courier_id,
            awbs=awbs,
            pickup_id=str(data["pickup_id"]) if data.get("pickup_id") else None,
            scheduled_date=data.get("pickup_date"),
            message=response_data.get("message") or "Pickup requested",
        )
