import os
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
from utils.datetime import expiry_from_seconds, parse_courier_datetime
from utils.exceptions import AuthFailed, UpstreamRejected
from utils.string import clean_phone, clean_text


class Ekart(CourierAdapter):
    """Ekart Elite. Username / password exchanged for an expiring access token."""

    courier_id = "ekart"
    display_name = "Ekart Logistics"
    base_url = "https://app.elite.ekartlogistics.in"
    tracking_url_template = "https://app.elite.ekartlogistics.in/track/{awb}"

    # API URL'S
    auth_url = "/integrations/v2/auth/token/{client_id}"
    create_order_url = "/api/v1/package/create"
    cancel_order_url = "/api/v1/package/cancel"
    track_order_url = "/api/v1/track/{tracking_id}"
    manifest_url = "/data/v2/generate/manifest"

    required_credentials = ("client_id", "username", "password")
    status_mapping = status_mapping

    @classmethod
    def load_credentials(cls) -> Dict[str, str]:
        return {
            "client_id": os.environ.get("EKART_CLIENT_ID"),
            "username": os.environ.get("EKART_USERNAME"),
            "password": os.environ.get("EKART_PASSWORD"),
        }

    async def _login(self) -> Token:
        if not self.is_configured():
            raise AuthFailed(self.courier_id, "Ekart credentials are not configured")

        response_data = await self._request(
            "POST",
            self.auth_url.format(client_id=self.credentials["client_id"]),
            authenticated=False,
            json={
                "username": self.credentials["username"],
                "password": self.credentials["password"],
            },
        )

        access_token = response_data.get("access_token")
        if not access_token:
            raise AuthFailed(self.courier_id, "No access token received from Ekart")

        return Token(
            access_token=access_token,
            expires_at=expiry_from_seconds(response_data.get("expires_in") or 3600),
            token_type=response_data.get("token_type") or "Bearer",
        )

    def _auth_headers(self, token: Token) -> Dict[str, str]:
        return {"Authorization": "{} {}".format(token.token_type, token.access_token)}

    @staticmethod
    def _succeeded(response_data) -> bool:
        if not isinstance(response_data, dict):
            return False
        return (
            response_data.get("status") is True
            or response_data.get("success") is True
        ) and not response_data.get("error")

    @staticmethod
    def _reason(response_data) -> str:
        if not isinstance(response_data, dict):
            return "unexpected response"
        return str(
            response_data.get("remark")
            or response_data.get("message")
            or response_data.get("error")
            or response_data.get("description")
        )

    async def _book(self, request: ShipmentRequest) -> BookingResult:
        payload = {
            "order_number": request.order_id,
            "payment_mode": "COD" if request.is_cod else "Prepaid",
            "cod_amount": float(request.cod_amount) if request.is_cod else 0,
            "total_amount": float(request.declared_value),
            "products_desc": clean_text(request.product_description),
            "quantity": request.quantity,
            "weight": int(request.weight_kg * 1000),
            "length": request.dims.length,
            "width": request.dims.width,
            "height": request.dims.height,
            "consignee_name": request.consignee.name,
            "consignee_phone": clean_phone(request.consignee.phone),
            "consignee_address": clean_text(request.consignee.address),
            "consignee_city": request.consignee.city,
            "consignee_state": request.consignee.state,
            "consignee_pincode": request.consignee.pincode,
            "pickup_location": {
                "name": request.pickup.name,
                "phone": clean_phone(request.pickup.phone),
                "address": clean_text(request.pickup.address),
                "city": request.pickup.city,
                "state": request.pickup.state,
                "pincode": request.pickup.pincode,
            },
        }

        response_data = await self._request("PUT", self.create_order_url, json=payload)

        if not self._succeeded(response_data):
            raise UpstreamRejected(
                self.courier_id, "BOOKING_FAILED", self._reason(response_data)
            )

        tracking_id = self._field(response_data, "tracking_id")
        return BookingResult(
            success=True,
            courier=self.courier_id,
            awb=str(response_data.get("barcodes", {}).get("wbn") or tracking_id),
            tracking_id=str(tracking_id),
            tracking_url=self.tracking_url(tracking_id),
            raw_provider_response=response_data,
        )

    def map_status(self, code, status_type=None):
        return super().map_status((code or "").strip().lower(), status_type)

    async def _track(self, awb: str) -> TrackingResult:
        # tracking is public, no token needed
        response_data = await self._request(
            "GET", self.track_order_url.format(tracking_id=awb), authenticated=False
        )

        track = self._field(response_data, "track")
        history = []
        for detail in track.get("details") or []:
            mapped = self.map_status(detail.get("status"))
            history.append(
                TrackingEvent(
                    status=mapped["status"],
                    status_detail=mapped["sub_status"],
                    description=detail.get("desc"),
                    location=detail.get("location"),
                    timestamp=parse_courier_datetime(detail.get("ctime")),
                )
            )

        mapped = self.map_status(track.get("status"))
        return TrackingResult(
            awb=awb,
            courier=self.courier_id,
            status=mapped["status"],
            status_detail=track.get("desc") or mapped["sub_status"],
            courier_status=track.get("status"),
            location=track.get("location"),
            timestamp=parse_courier_datetime(track.get("ctime")),
            history=self.history_sorted(history),
        )

    async def _cancel(self, awb: str) -> CancelResult:
        response_data = await self._request(
            "DELETE", self.cancel_order_url, params={"tracking_id": awb}
        )

        if not self._succeeded(response_data):
            raise UpstreamRejected(
                self.courier_id, "CANCEL_FAILED", self._reason(response_data)
            )

        return CancelResult(
            success=True,
            courier=self.courier_id,
            awb=awb,
            message=response_data.get("remark") or "Shipment cancelled",
        )

    async def _pickup(self, awbs: List[str]) -> PickupResult:
        # Ekart picks up everything on a generated manifest
        response_data = await self._request(
            "POST", self.manifest_url, json={"ids": awbs}
        )

        manifest_number = self._field(response_data, "manifestNumber")
        return PickupResult(
            success=True,
            courier=self.courier_id,
            awbs=awbs,
            pickup_id=str(manifest_number),
            message="Manifest generated",
        )
