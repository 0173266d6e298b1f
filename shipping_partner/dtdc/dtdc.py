import os
from datetime import timedelta
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


class Dtdc(CourierAdapter):
    """
    DTDC. Bookings and cancellations go to the Shipsy api with a static
    api-key; tracking goes to the DTDC tracking service with a session
    token obtained from username / password.
    """

    courier_id = "dtdc"
    display_name = "DTDC"
    base_url = "https://dtdcapi.shipsy.io"
    tracking_url_template = "https://www.dtdc.in/trace.asp?strCnno={awb}"

    # API URL'S
    create_order_url = "/api/customer/integration/consignment/softdata"
    cancel_order_url = "/api/customer/integration/consignment/cancel"
    tracking_base_url = "https://blktracksvc.dtdc.com"
    auth_url = tracking_base_url + "/dtdc-api/api/dtdc/authenticate"
    track_order_url = tracking_base_url + "/dtdc-api/rest/JSONCnTrk/getTrackDetails"

    required_credentials = ("api_key", "customer_code", "username", "password")
    status_mapping = status_mapping

    token_lifetime = timedelta(hours=12)

    @classmethod
    def load_credentials(cls) -> Dict[str, str]:
        return {
            "api_key": os.environ.get("DTDC_API_KEY"),
            "customer_code": os.environ.get("DTDC_CUSTOMER_CODE"),
            "username": os.environ.get("DTDC_USERNAME"),
            "password": os.environ.get("DTDC_PASSWORD"),
        }

    async def _login(self) -> Token:
        if not (self.credentials.get("username") and self.credentials.get("password")):
            raise AuthFailed(self.courier_id, "DTDC tracking credentials are not configured")

        # the response body is the bare token
        token = await self._request(
            "GET",
            self.auth_url,
            authenticated=False,
            as_text=True,
            params={
                "username": self.credentials["username"],
                "password": self.credentials["password"],
            },
        )

        token = (token or "").strip().strip('"')
        if not token:
            raise AuthFailed(self.courier_id, "Empty token received from DTDC")

        return Token(access_token=token, expires_at=utc_now() + self.token_lifetime)

    def _auth_headers(self, token: Token) -> Dict[str, str]:
        return {"X-Access-Token": token.access_token}

    def _api_key_headers(self) -> Dict[str, str]:
        api_key = self.credentials.get("api_key")
        if not api_key:
            raise AuthFailed(self.courier_id, "DTDC_API_KEY is not configured")
        return {"api-key": api_key}

    @staticmethod
    def _service_type_id(service_type) -> str:
        if service_type and service_type.lower() in ("air", "express", "premium"):
            return "B2C PRIORITY"
        return "B2C SMART EXPRESS"

    async def _book(self, request: ShipmentRequest) -> BookingResult:
        def address(details):
            phone = clean_phone(details.phone)
            return {
                "name": details.name,
                "phone": phone,
                "alternate_phone": phone,
                "address_line_1": clean_text(details.address),
                "address_line_2": "",
                "pincode": details.pincode,
                "city": details.city,
                "state": details.state,
            }

        body = {
            "consignments": [
                {
                    "customer_code": self.credentials.get("customer_code"),
                    "service_type_id": self._service_type_id(request.service_type),
                    "load_type": "NON-DOCUMENT",
                    "description": clean_text(request.product_description),
                    "dimension_unit": "cm",
                    "length": request.dims.length,
                    "width": request.dims.width,
                    "height": request.dims.height,
                    "weight_unit": "kg",
                    "weight": request.weight_kg,
                    "declared_value": float(request.declared_value),
                    "num_pieces": request.quantity,
                    "origin_details": address(request.pickup),
                    "destination_details": address(request.consignee),
                    "customer_reference_number": request.order_id,
                    "cod_collection_mode": "CASH" if request.is_cod else "",
                    "cod_amount": float(request.cod_amount) if request.is_cod else 0,
                    "commodity_id": "",
                    "reference_number": "",
                }
            ]
        }

        response_data = await self._request(
            "POST",
            self.create_order_url,
            authenticated=False,
            headers=self._api_key_headers(),
            json=body,
        )

        if response_data.get("status") != "OK":
            raise UpstreamRejected(
                self.courier_id, "BOOKING_FAILED", str(response_data.get("data"))
            )

        data = self._field(response_data, "data", 0)
        if not data.get("success"):
            raise UpstreamRejected(
                self.courier_id,
                data.get("reason") or "BOOKING_FAILED",
                data.get("message") or "Could not create shipment",
            )

        awb = self._field(data, "reference_number")
        return BookingResult(
            success=True,
            courier=self.courier_id,
            awb=awb,
            tracking_id=awb,
            raw_provider_response=response_data,
        )

    async def _track(self, awb: str) -> TrackingResult:
        response_data = await self._request(
            "POST",
            self.track_order_url,
            json={"trkType": "cnno", "strcnno": awb, "addtnlDtl": "Y"},
        )

        if response_data.get("status") == "FAILED":
            raise UpstreamRejected(
                self.courier_id, "TRACKING_FAILED", str(response_data.get("errorDetails"))
            )

        header = response_data.get("trackHeader") or {}
        details = self._field(response_data, "trackDetails")

        history = []
        for activity in details or []:
            mapped = self.map_status(activity.get("strCode"))
            history.append(
                TrackingEvent(
                    status=mapped["status"],
                    status_detail=mapped["sub_status"],
                    description=activity.get("strAction"),
                    location=activity.get("strOrigin"),
                    timestamp=parse_courier_datetime(
                        "{} {}".format(
                            activity.get("strActionDate", ""),
                            activity.get("strActionTime", ""),
                        )
                    ),
                )
            )

        # DTDC lists scans oldest first
        latest = details[-1] if details else {}
        mapped = self.map_status(latest.get("strCode"))

        return TrackingResult(
            awb=header.get("strShipmentNo") or awb,
            courier=self.courier_id,
            status=mapped["status"],
            status_detail=mapped["sub_status"],
            courier_status=latest.get("strCode"),
            location=latest.get("strOrigin"),
            timestamp=history[-1].timestamp if history else None,
            history=self.history_sorted(history),
        )

    async def _cancel(self, awb: str) -> CancelResult:
        response_data = await self._request(
            "POST",
            self.cancel_order_url,
            authenticated=False,
            headers=self._api_key_headers(),
            json={"AWBNo": [awb], "customerCode": self.credentials.get("customer_code")},
        )

        if not response_data.get("success"):
            raise UpstreamRejected(
                self.courier_id, "CANCEL_FAILED", str(response_data.get("message"))
            )

        return CancelResult(
            success=True,
            courier=self.courier_id,
            awb=awb,
            message="Shipment cancelled",
        )

    async def _pickup(self, awbs: List[str]) -> PickupResult:
        # softdata bookings are picked up by DTDC without a separate request
        return PickupResult(
            success=True,
            courier=self.courier_id,
            awbs=awbs,
            message="Pickup is scheduled by DTDC at booking",
        )
