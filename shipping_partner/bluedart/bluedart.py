import os
from datetime import datetime, timedelta
from typing import Dict, List

import jwt
import pytz

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
from utils.exceptions import AuthFailed, InvalidResponseShape, UpstreamRejected
from utils.string import clean_phone, clean_text


class Bluedart(CourierAdapter):
    """
    BlueDart API gateway.

    Login is a GET with ClientID / clientSecret headers and returns a JWT; its
    `exp` claim is used as the token expiry. Every later call sends the JWT in
    a `JWTToken` header.
    """

    courier_id = "bluedart"
    display_name = "BlueDart"
    base_url = "https://apigateway.bluedart.com"
    tracking_url_template = "https://www.bluedart.com/tracking/{awb}"

    # API URL'S
    login_url = "/in/transportation/token/v1/login"
    create_order_url = "/in/transportation/waybill/v1/GenerateWayBill"
    cancel_order_url = "/in/transportation/waybill/v1/CancelWaybill"
    track_order_url = "/in/transportation/tracking/v1/shipment"
    pickup_url = "/in/transportation/pickup/v1/RegisterPickup"

    required_credentials = ("client_id", "client_secret", "login_id", "licence_key")
    status_mapping = status_mapping

    # used when the JWT carries no exp claim
    default_token_lifetime = timedelta(hours=1)

    @classmethod
    def load_credentials(cls) -> Dict[str, str]:
        return {
            "client_id": os.environ.get("BLUEDART_CLIENT_ID"),
            "client_secret": os.environ.get("BLUEDART_CLIENT_SECRET"),
            "login_id": os.environ.get("BLUEDART_LOGIN_ID"),
            "licence_key": os.environ.get("BLUEDART_LICENCE_KEY"),
            "customer_code": os.environ.get("BLUEDART_CUSTOMER_CODE"),
        }

    def _profile(self) -> Dict[str, str]:
        return {
            "Api_type": "S",
            "LicenceKey": self.credentials.get("licence_key"),
            "LoginID": self.credentials.get("login_id"),
        }

    async def _login(self) -> Token:
        if not self.is_configured():
            raise AuthFailed(self.courier_id, "BlueDart credentials are not configured")

        response_data = await self._request(
            "GET",
            self.login_url,
            authenticated=False,
            headers={
                "ClientID": self.credentials["client_id"],
                "clientSecret": self.credentials["client_secret"],
            },
        )

        token = response_data.get("JWTToken")
        if not token:
            raise AuthFailed(self.courier_id, "Login response carried no JWTToken")

        return Token(
            access_token=token,
            expires_at=self._token_expiry(token),
            token_type="JWT",
        )

    def _token_expiry(self, token: str) -> datetime:
        try:
            claims = jwt.decode(token, options={"verify_signature": False})
        except jwt.PyJWTError:
            return utc_now() + self.default_token_lifetime

        if "exp" not in claims:
            return utc_now() + self.default_token_lifetime
        return datetime.fromtimestamp(int(claims["exp"]), tz=pytz.utc)

    def _auth_headers(self, token: Token) -> Dict[str, str]:
        return {"JWTToken": token.access_token}

    @staticmethod
    def _raise_on_error(result: Dict, courier_id: str, code: str):
        if result.get("IsError"):
            statuses = result.get("Status") or [{}]
            raise UpstreamRejected(
                courier_id, code, str(statuses[0].get("StatusInformation"))
            )

    async def _book(self, request: ShipmentRequest) -> BookingResult:
        payload = {
            "Request": {
                "Consignee": {
                    "ConsigneeName": request.consignee.name,
                    "ConsigneeAddress1": clean_text(request.consignee.address),
                    "ConsigneePincode": request.consignee.pincode,
                    "ConsigneeMobile": clean_phone(request.consignee.phone),
                },
                "Shipper": {
                    "CustomerName": request.pickup.name,
                    "CustomerAddress1": clean_text(request.pickup.address),
                    "CustomerPincode": request.pickup.pincode,
                    "CustomerMobile": clean_phone(request.pickup.phone),
                    "CustomerCode": self.credentials.get("customer_code"),
                    "OriginArea": request.pickup.city[:3].upper(),
                },
                "Services": {
                    "ActualWeight": str(request.weight_kg),
                    "CollectableAmount": float(request.cod_amount) if request.is_cod else 0,
                    "DeclaredValue": float(request.declared_value),
                    "CreditReferenceNo": request.order_id,
                    "PieceCount": str(request.quantity),
                    "ProductCode": "A",
                    "SubProductCode": "C" if request.is_cod else "P",
                    "Dimensions": [
                        {
                            "Length": request.dims.length,
                            "Breadth": request.dims.width,
                            "Height": request.dims.height,
                            "Count": 1,
                        }
                    ],
                    "itemdtl": [
                        {"ItemName": clean_text(request.product_description)}
                    ],
                },
            },
            "Profile": self._profile(),
        }

        response_data = await self._request("POST", self.create_order_url, json=payload)

        result = self._field(response_data, "GenerateWayBillResult")
        self._raise_on_error(result, self.courier_id, "BOOKING_FAILED")

        awb = self._field(result, "AWBNo")
        return BookingResult(
            success=True,
            courier=self.courier_id,
            awb=str(awb),
            tracking_id=str(awb),
            raw_provider_response=response_data,
        )

    async def _track(self, awb: str) -> TrackingResult:
        response_data = await self._request(
            "GET",
            self.track_order_url,
            params={
                "handler": "tnt",
                "action": "custawbquery",
                "loginid": self.credentials.get("login_id"),
                "lickey": self.credentials.get("licence_key"),
                "numbers": awb,
                "awb": "awb",
                "format": "json",
                "scan": 1,
                "verno": 1,
            },
        )

        shipment_data = self._field(response_data, "ShipmentData")
        if shipment_data.get("Error"):
            raise UpstreamRejected(
                self.courier_id, "TRACKING_FAILED", str(shipment_data["Error"])
            )

        shipment = self._field(shipment_data, "Shipment")
        shipment = shipment[0] if isinstance(shipment, list) else shipment
        if not isinstance(shipment, dict):
            raise InvalidResponseShape(self.courier_id, "Shipment is not an object")

        history = []
        for scan in shipment.get("Scans") or []:
            detail = scan.get("ScanDetail") or {}
            mapped = self.map_status(detail.get("ScanCode"), detail.get("ScanType"))
            history.append(
                TrackingEvent(
                    status=mapped["status"],
                    status_detail=mapped["sub_status"],
                    description=detail.get("Scan"),
                    location=detail.get("ScannedLocation"),
                    timestamp=parse_courier_datetime(
                        "{} {}".format(detail.get("ScanDate", ""), detail.get("ScanTime", ""))
                    ),
                )
            )
        history = self.history_sorted(history)

        latest = history[0] if history else None
        return TrackingResult(
            awb=awb,
            courier=self.courier_id,
            status=latest.status if latest else "booked",
            status_detail=latest.status_detail if latest else "booked",
            courier_status=shipment.get("Status"),
            location=latest.location if latest else None,
            timestamp=latest.timestamp if latest else None,
            history=history,
        )

    async def _cancel(self, awb: str) -> CancelResult:
        response_data = await self._request(
            "POST",
            self.cancel_order_url,
            json={"Request": {"AWBNo": awb}, "Profile": self._profile()},
        )

        result = self._field(response_data, "CancelWaybillResult")
        self._raise_on_error(result, self.courier_id, "CANCEL_FAILED")

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
            self.pickup_url,
            json={
                "request": {
                    "AWBNo": awbs,
                    "CustomerCode": self.credentials.get("customer_code"),
                    "ShipmentPickupDate": pickup_date,
                    "ShipmentPickupTime": "11:00",
                    "NumberofPieces": len(awbs),
                },
                "profile": self._profile(),
            },
        )

        result = self._field(response_data, "RegisterPickupResult")
        self._raise_on_error(result, self.courier_id, "PICKUP_FAILED")

        return PickupResult(
            success=True,
            courier=self.courier_id,
            awbs=awbs,
            pickup_id=str(self._field(result, "TokenNumber")),
            scheduled_date=pickup_date,
            message="Pickup registered",
        )
