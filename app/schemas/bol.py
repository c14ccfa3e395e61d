from typing import Optional

from pydantic import Field

from app.schemas.base import BaseSchema


class ShipmentUpdateRequest(BaseSchema):
    order_id: Optional[str] = Field(default=None, alias="orderId")
    shipment_reference: Optional[str] = Field(default=None, alias="shipmentReference")
    transporter_code: Optional[str] = Field(default=None, alias="transporterCode")
    track_and_trace: Optional[str] = Field(default=None, alias="trackAndTrace")

    def to_bol_payload(self) -> dict:
        return {
            "shipmentReference": self.shipment_reference,
            "transport": {
                "transporterCode": self.transporter_code,
                "trackAndTrace": self.track_and_trace,
            },
        }


class ReturnHandlingRequest(BaseSchema):
    # e.g. RETURN_RECEIVED, EXCHANGE_PRODUCT, RETURN_DOES_NOT_MEET_CONDITIONS
    handling_result: str = Field(alias="handlingResult")
    quantity_returned: int = Field(alias="quantityReturned", ge=0)

    def to_bol_payload(self) -> dict:
        return {
            "quantityReturned": self.quantity_returned,
            "handlingResult": self.handling_result,
        }


class SyncOrdersResponse(BaseSchema):
    success: bool = True
    imported: int
    updated: int
    total: int
