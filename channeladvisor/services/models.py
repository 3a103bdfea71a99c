"""
Pydantic models for REST entities.

Only the fields the services read are declared; everything else the API
returns is kept as extra data.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class FulfillmentType(str, Enum):
    """How the items of a fulfillment are delivered."""
    SHIP = "Ship"
    PICKUP = "Pickup"
    EXTERNAL = "External"
    DIGITAL = "Digital"


class FulfillmentDeliveryStatus(str, Enum):
    """Progress of a fulfillment."""
    NO_CHANGE = "NoChange"
    IN_PROGRESS = "InProgress"
    COMPLETE = "Complete"
    CANCELED = "Canceled"
    FAILED = "Failed"
    READY_FOR_PICKUP = "ReadyForPickup"


class Fulfillment(BaseModel):
    """A fulfillment of an order."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: int = Field(alias="ID")
    profile_id: Optional[int] = Field(default=None, alias="ProfileID")
    order_id: int = Field(alias="OrderID")
    type: Optional[FulfillmentType] = Field(default=None, alias="Type")
    delivery_status: Optional[FulfillmentDeliveryStatus] = Field(
        default=None, alias="DeliveryStatus"
    )
    tracking_number: Optional[str] = Field(default=None, alias="TrackingNumber")
    shipping_carrier: Optional[str] = Field(default=None, alias="ShippingCarrier")
    shipping_class: Optional[str] = Field(default=None, alias="ShippingClass")
    distribution_center_id: Optional[int] = Field(
        default=None, alias="DistributionCenterID"
    )
    created_date_utc: Optional[datetime] = Field(default=None, alias="CreatedDateUtc")
    updated_date_utc: Optional[datetime] = Field(default=None, alias="UpdatedDateUtc")
    shipped_date_utc: Optional[datetime] = Field(default=None, alias="ShippedDateUtc")


class FulfillmentUpdate(BaseModel):
    """Fields that can be changed on an existing fulfillment."""
    model_config = ConfigDict(populate_by_name=True)

    delivery_status: Optional[FulfillmentDeliveryStatus] = Field(
        default=None, alias="DeliveryStatus"
    )
    tracking_number: Optional[str] = Field(default=None, alias="TrackingNumber")
    shipping_carrier: Optional[str] = Field(default=None, alias="ShippingCarrier")
    shipping_class: Optional[str] = Field(default=None, alias="ShippingClass")
    shipped_date_utc: Optional[datetime] = Field(default=None, alias="ShippedDateUtc")

    def to_payload(self) -> dict:
        """JSON body with API field names, unset fields left out."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
