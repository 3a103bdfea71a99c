"""
Per-entity services built on the REST client.
"""

from .fulfillments import FulfillmentsService
from .models import (
    Fulfillment,
    FulfillmentUpdate,
    FulfillmentType,
    FulfillmentDeliveryStatus,
)
from .orders import OrdersService
from .products import ProductsService

__all__ = [
    "FulfillmentsService",
    "Fulfillment",
    "FulfillmentUpdate",
    "FulfillmentType",
    "FulfillmentDeliveryStatus",
    "OrdersService",
    "ProductsService",
]
