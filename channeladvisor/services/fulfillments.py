"""
Fulfillments service.
"""

import logging
from typing import List

from ..rest import ChannelAdvisorClient
from .models import Fulfillment, FulfillmentUpdate

logger = logging.getLogger(__name__)

FULFILLMENTS_URL = "v1/Fulfillments"


class FulfillmentsService:
    """Reads and updates fulfillments of one account."""

    def __init__(self, client: ChannelAdvisorClient):
        self.client = client

    async def get_fulfillments(self, order_id: int) -> List[Fulfillment]:
        """All fulfillments of an order."""
        return await self.client.get_all(
            f"{FULFILLMENTS_URL}?$filter=OrderID eq {order_id}",
            model=Fulfillment,
        )

    async def update_fulfillment(
        self, fulfillment_id: int, update: FulfillmentUpdate
    ) -> int:
        """Update an existing fulfillment. Returns HTTP status code."""
        logger.info(f"Updating fulfillment {fulfillment_id}")
        return await self.client.put(
            f"{FULFILLMENTS_URL}({fulfillment_id})", update.to_payload()
        )

    async def create_fulfillment(self, order_id: int, update: FulfillmentUpdate) -> int:
        """Create a new fulfillment for an order. Returns HTTP status code."""
        payload = update.to_payload()
        payload["OrderID"] = order_id
        logger.info(f"Creating fulfillment for order {order_id}")
        return await self.client.post(FULFILLMENTS_URL, payload)
