"""
Orders service.
"""

from datetime import datetime
from typing import Any, Dict, List

from ..rest import ChannelAdvisorClient, convert_date

ORDERS_URL = "v1/Orders"


class OrdersService:
    """Reads orders of one account."""

    def __init__(self, client: ChannelAdvisorClient):
        self.client = client

    async def get_orders(
        self,
        start: datetime,
        end: datetime,
        include_items: bool = True,
    ) -> List[Dict[str, Any]]:
        """Orders created between ``start`` and ``end`` (inclusive)."""
        odata_filter = (
            f"CreatedDateUtc ge {convert_date(start)} "
            f"and CreatedDateUtc le {convert_date(end)}"
        )
        url = f"{ORDERS_URL}?$filter={odata_filter}"
        if include_items:
            url += "&$expand=Items"
        return await self.client.get_all(url)

    async def get_order(self, order_id: int) -> Dict[str, Any]:
        """Single order by id."""
        return await self.client.get(f"{ORDERS_URL}({order_id})")
