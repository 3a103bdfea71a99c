"""
Products (inventory) service.
"""

import logging
from typing import Any, Dict, List, Optional

from ..cache import SQLiteResultCache
from ..rest import ChannelAdvisorClient

logger = logging.getLogger(__name__)

PRODUCTS_URL = "v1/Products"
ALL_PRODUCTS_QUERY = "all_products"


class ProductsService:
    """Reads products of one account, optionally through the result cache."""

    def __init__(
        self,
        client: ChannelAdvisorClient,
        cache: Optional[SQLiteResultCache] = None,
    ):
        self.client = client
        self.cache = cache

    @property
    def cache_account(self) -> str:
        return self.client.account_id or self.client.account_name

    async def get_all_products(self) -> List[Dict[str, Any]]:
        """All products of the account; cached when a cache is configured."""
        if self.cache is None:
            return await self.client.get_all(PRODUCTS_URL)

        return await self.cache.get_or_fetch(
            self.cache_account,
            ALL_PRODUCTS_QUERY,
            lambda: self.client.get_all(PRODUCTS_URL),
        )

    async def get_products(self, odata_filter: str) -> List[Dict[str, Any]]:
        """Products matching an OData ``$filter`` expression."""
        return await self.client.get_all(f"{PRODUCTS_URL}?$filter={odata_filter}")

    async def get_product_by_sku(self, sku: str) -> Optional[Dict[str, Any]]:
        """Product with the given SKU, or None."""
        escaped = sku.replace("'", "''")
        products = await self.get_products(f"Sku eq '{escaped}'")
        return products[0] if products else None

    async def refresh_cache(self) -> None:
        """Drop the cached product list of this account."""
        if self.cache is not None:
            await self.cache.invalidate(self.cache_account, ALL_PRODUCTS_QUERY)
