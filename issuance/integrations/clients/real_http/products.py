"""Products: immutable reference data."""

from __future__ import annotations

from typing import List

from issuance.integrations.contracts.interfaces import Product

from .base import ApiTransport, path_segment


class ProductsClient:
    def __init__(self, transport: ApiTransport) -> None:
        self.transport = transport

    async def list_products(self) -> List[Product]:
        return await self.transport.request_model_list(Product, "GET", "/products")

    async def get_product(self, slug: str) -> Product:
        return await self.transport.request_model(Product, "GET", f"/products/{path_segment(slug)}")
