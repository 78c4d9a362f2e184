"""Quotes: priced once per journey, read-only afterwards."""

from __future__ import annotations

from issuance.integrations.contracts.interfaces import Quote, QuoteInput

from .base import ApiTransport, path_segment


class QuotesClient:
    def __init__(self, transport: ApiTransport) -> None:
        self.transport = transport

    async def create_quote(self, quote_input: QuoteInput) -> Quote:
        return await self.transport.request_model(Quote, "POST", "/quotes", json=quote_input.model_dump(mode="json"))

    async def get_quote(self, quote_id: str) -> Quote:
        return await self.transport.request_model(Quote, "GET", f"/quotes/{path_segment(quote_id)}")
