"""Offers: generated for approved applications; accepting one starts policy issuance."""

from __future__ import annotations

from issuance.integrations.contracts.interfaces import Offer

from .base import ApiTransport, path_segment


class OffersClient:
    def __init__(self, transport: ApiTransport) -> None:
        self.transport = transport

    async def create_offer(self, application_id: str) -> Offer:
        return await self.transport.request_model(
            Offer, "POST", f"/applications/{path_segment(application_id)}/offers"
        )

    async def get_offer(self, offer_id: str) -> Offer:
        return await self.transport.request_model(Offer, "GET", f"/offers/{path_segment(offer_id)}")

    async def accept_offer(self, offer_id: str) -> Offer:
        return await self.transport.request_model(Offer, "POST", f"/offers/{path_segment(offer_id)}:accept")

    async def decline_offer(self, offer_id: str) -> Offer:
        return await self.transport.request_model(Offer, "POST", f"/offers/{path_segment(offer_id)}:decline")
