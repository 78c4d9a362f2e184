"""Aggregate client exposing one narrow client per remote resource."""

from __future__ import annotations

from typing import Optional

import httpx

from issuance.utils.config_loader import ApiConfig

from .applications import ApplicationsClient
from .base import ApiTransport, CallObserver
from .offers import OffersClient
from .policies import PoliciesClient
from .products import ProductsClient
from .quotes import QuotesClient
from .underwriting import UnderwritingClient


class IssuanceApiClient:
    def __init__(self, transport: ApiTransport) -> None:
        self.transport = transport
        self.products = ProductsClient(transport)
        self.quotes = QuotesClient(transport)
        self.applications = ApplicationsClient(transport)
        self.underwriting = UnderwritingClient(transport)
        self.offers = OffersClient(transport)
        self.policies = PoliciesClient(transport)

    @classmethod
    def from_config(
        cls,
        config: ApiConfig,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        observer: Optional[CallObserver] = None,
    ) -> "IssuanceApiClient":
        return cls(
            ApiTransport(
                config.base_url,
                config.api_key,
                api_key_header=config.api_key_header,
                timeout_seconds=config.timeout_seconds,
                transport=transport,
                observer=observer,
            )
        )
