"""
Real HTTP clients for the issuance API.

One client per remote resource, each exposing narrow typed coroutines
("create quote", "submit application", "decide underwriting case") so request
shape mistakes show up at the call site. All of them go through ApiTransport.
"""

from .applications import ApplicationsClient
from .base import ApiTransport
from .issuance_api import IssuanceApiClient
from .offers import OffersClient
from .policies import PoliciesClient
from .products import ProductsClient
from .quotes import QuotesClient
from .underwriting import UnderwritingClient

__all__ = [
    "ApiTransport",
    "ApplicationsClient",
    "IssuanceApiClient",
    "OffersClient",
    "PoliciesClient",
    "ProductsClient",
    "QuotesClient",
    "UnderwritingClient",
]
