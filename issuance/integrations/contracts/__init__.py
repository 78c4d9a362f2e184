"""
Issuance API contracts.

Defines the request/response structures exchanged with the remote issuance API:
- reference data (products)
- per-stage entities (quotes, applications, underwriting cases, offers, policies)
- request records sent by the client

These contracts must be used by both:
- clients/real_http/* (the Domain Client)
- clients/mocks/sandbox_api.py (in-process simulation of the API)
"""

from .interfaces import (
    Applicant,
    ApplicantPatch,
    Application,
    ApplicationInput,
    ApplicationPatch,
    ApplicationStatus,
    Offer,
    OfferStatus,
    Policy,
    PolicyFilter,
    PolicyList,
    PolicyStatus,
    ProblemDetails,
    Product,
    Quote,
    QuoteInput,
    QuoteStatus,
    RiskFactors,
    RiskScore,
    UnderwritingCase,
    UWDecision,
    UWDecisionInput,
    UWMethod,
)

__all__ = [
    "Applicant",
    "ApplicantPatch",
    "Application",
    "ApplicationInput",
    "ApplicationPatch",
    "ApplicationStatus",
    "Offer",
    "OfferStatus",
    "Policy",
    "PolicyFilter",
    "PolicyList",
    "PolicyStatus",
    "ProblemDetails",
    "Product",
    "Quote",
    "QuoteInput",
    "QuoteStatus",
    "RiskFactors",
    "RiskScore",
    "UnderwritingCase",
    "UWDecision",
    "UWDecisionInput",
    "UWMethod",
]
