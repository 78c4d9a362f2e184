from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class QuoteStatus(str, Enum):
    NEW = "new"
    PRICED = "priced"
    EXPIRED = "expired"


class ApplicationStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    DECLINED = "declined"


class UWDecision(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    DECLINED = "declined"
    REFERRED = "referred"      # needs a human underwriter


class UWMethod(str, Enum):
    AUTO = "auto"
    MANUAL = "manual"


class OfferStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    EXPIRED = "expired"
    ISSUED = "issued"


class PolicyStatus(str, Enum):
    ACTIVE = "active"
    LAPSED = "lapsed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


# ---------------------------------------------------------------------------
# Entities (server-owned, immutable on the client)
# ---------------------------------------------------------------------------

class _Entity(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


class Product(_Entity):
    id: str = ""
    slug: str
    name: str
    term_years: int
    min_coverage: int
    max_coverage: int
    base_rate: float                     # monthly rate per 1k of coverage


class Quote(_Entity):
    id: str
    product_id: str = ""
    product_slug: str = ""
    coverage_amount: int
    term_years: int
    monthly_premium: float
    status: QuoteStatus
    created_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None


class Applicant(_Entity):
    first_name: str
    last_name: str
    email: str
    date_of_birth: str                   # ISO format: YYYY-MM-DD
    age: int
    smoker: bool = False
    state: str                           # two-letter code


class Application(_Entity):
    id: str
    quote_id: str
    product_id: str = ""
    product_slug: str = ""
    coverage_amount: int = 0
    term_years: int = 0
    monthly_premium: float = 0
    applicant: Applicant
    status: ApplicationStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    submitted_at: Optional[datetime] = None


class RiskFactors(_Entity):
    age: int = 0
    smoker: bool = False
    coverage_amount: int = 0
    term_years: int = 0


class RiskScore(_Entity):
    score: int = Field(ge=0, le=100)
    flags: List[str] = Field(default_factory=list)
    recommended: Optional[UWDecision] = None

    @field_validator("flags", mode="before")
    @classmethod
    def _null_flags(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("recommended", mode="before")
    @classmethod
    def _blank_recommendation(cls, value: Any) -> Any:
        return None if value == "" else value


class UnderwritingCase(_Entity):
    id: str
    application_id: str
    risk_factors: RiskFactors = Field(default_factory=RiskFactors)
    risk_score: RiskScore
    decision: UWDecision
    method: UWMethod
    decided_by: str = ""
    reason: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    decided_at: Optional[datetime] = None


class Offer(_Entity):
    id: str
    application_id: str
    product_slug: str = ""
    coverage_amount: int = 0
    term_years: int = 0
    monthly_premium: float
    status: OfferStatus
    created_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    accepted_at: Optional[datetime] = None
    declined_at: Optional[datetime] = None


class Policy(_Entity):
    id: str = ""
    number: str
    application_id: str
    offer_id: str = ""
    product_slug: str = ""
    coverage_amount: int = 0
    term_years: int = 0
    monthly_premium: float = 0
    insured: Optional[Applicant] = None
    status: PolicyStatus
    effective_date: str = ""
    expiry_date: str = ""
    issued_at: Optional[datetime] = None


class PolicyList(_Entity):
    items: List[Policy] = Field(default_factory=list)
    total: int = 0
    limit: int = 0
    offset: int = 0

    @field_validator("items", mode="before")
    @classmethod
    def _null_items(cls, value: Any) -> Any:
        return [] if value is None else value


class ProblemDetails(_Entity):
    """RFC 7807 problem payload returned for every non-2xx response."""

    type: str = "about:blank"
    title: str = ""
    status: int = 0
    detail: str = ""


# ---------------------------------------------------------------------------
# Request records
# ---------------------------------------------------------------------------

class QuoteInput(BaseModel):
    product_slug: str
    coverage_amount: int
    term_years: int
    age: int
    smoker: bool = False


class ApplicationInput(BaseModel):
    quote_id: str
    applicant: Applicant


class ApplicantPatch(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    date_of_birth: Optional[str] = None
    age: Optional[int] = None
    smoker: Optional[bool] = None
    state: Optional[str] = None


class ApplicationPatch(BaseModel):
    applicant: Optional[ApplicantPatch] = None

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class UWDecisionInput(BaseModel):
    decision: UWDecision
    reason: str


class PolicyFilter(BaseModel):
    application_id: Optional[str] = None
    status: Optional[PolicyStatus] = None
    limit: Optional[int] = Field(default=None, ge=1)
    offset: Optional[int] = Field(default=None, ge=0)

    def to_params(self) -> Dict[str, str]:
        """Query parameters; unset filters are omitted."""
        params: Dict[str, str] = {}
        if self.application_id:
            params["application_id"] = self.application_id
        if self.status is not None:
            params["status"] = self.status.value
        if self.limit:
            params["limit"] = str(self.limit)
        if self.offset:
            params["offset"] = str(self.offset)
        return params
