"""
Stage tag and per-stage state records for one issuance journey.

Each record carries exactly the entities that exist at its stage, so an
impossible combination (a policy while the journey is still quoting) cannot be
built. Records are frozen; the engine replaces them on every transition.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Optional, Tuple, Union

from issuance.integrations.contracts.interfaces import (
    Application,
    Offer,
    Policy,
    Product,
    Quote,
    UnderwritingCase,
)


class Stage(str, Enum):
    SELECT_PRODUCT = "select_product"
    QUOTE = "quote"
    APPLICANT = "applicant"
    AWAIT_SUBMISSION = "await_submission"
    UNDERWRITING = "underwriting"
    OFFER = "offer"
    POLICY = "policy"

    @property
    def number(self) -> int:
        """1-based position in the journey."""
        return list(Stage).index(self) + 1


class Hold(str, Enum):
    MANUAL_REVIEW = "manual_review"     # referred, waiting for a human underwriter
    TIMED_OUT = "timed_out"             # poll cap reached, operator may re-check


@dataclass(frozen=True)
class DeclinedOutcome:
    """Terminal business result; not an error."""

    stage: Stage
    reason: str


@dataclass(frozen=True)
class SelectProductState:
    stage: ClassVar[Stage] = Stage.SELECT_PRODUCT
    products: Tuple[Product, ...] = ()


@dataclass(frozen=True)
class QuoteState:
    stage: ClassVar[Stage] = Stage.QUOTE
    product: Product


@dataclass(frozen=True)
class ApplicantState:
    stage: ClassVar[Stage] = Stage.APPLICANT
    product: Product
    quote: Quote
    age: int
    smoker: bool


@dataclass(frozen=True)
class AwaitSubmissionState:
    stage: ClassVar[Stage] = Stage.AWAIT_SUBMISSION
    product: Product
    quote: Quote
    application: Application


@dataclass(frozen=True)
class UnderwritingState:
    stage: ClassVar[Stage] = Stage.UNDERWRITING
    product: Product
    quote: Quote
    application: Application
    case: Optional[UnderwritingCase] = None
    hold: Optional[Hold] = None
    declined: Optional[DeclinedOutcome] = None


@dataclass(frozen=True)
class OfferState:
    stage: ClassVar[Stage] = Stage.OFFER
    product: Product
    quote: Quote
    application: Application
    case: Optional[UnderwritingCase] = None
    offer: Optional[Offer] = None
    declined: Optional[DeclinedOutcome] = None


@dataclass(frozen=True)
class PolicyState:
    stage: ClassVar[Stage] = Stage.POLICY
    product: Product
    quote: Quote
    application: Application
    offer: Offer
    case: Optional[UnderwritingCase] = None
    policy: Optional[Policy] = None
    hold: Optional[Hold] = None


StageState = Union[
    SelectProductState,
    QuoteState,
    ApplicantState,
    AwaitSubmissionState,
    UnderwritingState,
    OfferState,
    PolicyState,
]


def is_terminal(state: StageState) -> bool:
    if isinstance(state, (UnderwritingState, OfferState)):
        return state.declined is not None
    if isinstance(state, PolicyState):
        return state.policy is not None
    return False
