"""In-process simulation of the issuance API.

Serves the same routes, payloads and RFC 7807 problems as the deployed API so
the journey can be exercised without a backend (demo script, end-to-end
tests via ``httpx.ASGITransport``).

Asynchronous behaviour is simulated by counting reads instead of wall time:
- a submitted application is decided on its ``decision_after_reads``-th GET
- an accepted offer's policy appears on the ``issuance_after_reads``-th policy list

The decision rules below are mock rules for exercising every branch of the
journey; they are not an underwriting model.
"""

from __future__ import annotations

import hmac
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from fastapi import APIRouter, Depends, FastAPI, Header, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from issuance.integrations.contracts.interfaces import (
    Application,
    ApplicationInput,
    ApplicationPatch,
    ApplicationStatus,
    Offer,
    OfferStatus,
    Policy,
    PolicyStatus,
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

logger = logging.getLogger(__name__)

SANDBOX_API_KEY = "sandbox-api-key"
API_PREFIX = "/api/v1"

AUTO_DECLINE_AGE = 75
REFERRAL_COVERAGE = 500_000
OFFER_VALIDITY_DAYS = 30
QUOTE_VALIDITY_DAYS = 30

DEFAULT_PRODUCTS = (
    Product(id="prod-tl10", slug="term-life-10", name="Term Life 10", term_years=10,
            min_coverage=50_000, max_coverage=1_000_000, base_rate=0.08),
    Product(id="prod-tl20", slug="term-life-20", name="Term Life 20", term_years=20,
            min_coverage=100_000, max_coverage=2_000_000, base_rate=0.12),
    Product(id="prod-tl30", slug="term-life-30", name="Term Life 30", term_years=30,
            min_coverage=100_000, max_coverage=3_000_000, base_rate=0.15),
)


class SandboxProblem(Exception):
    def __init__(self, status: int, title: str, detail: str) -> None:
        super().__init__(detail)
        self.status = status
        self.title = title
        self.detail = detail


def _problem_response(status: int, title: str, detail: str) -> JSONResponse:
    return JSONResponse(
        status_code=status,
        content={"type": "about:blank", "title": title, "status": status, "detail": detail},
        media_type="application/problem+json",
    )


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid4().hex


def _add_years(day: date, years: int) -> date:
    try:
        return day.replace(year=day.year + years)
    except ValueError:
        # 29 February in a non-leap target year
        return day.replace(year=day.year + years, day=28)


@dataclass
class SandboxStore:
    products: Dict[str, Product] = field(default_factory=lambda: {p.slug: p for p in DEFAULT_PRODUCTS})
    quotes: Dict[str, Quote] = field(default_factory=dict)
    applications: Dict[str, Application] = field(default_factory=dict)
    cases: Dict[str, UnderwritingCase] = field(default_factory=dict)
    offers: Dict[str, Offer] = field(default_factory=dict)
    policies: Dict[str, Policy] = field(default_factory=dict)
    decision_reads: Dict[str, int] = field(default_factory=dict)
    issuance_reads: Dict[str, int] = field(default_factory=dict)

    # -- lookups ----------------------------------------------------------

    def product(self, slug: str) -> Product:
        if slug not in self.products:
            raise SandboxProblem(404, "Not Found", f"product {slug} not found")
        return self.products[slug]

    def quote(self, quote_id: str) -> Quote:
        if quote_id not in self.quotes:
            raise SandboxProblem(404, "Not Found", f"quote {quote_id} not found")
        return self.quotes[quote_id]

    def application(self, application_id: str) -> Application:
        if application_id not in self.applications:
            raise SandboxProblem(404, "Not Found", f"application {application_id} not found")
        return self.applications[application_id]

    def case(self, case_id: str) -> UnderwritingCase:
        if case_id not in self.cases:
            raise SandboxProblem(404, "Not Found", f"underwriting case {case_id} not found")
        return self.cases[case_id]

    def case_for(self, application_id: str) -> Optional[UnderwritingCase]:
        return next((c for c in self.cases.values() if c.application_id == application_id), None)

    def offer(self, offer_id: str) -> Offer:
        if offer_id not in self.offers:
            raise SandboxProblem(404, "Not Found", f"offer {offer_id} not found")
        return self.offers[offer_id]

    def policy(self, number: str) -> Policy:
        if number not in self.policies:
            raise SandboxProblem(404, "Not Found", f"policy {number} not found")
        return self.policies[number]

    # -- writes -----------------------------------------------------------

    def save_application(self, application: Application, **updates: Any) -> Application:
        updated = application.model_copy(update={**updates, "updated_at": _now()})
        self.applications[updated.id] = updated
        return updated


def price_quote(product: Product, coverage_amount: int, age: int, smoker: bool) -> float:
    age_factor = 1 + max(0, age - 30) * 0.03
    smoker_factor = 1.5 if smoker else 1.0
    return round(coverage_amount / 1000 * product.base_rate * age_factor * smoker_factor, 2)


def mock_decision(application: Application) -> tuple[UWDecision, RiskScore]:
    applicant = application.applicant
    flags: List[str] = []
    score = 10 + max(0, applicant.age - 30)
    if applicant.smoker:
        flags.append("smoker")
        score += 30
    if application.coverage_amount > REFERRAL_COVERAGE:
        flags.append("high_coverage")
        score += 20
    if applicant.age >= AUTO_DECLINE_AGE:
        flags.append("age_over_limit")
        return UWDecision.DECLINED, RiskScore(score=100, flags=flags, recommended=UWDecision.DECLINED)
    score = min(score, 100)
    if flags:
        return UWDecision.REFERRED, RiskScore(score=score, flags=flags, recommended=UWDecision.REFERRED)
    return UWDecision.APPROVED, RiskScore(score=score, flags=flags, recommended=UWDecision.APPROVED)


def create_sandbox_app(
    api_key: str = SANDBOX_API_KEY,
    *,
    decision_after_reads: int = 1,
    issuance_after_reads: int = 1,
    store: Optional[SandboxStore] = None,
) -> FastAPI:
    """Build a sandbox issuance API app. ``app.state.store`` exposes its data."""
    store = store or SandboxStore()

    async def api_key_protection(x_api_key: Optional[str] = Header(default=None, alias="X-API-Key")) -> None:
        candidate = (x_api_key or "").strip()
        if not candidate or not hmac.compare_digest(candidate.encode(), api_key.encode()):
            raise SandboxProblem(401, "Unauthorized", "Invalid or missing API key")

    router = APIRouter(prefix=API_PREFIX, dependencies=[Depends(api_key_protection)])

    # -- products ---------------------------------------------------------

    @router.get("/products")
    async def list_products():
        return [p.model_dump(mode="json") for p in store.products.values()]

    @router.get("/products/{slug}")
    async def get_product(slug: str):
        return store.product(slug).model_dump(mode="json")

    # -- quotes -----------------------------------------------------------

    @router.post("/quotes", status_code=201)
    async def create_quote(payload: QuoteInput):
        product = store.product(payload.product_slug)
        if not product.min_coverage <= payload.coverage_amount <= product.max_coverage:
            raise SandboxProblem(422, "Validation Error", "coverage_amount outside product limits")
        if payload.age <= 0 or payload.age > 120:
            raise SandboxProblem(422, "Validation Error", "age must be between 1 and 120")
        now = _now()
        quote = Quote(
            id=_new_id(),
            product_id=product.id,
            product_slug=product.slug,
            coverage_amount=payload.coverage_amount,
            term_years=payload.term_years,
            monthly_premium=price_quote(product, payload.coverage_amount, payload.age, payload.smoker),
            status=QuoteStatus.PRICED,
            created_at=now,
            expires_at=now + timedelta(days=QUOTE_VALIDITY_DAYS),
        )
        store.quotes[quote.id] = quote
        return quote.model_dump(mode="json")

    @router.get("/quotes/{quote_id}")
    async def get_quote(quote_id: str):
        return store.quote(quote_id).model_dump(mode="json")

    # -- applications -----------------------------------------------------

    @router.post("/applications", status_code=201)
    async def create_application(payload: ApplicationInput):
        quote = store.quote(payload.quote_id)
        if quote.status != QuoteStatus.PRICED:
            raise SandboxProblem(409, "Conflict", f"quote {quote.id} is {quote.status.value}")
        now = _now()
        application = Application(
            id=_new_id(),
            quote_id=quote.id,
            product_id=quote.product_id,
            product_slug=quote.product_slug,
            coverage_amount=quote.coverage_amount,
            term_years=quote.term_years,
            monthly_premium=quote.monthly_premium,
            applicant=payload.applicant,
            status=ApplicationStatus.DRAFT,
            created_at=now,
            updated_at=now,
        )
        store.applications[application.id] = application
        return application.model_dump(mode="json")

    @router.post("/applications/{application_id}:submit")
    async def submit_application(application_id: str):
        application = store.application(application_id)
        if application.status != ApplicationStatus.DRAFT:
            raise SandboxProblem(409, "Conflict", f"application is {application.status.value}, not draft")
        store.decision_reads[application_id] = 0
        submitted = store.save_application(application, status=ApplicationStatus.SUBMITTED, submitted_at=_now())
        return submitted.model_dump(mode="json")

    @router.get("/applications/{application_id}")
    async def get_application(application_id: str):
        application = store.application(application_id)
        if application_id in store.decision_reads:
            application = _advance_underwriting(application)
        return application.model_dump(mode="json")

    @router.patch("/applications/{application_id}")
    async def patch_application(application_id: str, payload: ApplicationPatch):
        application = store.application(application_id)
        if application.status != ApplicationStatus.DRAFT:
            raise SandboxProblem(409, "Conflict", "only draft applications can be changed")
        changes = payload.applicant.model_dump(exclude_none=True) if payload.applicant else {}
        applicant = application.applicant.model_copy(update=changes)
        return store.save_application(application, applicant=applicant).model_dump(mode="json")

    def _advance_underwriting(application: Application) -> Application:
        reads = store.decision_reads[application.id] + 1
        store.decision_reads[application.id] = reads
        now = _now()

        case = store.case_for(application.id)
        if case is None:
            case = UnderwritingCase(
                id=_new_id(),
                application_id=application.id,
                risk_factors=RiskFactors(
                    age=application.applicant.age,
                    smoker=application.applicant.smoker,
                    coverage_amount=application.coverage_amount,
                    term_years=application.term_years,
                ),
                risk_score=RiskScore(score=0),
                decision=UWDecision.PENDING,
                method=UWMethod.AUTO,
                created_at=now,
                updated_at=now,
            )
            store.cases[case.id] = case
            application = store.save_application(application, status=ApplicationStatus.UNDER_REVIEW)

        if reads < decision_after_reads or case.decision != UWDecision.PENDING:
            return application

        decision, score = mock_decision(application)
        updates: Dict[str, Any] = {"decision": decision, "risk_score": score, "updated_at": now}
        if decision == UWDecision.APPROVED:
            updates.update(decided_by="system", decided_at=now, reason="Auto-approved: meets low-risk criteria")
        elif decision == UWDecision.DECLINED:
            updates.update(
                decided_by="system", decided_at=now, reason="Auto-declined: does not meet eligibility requirements"
            )
        store.cases[case.id] = case.model_copy(update=updates)
        del store.decision_reads[application.id]
        logger.info("[Sandbox] application=%s underwriting decision=%s", application.id, decision.value)

        if decision == UWDecision.APPROVED:
            return store.save_application(application, status=ApplicationStatus.APPROVED)
        if decision == UWDecision.DECLINED:
            return store.save_application(application, status=ApplicationStatus.DECLINED)
        return application

    # -- underwriting -----------------------------------------------------

    @router.get("/underwriting/cases")
    async def list_referred_cases():
        return [
            c.model_dump(mode="json") for c in store.cases.values() if c.decision == UWDecision.REFERRED
        ]

    @router.post("/underwriting/cases/{case_id}:decide")
    async def decide_case(case_id: str, payload: UWDecisionInput):
        case = store.case(case_id)
        if payload.decision not in (UWDecision.APPROVED, UWDecision.DECLINED):
            raise SandboxProblem(422, "Validation Error", "decision must be approved or declined")
        if not payload.reason.strip():
            raise SandboxProblem(422, "Validation Error", "reason is required")
        if case.decision != UWDecision.REFERRED:
            raise SandboxProblem(409, "Conflict", f"case is {case.decision.value}, not referred")
        now = _now()
        decided = case.model_copy(update={
            "decision": payload.decision,
            "method": UWMethod.MANUAL,
            "decided_by": "underwriter",
            "reason": payload.reason,
            "decided_at": now,
            "updated_at": now,
        })
        store.cases[case_id] = decided
        status = ApplicationStatus.APPROVED if payload.decision == UWDecision.APPROVED else ApplicationStatus.DECLINED
        store.save_application(store.application(case.application_id), status=status)
        return decided.model_dump(mode="json")

    @router.get("/underwriting/cases/{case_id}")
    async def get_case(case_id: str):
        return store.case(case_id).model_dump(mode="json")

    # -- offers -----------------------------------------------------------

    @router.post("/applications/{application_id}/offers", status_code=201)
    async def create_offer(application_id: str):
        application = store.application(application_id)
        if application.status != ApplicationStatus.APPROVED:
            raise SandboxProblem(409, "Conflict", f"application is {application.status.value}, not approved")
        existing = next(
            (o for o in store.offers.values()
             if o.application_id == application_id and o.status == OfferStatus.PENDING),
            None,
        )
        if existing is not None:
            return existing.model_dump(mode="json")
        now = _now()
        offer = Offer(
            id=_new_id(),
            application_id=application_id,
            product_slug=application.product_slug,
            coverage_amount=application.coverage_amount,
            term_years=application.term_years,
            monthly_premium=application.monthly_premium,
            status=OfferStatus.PENDING,
            created_at=now,
            expires_at=now + timedelta(days=OFFER_VALIDITY_DAYS),
        )
        store.offers[offer.id] = offer
        return offer.model_dump(mode="json")

    @router.post("/offers/{offer_id}:accept")
    async def accept_offer(offer_id: str):
        offer = _pending_offer(offer_id)
        accepted = offer.model_copy(update={"status": OfferStatus.ACCEPTED, "accepted_at": _now()})
        store.offers[offer_id] = accepted
        store.issuance_reads[offer_id] = 0
        return accepted.model_dump(mode="json")

    @router.post("/offers/{offer_id}:decline")
    async def decline_offer(offer_id: str):
        offer = _pending_offer(offer_id)
        declined = offer.model_copy(update={"status": OfferStatus.DECLINED, "declined_at": _now()})
        store.offers[offer_id] = declined
        return declined.model_dump(mode="json")

    @router.get("/offers/{offer_id}")
    async def get_offer(offer_id: str):
        return store.offer(offer_id).model_dump(mode="json")

    def _pending_offer(offer_id: str) -> Offer:
        offer = store.offer(offer_id)
        if offer.status != OfferStatus.PENDING:
            raise SandboxProblem(409, "Conflict", f"offer is {offer.status.value}, not pending")
        return offer

    # -- policies ---------------------------------------------------------

    @router.get("/policies")
    async def list_policies(
        application_id: Optional[str] = None,
        status: Optional[PolicyStatus] = None,
        limit: int = Query(default=20, ge=1, le=100),
        offset: int = Query(default=0, ge=0),
    ):
        _advance_issuance(application_id)
        items = [
            p for p in store.policies.values()
            if (application_id is None or p.application_id == application_id)
            and (status is None or p.status == status)
        ]
        page = items[offset:offset + limit]
        return {
            "items": [p.model_dump(mode="json") for p in page],
            "total": len(items),
            "limit": limit,
            "offset": offset,
        }

    @router.get("/policies/{number}")
    async def get_policy(number: str):
        return store.policy(number).model_dump(mode="json")

    def _advance_issuance(application_id: Optional[str]) -> None:
        for offer_id in list(store.issuance_reads):
            offer = store.offers[offer_id]
            if application_id is not None and offer.application_id != application_id:
                continue
            reads = store.issuance_reads[offer_id] + 1
            store.issuance_reads[offer_id] = reads
            if reads < issuance_after_reads:
                continue
            _issue_policy(offer)
            del store.issuance_reads[offer_id]

    def _issue_policy(offer: Offer) -> Policy:
        application = store.application(offer.application_id)
        now = _now()
        effective = now.date()
        policy = Policy(
            id=_new_id(),
            number=f"POL-{now.year}-{uuid4().hex[:8].upper()}",
            application_id=application.id,
            offer_id=offer.id,
            product_slug=offer.product_slug,
            coverage_amount=offer.coverage_amount,
            term_years=offer.term_years,
            monthly_premium=offer.monthly_premium,
            insured=application.applicant,
            status=PolicyStatus.ACTIVE,
            effective_date=effective.isoformat(),
            expiry_date=_add_years(effective, offer.term_years).isoformat(),
            issued_at=now,
        )
        store.policies[policy.number] = policy
        store.offers[offer.id] = offer.model_copy(update={"status": OfferStatus.ISSUED})
        logger.info("[Sandbox] issued policy=%s for offer=%s", policy.number, offer.id)
        return policy

    app = FastAPI(title="Issuance API Sandbox", version="1.0.0")
    app.state.store = store

    @app.exception_handler(SandboxProblem)
    async def sandbox_problem_handler(request: Request, exc: SandboxProblem):
        return _problem_response(exc.status, exc.title, exc.detail)

    @app.exception_handler(RequestValidationError)
    async def validation_problem_handler(request: Request, exc: RequestValidationError):
        fields = ", ".join(".".join(str(p) for p in err.get("loc", ())[1:]) for err in exc.errors())
        return _problem_response(422, "Validation Error", f"invalid request: {fields or 'body'}")

    @app.exception_handler(StarletteHTTPException)
    async def http_problem_handler(request: Request, exc: StarletteHTTPException):
        return _problem_response(exc.status_code, str(exc.detail), str(exc.detail))

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    app.include_router(router)
    return app
