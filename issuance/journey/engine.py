"""
Stage workflow engine for the issuance journey.

Drives one journey instance through
SelectProduct -> Quote -> Applicant -> AwaitSubmission -> Underwriting -> Offer -> Policy.

- Validation gates every call that takes form input.
- Underwriting and policy issuance finish asynchronously on the server; the
  engine waits for them through the PollingCoordinator.
- A failed call never moves the journey: the committed state stays where it
  was, the error is stored on the instance and re-raised for the operator to
  retry the same action.
- Only one action may be outstanding per instance; restarting cancels polls
  and nothing that was in flight can write into the new instance.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import AsyncIterator, List, Optional, Tuple, Type, Union
from uuid import uuid4

import httpx

from issuance.integrations.clients.real_http import IssuanceApiClient
from issuance.integrations.contracts.interfaces import (
    Applicant,
    Application,
    ApplicationInput,
    ApplicationStatus,
    Offer,
    OfferStatus,
    PolicyFilter,
    PolicyList,
    Product,
    Quote,
    QuoteInput,
    UnderwritingCase,
    UWDecision,
)
from issuance.integrations.responses import RemoteError
from issuance.journey.errors import FormValidationError, PollTimeout, StageBusyError, StageTransitionError
from issuance.journey.polling import PollingCoordinator, Sleep
from issuance.journey.recorder import ApiCallRecord, DiagnosticRecorder
from issuance.journey.stages import (
    ApplicantState,
    AwaitSubmissionState,
    DeclinedOutcome,
    Hold,
    OfferState,
    PolicyState,
    QuoteState,
    SelectProductState,
    Stage,
    StageState,
    UnderwritingState,
    is_terminal,
)
from issuance.journey.validation import (
    ApplicantForm,
    QuoteForm,
    raise_if_errors,
    validate_applicant_form,
    validate_quote_form,
)
from issuance.utils.config_loader import JourneyConfig

logger = logging.getLogger(__name__)

UNDERWRITING_WAIT = "underwriting"
ISSUANCE_WAIT = "issuance"

UNDERWRITING_SLOW = "Underwriting is taking longer than expected."
ISSUANCE_SLOW = "Policy issuance is taking longer than expected."


class UnderwritingOutcome(str, Enum):
    APPROVED = "approved"
    REFERRED = "referred"
    DECLINED = "declined"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


class IssuanceOutcome(str, Enum):
    ISSUED = "issued"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class UnderwritingSnapshot:
    """Everything one underwriting poll tick fetched."""

    application: Application
    referred_case: Optional[UnderwritingCase] = None

    @property
    def decided(self) -> bool:
        return self.application.status in (ApplicationStatus.APPROVED, ApplicationStatus.DECLINED)


def underwriting_resolved(snapshot: UnderwritingSnapshot) -> bool:
    """Terminal once the application is decided or a referred case exists for it.

    ``under_review`` alone is ambiguous: the case may still be scoring or may be
    waiting for a human, and only the referred case list tells them apart.
    """
    return snapshot.decided or snapshot.referred_case is not None


def policy_issued(policies: PolicyList) -> bool:
    return bool(policies.items)


@dataclass
class WorkflowInstance:
    id: str = field(default_factory=lambda: uuid4().hex)
    state: StageState = field(default_factory=SelectProductState)
    busy: Optional[str] = None
    error: Optional[Exception] = None
    form_errors: List[str] = field(default_factory=list)

    @property
    def stage(self) -> Stage:
        return self.state.stage

    @property
    def hold(self) -> Optional[Hold]:
        return getattr(self.state, "hold", None)

    @property
    def declined(self) -> Optional[DeclinedOutcome]:
        return getattr(self.state, "declined", None)

    @property
    def terminal(self) -> bool:
        return is_terminal(self.state)

    @property
    def error_message(self) -> Optional[str]:
        return str(self.error) if self.error is not None else None


class IssuanceJourney:
    def __init__(
        self,
        api: IssuanceApiClient,
        coordinator: Optional[PollingCoordinator] = None,
        recorder: Optional[DiagnosticRecorder] = None,
    ) -> None:
        self.api = api
        self.coordinator = coordinator or PollingCoordinator()
        self.recorder = recorder
        self._instance = WorkflowInstance()

    @classmethod
    def from_config(
        cls,
        config: JourneyConfig,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Optional[Sleep] = None,
    ) -> "IssuanceJourney":
        recorder = DiagnosticRecorder(history_size=config.diagnostics_history)
        api = IssuanceApiClient.from_config(config.api, transport=transport, observer=recorder)
        return cls(api, PollingCoordinator.from_config(config.polling, sleep=sleep), recorder)

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    @property
    def instance(self) -> WorkflowInstance:
        return self._instance

    @property
    def state(self) -> StageState:
        return self._instance.state

    @property
    def stage(self) -> Stage:
        return self._instance.stage

    @property
    def last_call(self) -> Optional[ApiCallRecord]:
        return self.recorder.last if self.recorder else None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def restart(self) -> WorkflowInstance:
        """Abandon the current journey and start a fresh instance."""
        self.coordinator.cancel_all()
        previous = self._instance
        self._instance = WorkflowInstance()
        logger.info("[Journey] restarted: %s -> %s (was at %s)", previous.id, self._instance.id, previous.stage.value)
        return self._instance

    def cancel_polling(self) -> None:
        self.coordinator.cancel_all()

    # ------------------------------------------------------------------
    # Stage actions
    # ------------------------------------------------------------------

    async def load_products(self) -> List[Product]:
        async with self._action("load_products", SelectProductState) as instance:
            products = await self.api.products.list_products()
            self._commit(instance, SelectProductState(products=tuple(products)))
            logger.info("[Journey] %s loaded %d product(s)", instance.id, len(products))
            return products

    def select_product(self, product: Union[str, Product]) -> Product:
        instance = self._instance
        state = self._require(instance, "select_product", (SelectProductState,))
        if isinstance(product, Product):
            chosen = product
        else:
            chosen = next((p for p in state.products if p.slug == product), None)
            if chosen is None:
                raise StageTransitionError(f"Unknown product {product!r}; load products first")

        instance.error = None
        instance.form_errors = []
        instance.state = QuoteState(product=chosen)
        logger.info("[Journey] %s selected product=%s", instance.id, chosen.slug)
        return chosen

    async def request_quote(self, form: QuoteForm) -> Quote:
        async with self._action("request_quote", QuoteState) as instance:
            state = instance.state
            raise_if_errors(validate_quote_form(form, state.product))

            quote_input = QuoteInput(
                product_slug=state.product.slug,
                coverage_amount=int(float(form.coverage_amount)),
                term_years=state.product.term_years,
                age=int(float(form.age)),
                smoker=bool(form.smoker),
            )
            quote = await self.api.quotes.create_quote(quote_input)
            self._commit(
                instance,
                ApplicantState(product=state.product, quote=quote, age=quote_input.age, smoker=quote_input.smoker),
            )
            logger.info(
                "[Journey] %s quote=%s status=%s monthly_premium=%s",
                instance.id, quote.id, quote.status.value, quote.monthly_premium,
            )
            return quote

    async def create_application(self, form: ApplicantForm) -> Application:
        async with self._action("create_application", ApplicantState) as instance:
            state = instance.state
            raise_if_errors(validate_applicant_form(form))

            applicant = Applicant(
                first_name=form.first_name.strip(),
                last_name=form.last_name.strip(),
                email=form.email.strip(),
                date_of_birth=form.date_of_birth.strip(),
                age=state.age,
                smoker=state.smoker,
                state=form.state.strip().upper(),
            )
            application = await self.api.applications.create_application(
                ApplicationInput(quote_id=state.quote.id, applicant=applicant)
            )
            self._commit(
                instance,
                AwaitSubmissionState(product=state.product, quote=state.quote, application=application),
            )
            logger.info("[Journey] %s application=%s status=%s", instance.id, application.id, application.status.value)
            return application

    async def submit_application(self) -> UnderwritingOutcome:
        """Submit the draft application, then wait for the underwriting result."""
        async with self._action("submit_application", AwaitSubmissionState) as instance:
            state = instance.state
            application = await self.api.applications.submit_application(state.application.id)
            underwriting = UnderwritingState(product=state.product, quote=state.quote, application=application)
            if not self._commit(instance, underwriting):
                return UnderwritingOutcome.CANCELLED
            logger.info("[Journey] %s submitted application=%s", instance.id, application.id)
            return await self._await_underwriting(instance, underwriting)

    async def check_underwriting(self) -> UnderwritingOutcome:
        """Poll again while underwriting is held (manual review or timeout)."""
        async with self._action("check_underwriting", UnderwritingState) as instance:
            state = instance.state
            if state.declined is not None:
                raise StageTransitionError("Application was declined; restart the journey to apply again")
            return await self._await_underwriting(instance, state)

    async def generate_offer(self) -> Offer:
        async with self._action("generate_offer", OfferState) as instance:
            state = instance.state
            if state.offer is not None:
                raise StageTransitionError(f"Offer {state.offer.id} already generated")
            offer = await self.api.offers.create_offer(state.application.id)
            self._commit(instance, replace(state, offer=offer))
            logger.info(
                "[Journey] %s offer=%s status=%s monthly_premium=%s",
                instance.id, offer.id, offer.status.value, offer.monthly_premium,
            )
            return offer

    async def accept_offer(self) -> IssuanceOutcome:
        """Accept the pending offer, then wait for the policy to be issued."""
        async with self._action("accept_offer", OfferState) as instance:
            state = self._pending_offer_state(instance)
            offer = await self.api.offers.accept_offer(state.offer.id)
            policy_state = PolicyState(
                product=state.product,
                quote=state.quote,
                application=state.application,
                case=state.case,
                offer=offer,
            )
            if not self._commit(instance, policy_state):
                return IssuanceOutcome.CANCELLED
            logger.info("[Journey] %s accepted offer=%s", instance.id, offer.id)
            return await self._await_policy(instance, policy_state)

    async def decline_offer(self) -> Offer:
        async with self._action("decline_offer", OfferState) as instance:
            state = self._pending_offer_state(instance)
            offer = await self.api.offers.decline_offer(state.offer.id)
            declined = DeclinedOutcome(stage=Stage.OFFER, reason="Offer was declined.")
            self._commit(instance, replace(state, offer=offer, declined=declined))
            logger.info("[Journey] %s declined offer=%s", instance.id, offer.id)
            return offer

    async def check_policy(self) -> IssuanceOutcome:
        """Poll again for the policy after an issuance timeout."""
        async with self._action("check_policy", PolicyState) as instance:
            state = instance.state
            if state.policy is not None:
                return IssuanceOutcome.ISSUED
            return await self._await_policy(instance, state)

    # ------------------------------------------------------------------
    # Waits
    # ------------------------------------------------------------------

    async def _await_underwriting(self, instance: WorkflowInstance, state: UnderwritingState) -> UnderwritingOutcome:
        application_id = state.application.id

        async def fetch() -> UnderwritingSnapshot:
            application = await self.api.applications.get_application(application_id)
            referred = None
            if application.status == ApplicationStatus.UNDER_REVIEW:
                cases = await self.api.underwriting.list_referred_cases()
                referred = next(
                    (c for c in cases if c.application_id == application_id and c.decision == UWDecision.REFERRED),
                    None,
                )
            return UnderwritingSnapshot(application=application, referred_case=referred)

        result = await self.coordinator.poll(UNDERWRITING_WAIT, fetch, underwriting_resolved)
        if result.cancelled or instance is not self._instance:
            logger.info("[Journey] %s underwriting wait cancelled", instance.id)
            return UnderwritingOutcome.CANCELLED

        if result.timed_out:
            instance.error = PollTimeout(UNDERWRITING_WAIT, result.attempts, UNDERWRITING_SLOW)
            self._commit(instance, replace(state, hold=Hold.TIMED_OUT))
            logger.warning("[Journey] %s %s", instance.id, UNDERWRITING_SLOW)
            return UnderwritingOutcome.TIMED_OUT

        snapshot = result.value
        application = snapshot.application

        if snapshot.decided:
            case = state.case
            if case is not None:
                # Decided cases drop out of the referred list; refresh the known one by id.
                case = await self.api.underwriting.get_case(case.id)
                if instance is not self._instance:
                    return UnderwritingOutcome.CANCELLED

            if application.status == ApplicationStatus.APPROVED:
                self._commit(
                    instance,
                    OfferState(product=state.product, quote=state.quote, application=application, case=case),
                )
                logger.info("[Journey] %s application=%s approved", instance.id, application.id)
                return UnderwritingOutcome.APPROVED

            reason = (case.reason if case is not None and case.reason else "") or "Application was declined."
            declined = DeclinedOutcome(stage=Stage.UNDERWRITING, reason=reason)
            self._commit(instance, replace(state, application=application, case=case, hold=None, declined=declined))
            logger.info("[Journey] %s application=%s declined", instance.id, application.id)
            return UnderwritingOutcome.DECLINED

        self._commit(
            instance,
            replace(state, application=application, case=snapshot.referred_case, hold=Hold.MANUAL_REVIEW),
        )
        logger.warning(
            "[Journey] %s application=%s referred to manual review (case=%s)",
            instance.id, application.id, snapshot.referred_case.id,
        )
        return UnderwritingOutcome.REFERRED

    async def _await_policy(self, instance: WorkflowInstance, state: PolicyState) -> IssuanceOutcome:
        policy_filter = PolicyFilter(application_id=state.application.id)

        async def fetch() -> PolicyList:
            return await self.api.policies.list_policies(policy_filter)

        result = await self.coordinator.poll(ISSUANCE_WAIT, fetch, policy_issued)
        if result.cancelled or instance is not self._instance:
            logger.info("[Journey] %s issuance wait cancelled", instance.id)
            return IssuanceOutcome.CANCELLED

        if result.timed_out:
            instance.error = PollTimeout(ISSUANCE_WAIT, result.attempts, ISSUANCE_SLOW)
            self._commit(instance, replace(state, hold=Hold.TIMED_OUT))
            logger.warning("[Journey] %s %s", instance.id, ISSUANCE_SLOW)
            return IssuanceOutcome.TIMED_OUT

        policy = result.value.items[0]
        self._commit(instance, replace(state, policy=policy, hold=None))
        logger.info("[Journey] %s policy=%s issued status=%s", instance.id, policy.number, policy.status.value)
        return IssuanceOutcome.ISSUED

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _action(self, name: str, *expected: Type) -> AsyncIterator[WorkflowInstance]:
        instance = self._instance
        self._require(instance, name, expected)
        instance.busy = name
        instance.error = None
        instance.form_errors = []
        try:
            yield instance
        except FormValidationError as exc:
            instance.form_errors = list(exc.messages)
            logger.info("[Journey] %s %s rejected by validation: %s", instance.id, name, exc.messages)
            raise
        except RemoteError as exc:
            instance.error = exc
            logger.error(
                "[Journey] %s %s failed at stage=%s status=%s: %s",
                instance.id, name, instance.stage.value, exc.status, exc,
            )
            raise
        finally:
            instance.busy = None

    @staticmethod
    def _require(instance: WorkflowInstance, name: str, expected: Tuple[Type, ...]):
        if instance.busy is not None:
            raise StageBusyError(f"Cannot {name} while {instance.busy} is still in progress")
        if not isinstance(instance.state, expected):
            raise StageTransitionError(f"Cannot {name} at stage {instance.stage.value}")
        return instance.state

    def _commit(self, instance: WorkflowInstance, state: StageState) -> bool:
        if instance is not self._instance:
            logger.info("[Journey] discarding %s for superseded instance %s", state.stage.value, instance.id)
            return False
        if instance.stage != state.stage:
            logger.info("[Journey] %s stage %s -> %s", instance.id, instance.stage.value, state.stage.value)
        instance.state = state
        return True

    @staticmethod
    def _pending_offer_state(instance: WorkflowInstance) -> OfferState:
        state = instance.state
        if state.offer is None:
            raise StageTransitionError("No offer has been generated yet")
        if state.offer.status != OfferStatus.PENDING:
            raise StageTransitionError(f"Offer {state.offer.id} is {state.offer.status.value}, not pending")
        return state
