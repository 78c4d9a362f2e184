#!/usr/bin/env python3
"""
Run a full quote → application → underwriting → offer → policy journey and
print each stage to the terminal.

By default the journey runs against the in-process sandbox API; pass
--base-url/--api-key (or set ISSUANCE_API_URL/ISSUANCE_API_KEY) to drive a
deployed issuance API instead.

Usage (from repo root):
  python scripts/run_journey_demo.py
  python scripts/run_journey_demo.py --smoker --auto-decide approved
  python scripts/run_journey_demo.py --base-url http://localhost:8080/api/v1 --api-key demo-api-key-12345
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import httpx

from issuance.integrations.clients.mocks import SANDBOX_API_KEY, create_sandbox_app
from issuance.integrations.contracts.interfaces import UWDecision, UWDecisionInput
from issuance.integrations.responses import RemoteError
from issuance.journey import (
    ApplicantForm,
    FormValidationError,
    IssuanceJourney,
    IssuanceOutcome,
    QuoteForm,
    UnderwritingOutcome,
)
from issuance.journey.validation import raise_if_errors, validate_decision_input
from issuance.utils.config_loader import load_journey_config

SANDBOX_URL = "http://sandbox/api/v1"


def setup_logging(verbose: bool):
    """Log to terminal so every stage is visible."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stdout,
    )


def print_stage(title: str, data):
    """Print a stage header and data to the terminal."""
    print("\n" + "=" * 60)
    print(f"  {title}")
    print("=" * 60)
    if hasattr(data, "model_dump"):
        data = data.model_dump(mode="json")
    if isinstance(data, (dict, list)):
        print(json.dumps(data, indent=2, default=str))
    else:
        print(data)
    print()


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Walk through the insurance issuance journey.")
    parser.add_argument("--config", type=Path, help="YAML config file (default: config/journey_config.yml)")
    parser.add_argument("--base-url", help="Issuance API base URL; omit to use the in-process sandbox")
    parser.add_argument("--api-key", help="API key for the issuance API")
    parser.add_argument("--product", default="term-life-10", help="Product slug")
    parser.add_argument("--coverage", type=int, default=150_000)
    parser.add_argument("--age", type=int, default=35)
    parser.add_argument("--smoker", action="store_true")
    parser.add_argument(
        "--auto-decide",
        choices=["approved", "declined"],
        help="When underwriting is referred, record this operator decision and re-check",
    )
    parser.add_argument("--verbose", action="store_true")
    return parser.parse_args(argv)


def build_journey(args: argparse.Namespace) -> IssuanceJourney:
    config = load_journey_config(args.config)
    transport = None
    if args.base_url:
        config.api.base_url = args.base_url
        if args.api_key:
            config.api.api_key = args.api_key
    else:
        # In-process sandbox: deterministic, no network.
        config.api.base_url = SANDBOX_URL
        config.api.api_key = args.api_key or SANDBOX_API_KEY
        config.polling.interval_ms = 100
        transport = httpx.ASGITransport(app=create_sandbox_app(SANDBOX_API_KEY, decision_after_reads=2))
    return IssuanceJourney.from_config(config, transport=transport)


async def run(args: argparse.Namespace) -> int:
    journey = build_journey(args)

    products = await journey.load_products()
    print_stage("STEP 1: Products", [p.model_dump(mode="json") for p in products])
    product = journey.select_product(args.product)

    quote = await journey.request_quote(QuoteForm(coverage_amount=args.coverage, age=args.age, smoker=args.smoker))
    print_stage(f"STEP 2: Quote for {product.name}", quote)

    applicant = ApplicantForm(
        first_name="John",
        last_name="Doe",
        email="john.doe@example.com",
        date_of_birth="1989-06-15",
        state="CA",
    )
    application = await journey.create_application(applicant)
    print_stage("STEP 3: Application", application)

    outcome = await journey.submit_application()
    print_stage("STEP 4-5: Underwriting outcome", {"outcome": outcome.value, "state": repr(journey.state)})

    if outcome == UnderwritingOutcome.REFERRED:
        case = journey.state.case
        print_stage("Manual review required", case)
        if not args.auto_decide:
            print("Decide the case through the underwriting API, then re-run the check.")
            return 2
        reason = f"Demo operator {args.auto_decide} the case"
        raise_if_errors(validate_decision_input(args.auto_decide, reason))
        decided = await journey.api.underwriting.decide_case(
            case.id, UWDecisionInput(decision=UWDecision(args.auto_decide), reason=reason)
        )
        print_stage("Operator decision", decided)
        outcome = await journey.check_underwriting()
        print_stage("Underwriting re-check", {"outcome": outcome.value})

    if outcome == UnderwritingOutcome.DECLINED:
        print_stage("Declined", journey.instance.declined.reason)
        return 1
    if outcome != UnderwritingOutcome.APPROVED:
        print_stage("Underwriting held", journey.instance.error_message)
        return 2

    offer = await journey.generate_offer()
    print_stage("STEP 6: Offer", offer)

    issuance = await journey.accept_offer()
    if issuance != IssuanceOutcome.ISSUED:
        print_stage("Issuance held", journey.instance.error_message)
        return 2

    print_stage("STEP 7: Policy", journey.state.policy)
    if journey.last_call is not None:
        print_stage("Last API call", journey.last_call.to_dict())
    return 0


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging(args.verbose)
    try:
        return asyncio.run(run(args))
    except FormValidationError as exc:
        print_stage("Validation failed", exc.messages)
        return 1
    except RemoteError as exc:
        print_stage(f"API error ({exc.status})", exc.problem)
        return 1


if __name__ == "__main__":
    sys.exit(main())
