"""Pre-flight validation for journey form input.

Each validator is a pure function of the form to an ordered list of
human-readable messages. An empty list means the call may proceed; anything
else must block the call, so invalid input never reaches the network.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import date
from typing import Any, List, Optional, Sequence

from issuance.integrations.contracts.interfaces import Product
from issuance.journey.errors import FormValidationError

MIN_AGE = 18
MAX_AGE = 120
DECIDABLE = ("approved", "declined")

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


@dataclass
class QuoteForm:
    coverage_amount: Any
    age: Any
    smoker: bool = False


@dataclass
class ApplicantForm:
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    date_of_birth: str = ""
    state: str = ""


def _strip(v: Any) -> str:
    return "" if v is None else str(v).strip()


def _as_number(v: Any) -> Optional[float]:
    if isinstance(v, bool):
        return None
    if isinstance(v, (int, float)):
        number = float(v)
    else:
        try:
            number = float(_strip(v))
        except ValueError:
            return None
    return number if math.isfinite(number) else None


def format_currency(amount: float) -> str:
    return f"${amount:,.0f}"


def validate_quote_form(form: QuoteForm, product: Optional[Product]) -> List[str]:
    if product is None:
        return ["No product selected"]

    errors: List[str] = []
    coverage = _as_number(form.coverage_amount)
    if coverage is None or not coverage.is_integer():
        errors.append("Coverage amount must be a whole number")
    elif coverage < product.min_coverage or coverage > product.max_coverage:
        errors.append(
            f"Coverage must be between {format_currency(product.min_coverage)} "
            f"and {format_currency(product.max_coverage)}"
        )

    age = _as_number(form.age)
    if age is None or not age.is_integer():
        errors.append("Age must be a whole number")
    elif age < MIN_AGE or age > MAX_AGE:
        errors.append(f"Age must be between {MIN_AGE} and {MAX_AGE}")
    return errors


def validate_applicant_form(form: ApplicantForm) -> List[str]:
    errors: List[str] = []
    if not _strip(form.first_name):
        errors.append("First name is required")
    if not _strip(form.last_name):
        errors.append("Last name is required")

    email = _strip(form.email)
    if not email:
        errors.append("Email is required")
    elif not _EMAIL_RE.match(email):
        errors.append("Invalid email format")

    dob = _strip(form.date_of_birth)
    if not dob:
        errors.append("Date of birth is required")
    else:
        try:
            date.fromisoformat(dob)
        except ValueError:
            errors.append("Date of birth must be a valid date (YYYY-MM-DD)")

    state = _strip(form.state)
    if not state:
        errors.append("State is required")
    elif len(state) != 2:
        errors.append("State must be a 2-letter code")
    return errors


def validate_decision_input(decision: Any, reason: Any) -> List[str]:
    """Operator decision on a referred underwriting case."""
    errors: List[str] = []
    value = getattr(decision, "value", decision)
    if _strip(value).lower() not in DECIDABLE:
        errors.append("Decision must be approved or declined")
    if not _strip(reason):
        errors.append("Reason is required")
    return errors


def raise_if_errors(errors: Sequence[str], message: str = "Please correct the highlighted fields") -> None:
    if errors:
        raise FormValidationError(messages=list(errors), message=message)
