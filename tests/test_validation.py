"""Tests for journey form validation."""

import pytest

from issuance.journey.errors import FormValidationError
from issuance.journey.validation import (
    ApplicantForm,
    QuoteForm,
    format_currency,
    raise_if_errors,
    validate_applicant_form,
    validate_decision_input,
    validate_quote_form,
)


def _applicant(**overrides):
    data = {
        "first_name": "Jane",
        "last_name": "Doe",
        "email": "jane.doe@example.com",
        "date_of_birth": "1990-04-12",
        "state": "CA",
    }
    data.update(overrides)
    return ApplicantForm(**data)


def test_format_currency_groups_thousands():
    assert format_currency(50_000) == "$50,000"
    assert format_currency(1_000_000) == "$1,000,000"


def test_quote_form_without_product():
    assert validate_quote_form(QuoteForm(coverage_amount=100_000, age=30), None) == ["No product selected"]


def test_quote_form_valid(product):
    assert validate_quote_form(QuoteForm(coverage_amount=150_000, age=35), product) == []


def test_quote_form_accepts_numeric_strings(product):
    assert validate_quote_form(QuoteForm(coverage_amount=" 150000 ", age="35"), product) == []


@pytest.mark.parametrize("coverage", [50_000, 1_000_000])
def test_quote_form_coverage_bounds_are_inclusive(product, coverage):
    assert validate_quote_form(QuoteForm(coverage_amount=coverage, age=30), product) == []


@pytest.mark.parametrize("coverage", [49_999, 1_000_001])
def test_quote_form_coverage_outside_limits(product, coverage):
    errors = validate_quote_form(QuoteForm(coverage_amount=coverage, age=30), product)
    assert errors == ["Coverage must be between $50,000 and $1,000,000"]


@pytest.mark.parametrize("coverage", ["", "abc", None, 150_000.5, float("nan"), True])
def test_quote_form_coverage_must_be_whole_number(product, coverage):
    errors = validate_quote_form(QuoteForm(coverage_amount=coverage, age=30), product)
    assert errors == ["Coverage amount must be a whole number"]


@pytest.mark.parametrize("age", [17, 121])
def test_quote_form_age_outside_range(product, age):
    errors = validate_quote_form(QuoteForm(coverage_amount=100_000, age=age), product)
    assert errors == ["Age must be between 18 and 120"]


def test_quote_form_age_boundaries(product):
    assert validate_quote_form(QuoteForm(coverage_amount=100_000, age=18), product) == []
    assert validate_quote_form(QuoteForm(coverage_amount=100_000, age=120), product) == []


def test_quote_form_reports_every_problem_in_order(product):
    errors = validate_quote_form(QuoteForm(coverage_amount=10, age="old"), product)
    assert errors == [
        "Coverage must be between $50,000 and $1,000,000",
        "Age must be a whole number",
    ]


def test_applicant_form_valid():
    assert validate_applicant_form(_applicant()) == []


def test_applicant_form_all_blank():
    errors = validate_applicant_form(ApplicantForm())
    assert errors == [
        "First name is required",
        "Last name is required",
        "Email is required",
        "Date of birth is required",
        "State is required",
    ]


def test_applicant_form_whitespace_counts_as_missing():
    errors = validate_applicant_form(_applicant(first_name="   ", last_name="\t"))
    assert errors == ["First name is required", "Last name is required"]


@pytest.mark.parametrize("email", ["jane", "jane@", "jane@example", "ja ne@example.com"])
def test_applicant_form_invalid_email(email):
    assert validate_applicant_form(_applicant(email=email)) == ["Invalid email format"]


@pytest.mark.parametrize("dob", ["12/04/1990", "1990-02-30", "yesterday"])
def test_applicant_form_invalid_date_of_birth(dob):
    assert validate_applicant_form(_applicant(date_of_birth=dob)) == [
        "Date of birth must be a valid date (YYYY-MM-DD)"
    ]


@pytest.mark.parametrize("state", ["C", "CAL"])
def test_applicant_form_state_must_be_two_letters(state):
    assert validate_applicant_form(_applicant(state=state)) == ["State must be a 2-letter code"]


def test_decision_input_valid():
    assert validate_decision_input("approved", "Clean medical history") == []
    assert validate_decision_input("DECLINED", "High risk") == []


def test_decision_input_rejects_pending_and_blank_reason():
    assert validate_decision_input("pending", " ") == [
        "Decision must be approved or declined",
        "Reason is required",
    ]


def test_raise_if_errors_passes_on_empty_list():
    raise_if_errors([])


def test_raise_if_errors_carries_messages():
    with pytest.raises(FormValidationError) as exc_info:
        raise_if_errors(["Age must be between 18 and 120"])
    assert exc_info.value.messages == ["Age must be between 18 and 120"]
    assert "Age must be between 18 and 120" in str(exc_info.value)
