"""Lead-guest form state, validation and GuestData building.

Validation runs before anything is sent to the supplier. All failures are
collected keyed by field; the focus target is the first failing field in
the fixed priority order firstName, lastName, email, phone, terms, then the
dynamic questions in display order.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from experiencess.domain.answers import GuestData, GuestRecord
from experiencess.domain.models import Booking, Question, QuestionType, answer_satisfies

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

DEFAULT_PHONE_COUNTRY_CODE = "+44"

FIELD_ORDER = ("firstName", "lastName", "email", "phone", "terms")

# Element each error key scrolls to in the rendering layer
FIELD_TEST_IDS = {
    "firstName": "lead-first-name",
    "lastName": "lead-last-name",
    "email": "lead-email",
    "phone": "lead-phone",
    "terms": "terms-checkbox",
}


def question_error_key(question_id: str) -> str:
    return f"q_{question_id}"


def focus_test_id(error_key: str) -> str | None:
    """Element identifier to focus/scroll to for an error key."""
    if error_key in FIELD_TEST_IDS:
        return FIELD_TEST_IDS[error_key]
    if error_key.startswith("q_"):
        return f"dynamic-question-{error_key[2:]}"
    return None


@dataclass
class GuestForm:
    """Serializable in-memory form state."""

    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone_country_code: str = DEFAULT_PHONE_COUNTRY_CODE
    phone: str = ""
    terms_accepted: bool = False
    dynamic_answers: dict[str, str] = field(default_factory=dict)

    @property
    def full_phone(self) -> str:
        return f"{self.phone_country_code} {self.phone}".strip()

    def set_answer(self, question_id: str, value: str) -> None:
        self.dynamic_answers[question_id] = value

    def toggle_choice(self, question_id: str, value: str, checked: bool) -> None:
        """Add/remove one value of a MULTISELECT answer (comma-joined)."""
        current = [v for v in self.dynamic_answers.get(question_id, "").split(",") if v]
        if checked and value not in current:
            current.append(value)
        elif not checked:
            current = [v for v in current if v != value]
        self.dynamic_answers[question_id] = ",".join(current)

    def to_dict(self) -> dict[str, Any]:
        return {
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "phone_country_code": self.phone_country_code,
            "phone": self.phone,
            "terms_accepted": self.terms_accepted,
            "dynamic_answers": dict(self.dynamic_answers),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GuestForm:
        return cls(
            first_name=data.get("first_name", ""),
            last_name=data.get("last_name", ""),
            email=data.get("email", ""),
            phone_country_code=data.get("phone_country_code", DEFAULT_PHONE_COUNTRY_CODE),
            phone=data.get("phone", ""),
            terms_accepted=bool(data.get("terms_accepted", False)),
            dynamic_answers=dict(data.get("dynamic_answers") or {}),
        )


@dataclass
class ValidationResult:
    errors: dict[str, str]

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def focus_key(self) -> str | None:
        return next(iter(self.errors), None)

    @property
    def focus_test_id(self) -> str | None:
        key = self.focus_key
        return focus_test_id(key) if key else None


def _question_error(question: Question) -> str:
    if question.type is QuestionType.BOOLEAN:
        return "This acknowledgment is required"
    return f"{question.label} is required"


def validate(form: GuestForm, dynamic_questions: list[Question]) -> ValidationResult:
    """Validate the lead-guest fields and every displayed required question.

    ``errors`` is ordered by focus priority.
    """
    errors: dict[str, str] = {}

    if not form.first_name.strip():
        errors["firstName"] = "First name is required"
    if not form.last_name.strip():
        errors["lastName"] = "Last name is required"
    if not form.email:
        errors["email"] = "Email is required"
    elif not EMAIL_PATTERN.match(form.email):
        errors["email"] = "Invalid email address"
    if not form.phone.strip():
        errors["phone"] = "Phone number is required"
    if not form.terms_accepted:
        errors["terms"] = "You must accept the terms and conditions"

    for question in dynamic_questions:
        if not question.is_required:
            continue
        # Required BOOLEAN needs literal "true"; everything else a non-blank value
        probe = Question(id=question.id, label=question.label, type=question.type, is_required=True)
        if not answer_satisfies(probe, form.dynamic_answers.get(question.id)):
            errors[question_error_key(question.id)] = _question_error(question)

    return ValidationResult(errors=errors)


def build_guest_data(form: GuestForm, booking: Booking) -> GuestData:
    """One guest record per person slot across all attached availabilities.

    The first slot of each availability is the lead guest and carries the
    lead email and phone; other slots carry only the name.
    """
    full_phone = form.full_phone
    guests: list[GuestRecord] = []
    for availability in booking.availabilities:
        for index, _person in enumerate(availability.persons):
            is_lead = index == 0
            guests.append(
                GuestRecord(
                    first_name=form.first_name,
                    last_name=form.last_name,
                    email=form.email if is_lead else None,
                    phone=full_phone if is_lead else None,
                    is_lead_guest=is_lead,
                )
            )
    if not guests:
        guests.append(
            GuestRecord(
                first_name=form.first_name,
                last_name=form.last_name,
                email=form.email,
                phone=full_phone,
                is_lead_guest=True,
            )
        )

    question_answers = [
        (question_id, value)
        for question_id, value in form.dynamic_answers.items()
        if value is not None and value != ""
    ]

    return GuestData(
        customer_email=form.email,
        customer_phone=full_phone,
        guests=guests,
        terms_accepted=form.terms_accepted,
        question_answers=question_answers,
    )
