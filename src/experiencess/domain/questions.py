"""Booking question resolution.

The supplier attaches questions at three levels: the booking, each
availability, and each person (guest) within an availability. Questions the
lead guest's contact fields already cover are auto-filled and hidden from
the "additional questions" set, except on persons other than the lead guest,
who have to answer their own name/contact questions.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from experiencess.domain.models import Booking, Question

if TYPE_CHECKING:
    from experiencess.holibob.client import HolibobClient

logger = logging.getLogger(__name__)

_TEL_PATTERN = re.compile(r"\btel(ephone)?\b")


class AutoFillField(str, Enum):
    FIRST_NAME = "first_name"
    LAST_NAME = "last_name"
    FULL_NAME = "full_name"
    EMAIL = "email"
    PHONE = "phone"


def auto_fill_field(label: str | None) -> AutoFillField | None:
    """Which lead-guest field a question label maps to, if any.

    Pure function of the lowercased label. First name is checked before
    last name so "First name (as on passport)" never maps to last name.
    """
    l = (label or "").lower()
    if "first" in l and "name" in l:
        return AutoFillField.FIRST_NAME
    if ("last" in l and "name" in l) or "surname" in l or "family name" in l:
        return AutoFillField.LAST_NAME
    if l == "name" or "full name" in l:
        return AutoFillField.FULL_NAME
    if "email" in l:
        return AutoFillField.EMAIL
    if "phone" in l or "mobile" in l or _TEL_PATTERN.search(l):
        return AutoFillField.PHONE
    return None


def is_auto_fillable(label: str | None) -> bool:
    return auto_fill_field(label) is not None


def additional_questions(questions: list[Question], *, skip_auto_fillable: bool) -> list[Question]:
    """Unanswered questions the guest must fill in manually."""
    return [
        q
        for q in questions
        if not q.is_answered and not (skip_auto_fillable and is_auto_fillable(q.label))
    ]


@dataclass
class PersonSection:
    person_id: str
    guest_index: int
    category: str | None
    is_complete: bool
    questions: list[Question]


@dataclass
class AvailabilitySection:
    availability_id: str
    product_name: str | None
    date: str | None
    questions: list[Question]
    persons: list[PersonSection] = field(default_factory=list)


@dataclass
class QuestionSummary:
    """Three-level question tree of one booking."""

    booking: Booking
    booking_questions: list[Question]
    availability_questions: list[AvailabilitySection]
    can_commit: bool

    @classmethod
    def from_booking(cls, booking: Booking) -> QuestionSummary:
        sections = [
            AvailabilitySection(
                availability_id=avail.id,
                product_name=avail.product_name,
                date=avail.date,
                questions=list(avail.questions),
                persons=[
                    PersonSection(
                        person_id=person.id,
                        guest_index=index,
                        category=person.pricing_category_label,
                        is_complete=person.is_questions_complete,
                        questions=list(person.questions),
                    )
                    for index, person in enumerate(avail.persons)
                ],
            )
            for avail in booking.availabilities
        ]
        return cls(
            booking=booking,
            booking_questions=list(booking.questions),
            availability_questions=sections,
            can_commit=booking.can_commit,
        )


@dataclass
class DisplayedQuestions:
    """The "additional questions" the guest form shows, per level."""

    booking: list[Question]
    availabilities: list[AvailabilitySection]
    persons: list[PersonSection]

    @property
    def all(self) -> list[Question]:
        """Every displayed question in form order: booking, availability, person."""
        return (
            list(self.booking)
            + [q for s in self.availabilities for q in s.questions]
            + [q for s in self.persons for q in s.questions]
        )

    @property
    def is_empty(self) -> bool:
        return not (self.booking or self.availabilities or self.persons)

    def required_unanswered(self) -> list[Question]:
        return [q for q in self.all if q.is_required and not q.is_answered]


def displayed_questions(summary: QuestionSummary) -> DisplayedQuestions:
    """Apply the additional-question filter to every level.

    Booking and availability questions drop auto-fillable labels. Person
    questions drop them only for the lead guest (index 0 in the
    availability's guest list). Persons already reporting complete are
    skipped entirely.
    """
    booking_qs = additional_questions(summary.booking_questions, skip_auto_fillable=True)

    availability_sections: list[AvailabilitySection] = []
    person_sections: list[PersonSection] = []

    for section in summary.availability_questions:
        avail_qs = additional_questions(section.questions, skip_auto_fillable=True)
        if avail_qs:
            availability_sections.append(
                AvailabilitySection(
                    availability_id=section.availability_id,
                    product_name=section.product_name,
                    date=section.date,
                    questions=avail_qs,
                )
            )

        for person in section.persons:
            if person.is_complete:
                continue
            person_qs = additional_questions(
                person.questions,
                skip_auto_fillable=person.guest_index == 0,
            )
            if person_qs:
                person_sections.append(
                    PersonSection(
                        person_id=person.person_id,
                        guest_index=person.guest_index,
                        category=person.category,
                        is_complete=person.is_complete,
                        questions=person_qs,
                    )
                )

    return DisplayedQuestions(
        booking=booking_qs,
        availabilities=availability_sections,
        persons=person_sections,
    )


def unanswered_required_count(summary: QuestionSummary) -> int:
    """Required questions still unanswered across all levels (auto-fill not applied).

    Persons flagged complete are not counted.
    """
    count = sum(1 for q in summary.booking_questions if q.is_required and not q.is_answered)
    for section in summary.availability_questions:
        count += sum(1 for q in section.questions if q.is_required and not q.is_answered)
        for person in section.persons:
            if person.is_complete:
                continue
            count += sum(1 for q in person.questions if q.is_required and not q.is_answered)
    return count


def remaining_questions_message(count: int) -> str:
    """Banner copy after a submit that left required questions open."""
    if count <= 0:
        return "Please complete all required information to continue."
    if count == 1:
        return (
            "There is 1 additional question that requires your attention. "
            "Please complete all fields below."
        )
    return (
        f"There are {count} additional questions that require your attention. "
        "Please complete all fields below."
    )


def resolve(booking_id: str, *, client: HolibobClient) -> QuestionSummary:
    """Fetch the question tree of a booking.

    Raises:
        BookingNotFoundError: If the supplier has no such booking.
    """
    booking = client.get_questions(booking_id)
    summary = QuestionSummary.from_booking(booking)
    logger.info(
        "booking_questions_resolved",
        extra={
            "booking_id": booking_id,
            "can_commit": summary.can_commit,
            "unanswered_required": unanswered_required_count(summary),
        },
    )
    return summary
