"""Answer submission: GuestData -> supplier answer payload, and the submit protocol.

Submitting is two-phase. ``answer()`` sends the payload and returns the
supplier's fresh canCommit. When that is false, conditional questions may
have appeared, so the caller re-fetches the tree and re-checks it with
``outcome_from()``. ``submit_answers()`` runs both phases, with the re-fetch
controlled by its ``refetch`` flag.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Union

from experiencess.domain.models import Booking, Question
from experiencess.domain.questions import (
    AutoFillField,
    QuestionSummary,
    auto_fill_field,
    displayed_questions,
    remaining_questions_message,
)
from experiencess.observability.redaction import safe_log_context

if TYPE_CHECKING:
    from experiencess.holibob.client import HolibobClient

logger = logging.getLogger(__name__)


@dataclass
class GuestRecord:
    first_name: str
    last_name: str
    email: str | None = None
    phone: str | None = None
    is_lead_guest: bool = False

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass
class GuestData:
    """Simplified guest submission built from the lead-guest form."""

    customer_email: str
    customer_phone: str
    guests: list[GuestRecord]
    terms_accepted: bool = False
    question_answers: list[tuple[str, str]] = field(default_factory=list)

    @property
    def lead_guest(self) -> GuestRecord | None:
        for guest in self.guests:
            if guest.is_lead_guest:
                return guest
        return self.guests[0] if self.guests else None


@dataclass
class AnswerResult:
    can_commit: bool
    booking: Booking


@dataclass
class Complete:
    booking: Booking


@dataclass
class Incomplete:
    booking: Booking
    summary: QuestionSummary
    remaining_questions: list[Question]

    @property
    def remaining_count(self) -> int:
        return len(self.remaining_questions)

    @property
    def message(self) -> str:
        return remaining_questions_message(self.remaining_count)


Outcome = Union[Complete, Incomplete]


def _auto_fill_value(
    kind: AutoFillField,
    guest: GuestRecord | None,
    guest_data: GuestData,
) -> str | None:
    if guest is None:
        return None
    if kind is AutoFillField.FIRST_NAME:
        return guest.first_name or None
    if kind is AutoFillField.LAST_NAME:
        return guest.last_name or None
    if kind is AutoFillField.FULL_NAME:
        return guest.full_name or None
    if kind is AutoFillField.EMAIL:
        return guest.email or (guest_data.customer_email if guest.is_lead_guest else None)
    if kind is AutoFillField.PHONE:
        return guest.phone or (guest_data.customer_phone if guest.is_lead_guest else None)
    return None


def _auto_fill_answers(
    questions: list[Question],
    guest: GuestRecord | None,
    guest_data: GuestData,
) -> dict[str, str]:
    answers: dict[str, str] = {}
    for question in questions:
        kind = auto_fill_field(question.label)
        if kind is None:
            continue
        value = _auto_fill_value(kind, guest, guest_data)
        if value:
            answers[question.id] = value
    return answers


def _as_list(answers: dict[str, str]) -> list[dict[str, str]]:
    return [{"id": qid, "value": value} for qid, value in answers.items()]


def build_answer_payload(guest_data: GuestData, booking: Booking) -> dict[str, Any]:
    """Convert GuestData into the supplier's nested answer input.

    Guests map onto person slots in order across all availabilities.
    Auto-fillable questions are answered from the matching guest record
    (booking and availability levels from the lead guest). Dynamic answers
    are routed to the level that owns their question ID and override
    auto-filled values; IDs not found in the tree go to the booking level.
    """
    lead = guest_data.lead_guest
    dynamic = {qid: value for qid, value in guest_data.question_answers if value}

    booking_answers = _auto_fill_answers(booking.questions, lead, guest_data)
    known_ids = {q.id for q in booking.questions}

    availability_list: list[dict[str, Any]] = []
    cursor = 0
    for availability in booking.availabilities:
        avail_answers = _auto_fill_answers(availability.questions, lead, guest_data)
        known_ids.update(q.id for q in availability.questions)
        for qid in list(dynamic):
            if any(q.id == qid for q in availability.questions):
                avail_answers[qid] = dynamic.pop(qid)

        person_list: list[dict[str, Any]] = []
        for person in availability.persons:
            guest = guest_data.guests[cursor] if cursor < len(guest_data.guests) else None
            cursor += 1

            person_answers = _auto_fill_answers(person.questions, guest, guest_data)
            known_ids.update(q.id for q in person.questions)
            for question in person.questions:
                if question.id in dynamic:
                    person_answers[question.id] = dynamic.pop(question.id)

            if person_answers:
                person_list.append({"id": person.id, "questionList": _as_list(person_answers)})

        entry: dict[str, Any] = {"id": availability.id}
        if avail_answers:
            entry["questionList"] = _as_list(avail_answers)
        if person_list:
            entry["personList"] = person_list
        if len(entry) > 1:
            availability_list.append(entry)

    # Booking-level dynamic answers, plus any ID the tree doesn't know
    booking_answers.update(dynamic)

    unknown = [qid for qid in dynamic if qid not in known_ids]
    if unknown:
        logger.warning(
            "answer_for_unknown_question",
            extra={"booking_id": booking.id, "unknown_count": len(unknown)},
        )

    payload: dict[str, Any] = {}
    if booking_answers:
        payload["questionList"] = _as_list(booking_answers)
    if availability_list:
        payload["availabilityList"] = availability_list
    return payload


def answer(booking_id: str, guest_data: GuestData, *, client: HolibobClient) -> AnswerResult:
    """Submit guest data and return the supplier's fresh canCommit.

    The current tree is fetched first to map guests onto person slots.
    Safe to repeat with the same data; the supplier overwrites answers.

    Raises:
        ValueError: If guest_data has no guests.
        BookingNotFoundError: If the booking does not exist.
    """
    if not guest_data.guests:
        raise ValueError("At least one guest is required")

    current = client.get_questions(booking_id)
    payload = build_answer_payload(guest_data, current)

    logger.info(
        "booking_answers_submitted",
        extra={
            "booking_id": booking_id,
            **safe_log_context(
                guest_count=len(guest_data.guests),
                customer_email=guest_data.customer_email,
                answer_count=len(guest_data.question_answers),
            ),
        },
    )

    booking = client.answer_questions(booking_id, payload)
    return AnswerResult(can_commit=booking.can_commit, booking=booking)


def outcome_from(booking: Booking) -> Outcome:
    """Re-check a (freshly fetched) booking tree.

    Remaining questions are the displayed (re-filtered) required questions
    still unanswered.
    """
    if booking.can_commit:
        return Complete(booking=booking)
    summary = QuestionSummary.from_booking(booking)
    remaining = displayed_questions(summary).required_unanswered()
    return Incomplete(booking=booking, summary=summary, remaining_questions=remaining)


def refetch_outcome(booking_id: str, *, client: HolibobClient) -> Outcome:
    """Re-fetch the question tree and re-check it."""
    return outcome_from(client.get_questions(booking_id))


def submit_answers(
    booking_id: str,
    guest_data: GuestData,
    *,
    client: HolibobClient,
    refetch: bool = True,
) -> Outcome:
    """Answer, then, if canCommit is still false, re-fetch and re-check.

    Args:
        refetch: When False, the answer response itself is re-checked
            (the caller re-fetches later).
    """
    result = answer(booking_id, guest_data, client=client)
    if result.can_commit:
        return Complete(booking=result.booking)

    if refetch:
        outcome = refetch_outcome(booking_id, client=client)
    else:
        outcome = outcome_from(result.booking)

    if isinstance(outcome, Incomplete):
        logger.info(
            "booking_answers_incomplete",
            extra={"booking_id": booking_id, "remaining_count": outcome.remaining_count},
        )
    return outcome
