"""Booking-flow data model.

Supplier payloads arrive as camelCase GraphQL JSON. Each dataclass parses
its node with ``from_api()``; unknown fields are ignored and missing
optional fields fall back to defaults, so new supplier fields never break
parsing.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


def _nodes(container: dict | None) -> list[dict]:
    """Unwrap a GraphQL ``{nodes: [...]}`` connection (tolerates plain lists)."""
    if not container:
        return []
    if isinstance(container, list):
        return container
    return container.get("nodes") or []


class BookingState(str, Enum):
    OPEN = "OPEN"
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"
    # Display-only; never sent by the supplier's state field
    COMPLETED = "COMPLETED"

    @classmethod
    def parse(cls, value: str | None) -> BookingState | None:
        if not value:
            return None
        try:
            return cls(value.upper())
        except ValueError:
            return None

    @property
    def is_terminal(self) -> bool:
        return self in (
            BookingState.CONFIRMED,
            BookingState.REJECTED,
            BookingState.CANCELLED,
            BookingState.COMPLETED,
        )


class QuestionType(str, Enum):
    """Closed set of question input types. Unknown supplier values parse to TEXT."""

    TEXT = "TEXT"
    TEXTAREA = "TEXTAREA"
    SELECT = "SELECT"
    MULTISELECT = "MULTISELECT"
    BOOLEAN = "BOOLEAN"
    DATE = "DATE"
    NUMBER = "NUMBER"
    EMAIL = "EMAIL"
    PHONE = "PHONE"

    @classmethod
    def parse(cls, value: str | None) -> QuestionType:
        if not value:
            return cls.TEXT
        try:
            return cls(value.strip().upper())
        except ValueError:
            return cls.TEXT

    @property
    def input_kind(self) -> str:
        """HTML-ish input kind the rendering layer should use."""
        return _INPUT_KINDS[self]

    @property
    def has_choices(self) -> bool:
        return self in (QuestionType.SELECT, QuestionType.MULTISELECT)


_INPUT_KINDS = {
    QuestionType.TEXT: "text",
    QuestionType.TEXTAREA: "textarea",
    QuestionType.SELECT: "select",
    QuestionType.MULTISELECT: "checkbox-group",
    QuestionType.BOOLEAN: "checkbox",
    QuestionType.DATE: "date",
    QuestionType.NUMBER: "number",
    QuestionType.EMAIL: "email",
    QuestionType.PHONE: "tel",
}


@dataclass
class Price:
    """Money in integer minor units (e.g. pence)."""

    gross: int
    currency: str
    formatted_text: str | None = None

    @classmethod
    def from_api(cls, node: dict | None) -> Price | None:
        if not node or node.get("gross") is None:
            return None
        return cls(
            gross=int(round(node["gross"])),
            currency=node.get("currency") or "GBP",
            formatted_text=node.get("grossFormattedText"),
        )


@dataclass
class ChoiceOption:
    label: str
    value: str

    @classmethod
    def from_api(cls, node: dict) -> ChoiceOption:
        value = node.get("value")
        return cls(label=node.get("label") or str(value), value=str(value))


@dataclass
class Question:
    id: str
    label: str
    type: QuestionType = QuestionType.TEXT
    data_type: str | None = None
    data_format: str | None = None
    is_required: bool = False
    answer_value: str | None = None
    options: list[ChoiceOption] = field(default_factory=list)
    auto_complete_value: str | None = None

    @classmethod
    def from_api(cls, node: dict) -> Question:
        raw_options = node.get("availableOptions") or node.get("options") or []
        answer = node.get("answerValue")
        return cls(
            id=node["id"],
            label=node.get("label") or "",
            type=QuestionType.parse(node.get("type")),
            data_type=node.get("dataType"),
            data_format=node.get("dataFormat"),
            is_required=bool(node.get("isRequired")),
            answer_value=None if answer is None else str(answer),
            options=[ChoiceOption.from_api(o) for o in raw_options],
            auto_complete_value=node.get("autoCompleteValue"),
        )

    @property
    def is_answered(self) -> bool:
        """True when the stored answer satisfies this question.

        A required BOOLEAN is only satisfied by the literal "true"; an
        unchecked acknowledgment counts as unanswered.
        """
        return answer_satisfies(self, self.answer_value)


def answer_satisfies(question: Question, value: str | None) -> bool:
    """Whether ``value`` counts as an answer for ``question``."""
    if question.type is QuestionType.BOOLEAN and question.is_required:
        return value == "true"
    return value is not None and value.strip() != ""


@dataclass
class Person:
    id: str
    pricing_category_label: str | None = None
    is_questions_complete: bool = False
    questions: list[Question] = field(default_factory=list)

    @classmethod
    def from_api(cls, node: dict) -> Person:
        return cls(
            id=node["id"],
            pricing_category_label=node.get("pricingCategoryLabel"),
            is_questions_complete=bool(node.get("isQuestionsComplete")),
            questions=[Question.from_api(q) for q in _nodes(node.get("questionList"))],
        )


@dataclass
class BookingAvailability:
    id: str
    date: str | None = None
    start_time: str | None = None
    product_id: str | None = None
    product_name: str | None = None
    total_price: Price | None = None
    questions: list[Question] = field(default_factory=list)
    persons: list[Person] = field(default_factory=list)

    @classmethod
    def from_api(cls, node: dict) -> BookingAvailability:
        product = node.get("product") or {}
        return cls(
            id=node["id"],
            date=node.get("date"),
            start_time=node.get("startTime"),
            product_id=product.get("id"),
            product_name=product.get("name"),
            total_price=Price.from_api(node.get("totalPrice")),
            questions=[Question.from_api(q) for q in _nodes(node.get("questionList"))],
            persons=[Person.from_api(p) for p in _nodes(node.get("personList"))],
        )


@dataclass
class Booking:
    id: str
    code: str | None = None
    state: BookingState | None = None
    can_commit: bool = False
    total_price: Price | None = None
    voucher_url: str | None = None
    lead_passenger_name: str | None = None
    payment_state: str | None = None
    questions: list[Question] = field(default_factory=list)
    availabilities: list[BookingAvailability] = field(default_factory=list)

    @classmethod
    def from_api(cls, node: dict, *, booking_id: str | None = None) -> Booking:
        # "status" carries the display-only COMPLETED value and wins when present
        state = BookingState.parse(node.get("status")) or BookingState.parse(node.get("state"))
        return cls(
            id=node.get("id") or booking_id or "",
            code=node.get("code"),
            state=state,
            can_commit=bool(node.get("canCommit")),
            total_price=Price.from_api(node.get("totalPrice")),
            voucher_url=node.get("voucherUrl"),
            lead_passenger_name=node.get("leadPassengerName"),
            payment_state=node.get("paymentState"),
            questions=[Question.from_api(q) for q in _nodes(node.get("questionList"))],
            availabilities=[
                BookingAvailability.from_api(a) for a in _nodes(node.get("availabilityList"))
            ],
        )

    @property
    def person_count(self) -> int:
        return sum(len(a.persons) for a in self.availabilities)


@dataclass
class AvailabilityOption:
    id: str
    label: str = ""
    type: str | None = None
    data_type: str | None = None
    data_format: str | None = None
    required: bool = False
    available_options: list[ChoiceOption] = field(default_factory=list)
    answer_value: str | None = None
    answer_formatted_text: str | None = None

    @classmethod
    def from_api(cls, node: dict) -> AvailabilityOption:
        return cls(
            id=node["id"],
            label=node.get("label") or "",
            type=node.get("type"),
            data_type=node.get("dataType"),
            data_format=node.get("dataFormat"),
            required=bool(node.get("required")),
            available_options=[ChoiceOption.from_api(o) for o in node.get("availableOptions") or []],
            answer_value=node.get("answerValue") or node.get("value"),
            answer_formatted_text=node.get("answerFormattedText"),
        )


@dataclass
class OptionList:
    is_complete: bool
    options: list[AvailabilityOption] = field(default_factory=list)

    @classmethod
    def from_api(cls, node: dict | None) -> OptionList | None:
        if node is None:
            return None
        return cls(
            is_complete=bool(node.get("isComplete")),
            options=[AvailabilityOption.from_api(o) for o in _nodes(node)],
        )

    @property
    def unanswered(self) -> list[AvailabilityOption]:
        return [o for o in self.options if not o.answer_value]


@dataclass
class PricingDependency:
    """Upper bound tied to another category: units <= other.units * multiplier."""

    pricing_category_id: str
    multiplier: int
    explanation: str | None = None

    @classmethod
    def from_api(cls, node: dict | None) -> PricingDependency | None:
        if not node or not node.get("pricingCategoryId"):
            return None
        return cls(
            pricing_category_id=node["pricingCategoryId"],
            multiplier=int(node.get("multiplier") or 0),
            explanation=node.get("explanation"),
        )


@dataclass
class PricingCategory:
    id: str
    label: str = ""
    min_participants: int = 0
    max_participants: int | None = None
    max_participants_depends: PricingDependency | None = None
    units: int = 0
    unit_price: Price | None = None
    total_price: Price | None = None

    @classmethod
    def from_api(cls, node: dict) -> PricingCategory:
        return cls(
            id=node["id"],
            label=node.get("label") or "",
            min_participants=int(node.get("minParticipants") or 0),
            max_participants=node.get("maxParticipants"),
            max_participants_depends=PricingDependency.from_api(node.get("maxParticipantsDepends")),
            units=int(node.get("units") or 0),
            unit_price=Price.from_api(node.get("unitPrice")),
            total_price=Price.from_api(node.get("totalPrice")),
        )


@dataclass
class AvailabilityDetail:
    id: str
    date: str | None = None
    start_time: str | None = None
    option_list: OptionList | None = None
    min_participants: int | None = None
    max_participants: int | None = None
    is_valid: bool = False
    total_price: Price | None = None
    pricing_categories: list[PricingCategory] = field(default_factory=list)

    @classmethod
    def from_api(cls, node: dict) -> AvailabilityDetail:
        return cls(
            id=node["id"],
            date=node.get("date"),
            start_time=node.get("startTime"),
            option_list=OptionList.from_api(node.get("optionList")),
            min_participants=node.get("minParticipants"),
            max_participants=node.get("maxParticipants"),
            is_valid=bool(node.get("isValid")),
            total_price=Price.from_api(node.get("totalPrice")),
            pricing_categories=[
                PricingCategory.from_api(p) for p in _nodes(node.get("pricingCategoryList"))
            ],
        )

    @property
    def is_complete(self) -> bool:
        return bool(self.option_list and self.option_list.is_complete)

    @property
    def is_attachable(self) -> bool:
        return self.is_complete and self.is_valid


@dataclass
class AvailabilitySlot:
    id: str
    date: str
    guide_price_formatted_text: str | None = None
    sold_out: bool = False

    @classmethod
    def from_api(cls, node: dict) -> AvailabilitySlot:
        return cls(
            id=node["id"],
            date=node.get("date") or "",
            guide_price_formatted_text=node.get("guidePriceFormattedText"),
            sold_out=bool(node.get("soldOut")),
        )


@dataclass
class AvailabilityList:
    session_id: str | None
    slots: list[AvailabilitySlot] = field(default_factory=list)
    options: list[AvailabilityOption] = field(default_factory=list)

    @classmethod
    def from_api(cls, node: dict) -> AvailabilityList:
        return cls(
            session_id=node.get("sessionId"),
            slots=[AvailabilitySlot.from_api(s) for s in _nodes(node)],
            options=[AvailabilityOption.from_api(o) for o in _nodes(node.get("optionList"))],
        )


def _serialize(pairs: list[tuple[str, Any]]) -> dict[str, Any]:
    return {k: (v.value if isinstance(v, Enum) else v) for k, v in pairs}


def to_dict(obj: Any) -> dict[str, Any]:
    """Serialize a model dataclass to JSON-safe primitives (enums as values)."""
    return dataclasses.asdict(obj, dict_factory=_serialize)
