"""Tests for booking question resolution: auto-fill, filtering, counting."""

import pytest

from helpers import make_availability, make_booking, make_person, make_question

from experiencess.domain.models import Booking, QuestionType
from experiencess.domain.questions import (
    AutoFillField,
    QuestionSummary,
    auto_fill_field,
    displayed_questions,
    is_auto_fillable,
    remaining_questions_message,
    resolve,
    unanswered_required_count,
)
from experiencess.errors import BookingNotFoundError


class TestAutoFillDetection:
    @pytest.mark.parametrize(
        "label,expected",
        [
            ("First name", AutoFillField.FIRST_NAME),
            ("First name (as on passport)", AutoFillField.FIRST_NAME),
            ("Last name", AutoFillField.LAST_NAME),
            ("Surname", AutoFillField.LAST_NAME),
            ("Family name", AutoFillField.LAST_NAME),
            ("Name", AutoFillField.FULL_NAME),
            ("Full name of traveller", AutoFillField.FULL_NAME),
            ("Email address", AutoFillField.EMAIL),
            ("Mobile number", AutoFillField.PHONE),
            ("Phone", AutoFillField.PHONE),
            ("Tel", AutoFillField.PHONE),
            ("Dietary requirements", None),
            ("Hotel name", None),
            ("Special requirements", None),
        ],
    )
    def test_label_mapping(self, label, expected):
        assert auto_fill_field(label) is expected

    def test_detection_is_case_insensitive(self):
        assert auto_fill_field("EMAIL") is AutoFillField.EMAIL
        assert auto_fill_field("first NAME") is AutoFillField.FIRST_NAME

    def test_same_label_twice_gives_same_result(self):
        for label in ("Email address", "Dietary requirements", "Surname"):
            assert is_auto_fillable(label) == is_auto_fillable(label)

    def test_tel_must_be_a_whole_word(self):
        assert auto_fill_field("Hotel") is None
        assert auto_fill_field("Telephone") is AutoFillField.PHONE

    def test_empty_label(self):
        assert auto_fill_field("") is None
        assert auto_fill_field(None) is None


class TestDisplayedQuestions:
    def test_lead_guest_auto_fillable_questions_hidden(self):
        """Person 0 with 'First name' and 'Dietary requirements' shows only the latter."""
        lead = make_person(
            "p1",
            make_question("q-first", "First name"),
            make_question("q-diet", "Dietary requirements"),
        )
        booking = make_booking(availabilities=[make_availability(persons=[lead])])

        shown = displayed_questions(QuestionSummary.from_booking(booking))

        assert [q.label for q in shown.all] == ["Dietary requirements"]
        assert shown.persons[0].guest_index == 0

    def test_non_lead_guest_sees_auto_fillable_questions(self):
        lead = make_person("p1", make_question("q1", "Email address"))
        second = make_person("p2", make_question("q2", "Email address"))
        booking = make_booking(availabilities=[make_availability(persons=[lead, second])])

        shown = displayed_questions(QuestionSummary.from_booking(booking))

        assert [q.id for q in shown.all] == ["q2"]
        assert shown.persons[0].guest_index == 1

    def test_booking_and_availability_levels_drop_auto_fillable(self):
        booking = make_booking(
            questions=[
                make_question("b1", "Email"),
                make_question("b2", "Special requirements"),
            ],
            availabilities=[
                make_availability(
                    questions=[
                        make_question("a1", "Phone number"),
                        make_question("a2", "Pickup hotel"),
                    ]
                )
            ],
        )

        shown = displayed_questions(QuestionSummary.from_booking(booking))

        assert [q.id for q in shown.booking] == ["b2"]
        assert [q.id for q in shown.availabilities[0].questions] == ["a2"]
        assert [q.id for q in shown.all] == ["b2", "a2"]

    def test_answered_questions_hidden(self):
        booking = make_booking(
            questions=[make_question("b1", "Special requirements", answer="None")]
        )
        shown = displayed_questions(QuestionSummary.from_booking(booking))
        assert shown.is_empty

    def test_complete_persons_skipped(self):
        person = make_person("p1", make_question("q1", "Dietary requirements"), complete=True)
        booking = make_booking(availabilities=[make_availability(persons=[person])])

        shown = displayed_questions(QuestionSummary.from_booking(booking))

        assert shown.persons == []

    def test_required_boolean_false_still_displayed(self):
        ack = make_question("b1", "I accept the waiver", type=QuestionType.BOOLEAN, answer="false")
        booking = make_booking(questions=[ack])

        shown = displayed_questions(QuestionSummary.from_booking(booking))

        assert shown.required_unanswered() == [ack]

    def test_optional_boolean_false_counts_as_answered(self):
        q = make_question(
            "b1", "Newsletter", type=QuestionType.BOOLEAN, required=False, answer="false"
        )
        assert q.is_answered


class TestUnansweredRequiredCount:
    def test_counts_all_levels_without_auto_fill(self):
        booking = make_booking(
            questions=[make_question("b1", "Email")],
            availabilities=[
                make_availability(
                    questions=[make_question("a1", "Pickup hotel")],
                    persons=[
                        make_person(
                            "p1",
                            make_question("q1", "First name"),
                            make_question("q2", "Weight", required=False),
                        )
                    ],
                )
            ],
        )

        assert unanswered_required_count(QuestionSummary.from_booking(booking)) == 3

    def test_complete_person_not_counted(self):
        person = make_person("p1", make_question("q1", "Dietary requirements"), complete=True)
        booking = make_booking(availabilities=[make_availability(persons=[person])])

        assert unanswered_required_count(QuestionSummary.from_booking(booking)) == 0


class TestRemainingQuestionsMessage:
    def test_zero(self):
        assert remaining_questions_message(0) == (
            "Please complete all required information to continue."
        )

    def test_singular(self):
        message = remaining_questions_message(1)
        assert message.startswith("There is 1 additional question that requires")

    def test_plural(self):
        message = remaining_questions_message(3)
        assert message.startswith("There are 3 additional questions that require")
        assert "your attention" in message


class TestResolve:
    def test_returns_summary(self, fake_client):
        fake_client.booking = make_booking(can_commit=True)

        summary = resolve("booking-123", client=fake_client)

        assert summary.can_commit is True
        assert fake_client.call_names() == ["get_questions"]

    def test_not_found(self, fake_client):
        with pytest.raises(BookingNotFoundError, match="Booking not found: missing"):
            resolve("missing", client=fake_client)


class TestBookingFromApi:
    def test_parses_three_level_tree(self):
        node = {
            "id": "b-1",
            "code": "HBK-9",
            "state": "OPEN",
            "canCommit": False,
            "totalPrice": {"gross": 4999.6, "currency": "GBP", "grossFormattedText": "£49.99"},
            "questionList": {"nodes": [{"id": "bq", "label": "Special requirements", "isRequired": True}]},
            "availabilityList": {
                "nodes": [
                    {
                        "id": "a-1",
                        "date": "2026-11-01",
                        "product": {"id": "prod-1", "name": "Harbour Cruise"},
                        "questionList": {"nodes": []},
                        "personList": {
                            "nodes": [
                                {
                                    "id": "p-1",
                                    "pricingCategoryLabel": "Adult",
                                    "isQuestionsComplete": False,
                                    "questionList": {
                                        "nodes": [
                                            {
                                                "id": "pq",
                                                "label": "Shoe size",
                                                "type": "SOMETHING_NEW",
                                                "isRequired": True,
                                            }
                                        ]
                                    },
                                }
                            ]
                        },
                    }
                ]
            },
            "unexpectedField": {"ignored": True},
        }

        booking = Booking.from_api(node)

        assert booking.total_price.gross == 5000
        assert booking.questions[0].is_required is True
        assert booking.availabilities[0].product_name == "Harbour Cruise"
        person_q = booking.availabilities[0].persons[0].questions[0]
        assert person_q.type is QuestionType.TEXT
        assert booking.person_count == 1

    def test_status_completed_wins_over_state(self):
        booking = Booking.from_api({"id": "b", "state": "CONFIRMED", "status": "COMPLETED"})
        assert booking.state.value == "COMPLETED"

    def test_missing_id_uses_requested_id(self):
        booking = Booking.from_api({"state": "PENDING"}, booking_id="b-7")
        assert booking.id == "b-7"


class TestQuestionType:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("BOOLEAN", QuestionType.BOOLEAN),
            (" multiselect ", QuestionType.MULTISELECT),
            ("SIGNATURE", QuestionType.TEXT),
            (None, QuestionType.TEXT),
        ],
    )
    def test_parse_falls_back_to_text(self, raw, expected):
        assert QuestionType.parse(raw) is expected

    @pytest.mark.parametrize(
        "question_type,kind",
        [
            (QuestionType.TEXT, "text"),
            (QuestionType.MULTISELECT, "checkbox-group"),
            (QuestionType.BOOLEAN, "checkbox"),
            (QuestionType.PHONE, "tel"),
        ],
    )
    def test_input_kind(self, question_type, kind):
        assert question_type.input_kind == kind

    def test_every_type_has_an_input_kind(self):
        assert all(qt.input_kind for qt in QuestionType)

    def test_only_select_types_have_choices(self):
        assert {qt for qt in QuestionType if qt.has_choices} == {
            QuestionType.SELECT,
            QuestionType.MULTISELECT,
        }
