"""Tests for the registration session data model."""

from decimal import Decimal

import pytest

from django_event_registration.registration.session import (
    STEP_ORDER,
    AttendeeInfo,
    PaymentMethod,
    RegistrationPayload,
    RegistrationSession,
    Step,
    SubmissionState,
    SubmissionStatus,
    TicketOffer,
)

# -- TicketOffer --------------------------------------------------------------


@pytest.mark.unit
class TestTicketOffer:
    def test_price_is_converted_to_decimal(self):
        offer = TicketOffer(id="std", name="Standard", price="99.95", available=3, max_per_person=2)
        assert offer.price == Decimal("99.95")
        assert isinstance(offer.price, Decimal)

    def test_float_price_keeps_its_printed_value(self):
        offer = TicketOffer(id="std", name="Standard", price=0.1, available=3, max_per_person=2)
        assert offer.price == Decimal("0.1")

    def test_rejects_negative_price(self):
        with pytest.raises(ValueError, match="price cannot be negative"):
            TicketOffer(id="std", name="Standard", price=Decimal("-1"), available=3, max_per_person=2)

    def test_rejects_unparseable_price(self):
        with pytest.raises(ValueError, match="invalid price"):
            TicketOffer(id="std", name="Standard", price="free", available=3, max_per_person=2)

    def test_rejects_negative_availability(self):
        with pytest.raises(ValueError, match="availability"):
            TicketOffer(id="std", name="Standard", price=Decimal("1"), available=-1, max_per_person=2)

    @pytest.mark.parametrize("max_per_person", [0, -3, True])
    def test_rejects_non_positive_max_per_person(self, max_per_person):
        with pytest.raises(ValueError, match="max_per_person"):
            TicketOffer(id="std", name="Standard", price=Decimal("1"), available=3, max_per_person=max_per_person)

    def test_max_quantity_is_the_smaller_limit(self):
        assert TicketOffer(id="a", name="A", price=1, available=5, max_per_person=2).max_quantity == 2
        assert TicketOffer(id="b", name="B", price=1, available=1, max_per_person=4).max_quantity == 1

    def test_sold_out_when_nothing_available(self):
        assert TicketOffer(id="a", name="A", price=1, available=0, max_per_person=2).is_sold_out is True

    def test_is_frozen(self, vip_ticket):
        with pytest.raises(AttributeError):
            vip_ticket.price = Decimal("1")  # type: ignore[misc]


# -- AttendeeInfo -------------------------------------------------------------


@pytest.mark.unit
class TestAttendeeInfo:
    def test_defaults_to_empty_strings(self):
        assert set(AttendeeInfo().as_dict().values()) == {""}

    def test_replace_returns_copy(self):
        original = AttendeeInfo(first_name="Ada")
        updated = original.replace("last_name", "Lovelace")

        assert original.last_name == ""
        assert updated.first_name == "Ada"
        assert updated.last_name == "Lovelace"

    def test_replace_unknown_field_raises_key_error(self):
        with pytest.raises(KeyError):
            AttendeeInfo().replace("nickname", "Ada")

    def test_replace_none_clears_field(self):
        assert AttendeeInfo(phone="123").replace("phone", None).phone == ""

    def test_field_names_cover_required_and_optional(self):
        assert AttendeeInfo.FIELD_NAMES == AttendeeInfo.REQUIRED_FIELDS + AttendeeInfo.OPTIONAL_FIELDS
        assert list(AttendeeInfo().as_dict()) == list(AttendeeInfo.FIELD_NAMES)


# -- Enums and submission state -----------------------------------------------


@pytest.mark.unit
class TestStepsAndStates:
    def test_step_order(self):
        assert STEP_ORDER == (Step.TICKET_SELECTION, Step.ATTENDEE_INFO, Step.PAYMENT, Step.CONFIRMATION)

    def test_step_labels(self):
        assert [str(step.label) for step in STEP_ORDER] == [
            "Select Ticket",
            "Attendee Info",
            "Payment",
            "Confirmation",
        ]

    def test_submission_state_constructors(self):
        assert SubmissionState.idle().status == SubmissionStatus.IDLE
        assert SubmissionState.in_flight().is_in_flight is True
        assert SubmissionState.succeeded().status == SubmissionStatus.SUCCEEDED
        failed = SubmissionState.failed("card declined")
        assert failed.status == SubmissionStatus.FAILED
        assert failed.reason == "card declined"
        assert failed.is_in_flight is False


# -- RegistrationSession ------------------------------------------------------


@pytest.mark.unit
class TestRegistrationSession:
    def test_new_session_starts_at_ticket_selection(self, catalog):
        session = RegistrationSession(event_name="TestCon", tickets=tuple(catalog), generation=1)

        assert session.step == Step.TICKET_SELECTION
        assert session.selected_ticket is None
        assert session.quantity == 1
        assert session.payment_method == PaymentMethod.CARD
        assert session.submission == SubmissionState.idle()
        assert session.total_amount == Decimal("0.00")

    def test_total_amount_is_derived(self, catalog, general_ticket):
        session = RegistrationSession(event_name="TestCon", tickets=tuple(catalog), generation=1)
        session.selected_ticket = general_ticket
        session.quantity = 3
        assert session.total_amount == Decimal("75.00")

        session.quantity = 4
        assert session.total_amount == Decimal("100.00")

    def test_find_ticket(self, catalog, vip_ticket):
        session = RegistrationSession(event_name="TestCon", tickets=tuple(catalog), generation=1)
        assert session.find_ticket("vip") == vip_ticket
        assert session.find_ticket("missing") is None

    def test_build_payload_requires_ticket(self, catalog):
        session = RegistrationSession(event_name="TestCon", tickets=tuple(catalog), generation=1)
        with pytest.raises(ValueError, match="without a selected ticket"):
            session.build_payload()

    def test_payload_wire_shape(self, catalog, vip_ticket):
        session = RegistrationSession(event_name="TestCon", tickets=tuple(catalog), generation=1)
        session.selected_ticket = vip_ticket
        session.quantity = 2
        session.attendee_info = AttendeeInfo(first_name="Ada", dietary_restrictions="None")
        session.payment_method = PaymentMethod.TRANSFER

        payload = session.build_payload()

        assert isinstance(payload, RegistrationPayload)
        assert payload.as_dict() == {
            "ticketId": "vip",
            "quantity": 2,
            "attendeeInfo": {
                "firstName": "Ada",
                "lastName": "",
                "email": "",
                "phone": "",
                "organization": "",
                "dietaryRestrictions": "None",
                "specialRequirements": "",
            },
            "paymentMethod": "transfer",
        }
