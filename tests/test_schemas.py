from datetime import time

import pytest
from pydantic import ValidationError

from medx360.modules.bookings.schemas import BookingReschedule, PatientInfo


@pytest.mark.parametrize("phone", ["+44 20 7946 0000", "+1 (555) 010-9999", "5550100"])
def test_phone_accepted(phone):
    assert PatientInfo(patient_name="Ada", patient_phone=phone).patient_phone == phone


@pytest.mark.parametrize("phone", ["(((((((", "--- ---", "+12 34", "123456789012345678901", "555-0100 ext 2"])
def test_phone_rejected(phone):
    with pytest.raises(ValidationError) as ei:
        PatientInfo(patient_name="Ada", patient_phone=phone)
    assert ei.value.errors()[0]["loc"] == ("patient_phone",)


def test_email_accepted():
    assert PatientInfo(patient_name="Ada", patient_email="ada@example.com").patient_email == "ada@example.com"


@pytest.mark.parametrize("email", ["not-an-email", "a@b..c", "ada@", "@example.com", "ada@example", "x" * 95 + "@example.com"])
def test_email_rejected(email):
    with pytest.raises(ValidationError) as ei:
        PatientInfo(patient_name="Ada", patient_email=email)
    assert ei.value.errors()[0]["loc"] == ("patient_email",)


def test_reschedule_payload_defaults():
    body = BookingReschedule(appointment_date="2030-01-07", start_time="10:15")
    assert body.start_time == time(10, 15)
    assert body.duration_minutes is None and body.doctor_id is None
    with pytest.raises(ValidationError):
        BookingReschedule(appointment_date="2030-01-07", start_time="10:15", duration_minutes=2)
