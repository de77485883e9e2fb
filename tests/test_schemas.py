"""
Tests for request validation.
"""
from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from booking_crm.api.schemas.appointment import BookAppointmentRequest, to_local_naive
from booking_crm.api.schemas.business import WorkingHours, WorkingHoursDay

from conftest import WORKING_HOURS


def request(**overrides) -> dict:
    data = {
        "businessId": 1,
        "serviceId": 2,
        "startTime": "2024-11-25T10:00:00",
        "clientName": "Aigerim",
        "clientPhone": "+77011234567",
    }
    data.update(overrides)
    return data


class TestBookAppointmentRequest:
    @pytest.mark.parametrize("phone", ["+77011234567", "87011234567", "+7 701 123 45 67", "8 (701) 123-45-67"])
    def test_accepts_kazakh_phone_formats(self, phone):
        body = BookAppointmentRequest.model_validate(request(clientPhone=phone))
        assert body.client_phone.replace("+7", "8", 1)[1:] == "7011234567"

    @pytest.mark.parametrize("phone", ["", "7011234567", "+1 555 123 4567", "+7701123456"])
    def test_rejects_other_phones(self, phone):
        with pytest.raises(ValidationError):
            BookAppointmentRequest.model_validate(request(clientPhone=phone))

    def test_blank_name_rejected(self):
        with pytest.raises(ValidationError):
            BookAppointmentRequest.model_validate(request(clientName="   "))

    def test_blank_email_is_ignored(self):
        body = BookAppointmentRequest.model_validate(request(clientEmail=" "))
        assert body.client_email is None

    def test_snake_case_fields_accepted(self):
        body = BookAppointmentRequest.model_validate(
            {
                "business_id": 1,
                "service_id": 2,
                "start_time": "2024-11-25T10:00:00",
                "client_name": "Aigerim",
                "client_phone": "87011234567",
            }
        )
        assert body.start_time == datetime(2024, 11, 25, 10, 0)

    def test_aware_start_is_converted_to_local_naive(self):
        aware = datetime(2024, 11, 25, 5, 0, tzinfo=timezone.utc)
        body = BookAppointmentRequest.model_validate(request(startTime=aware.isoformat()))
        assert body.start_time.tzinfo is None
        assert body.start_time == aware.astimezone().replace(tzinfo=None)

    def test_to_local_naive_keeps_naive(self):
        naive = datetime(2024, 11, 25, 9, 0)
        assert to_local_naive(naive) is naive
        shifted = datetime(2024, 11, 25, 9, 0, tzinfo=timezone(timedelta(hours=5)))
        assert to_local_naive(shifted).tzinfo is None


class TestWorkingHours:
    def test_round_trips_storage_shape(self):
        hours = WorkingHours.model_validate(WORKING_HOURS)
        assert hours.to_storage() == WORKING_HOURS

    def test_closed_day_may_have_any_order(self):
        day = WorkingHoursDay.model_validate({"isOpen": False, "from": "18:00", "to": "09:00"})
        assert day.is_open is False

    def test_open_day_must_open_before_close(self):
        with pytest.raises(ValidationError):
            WorkingHoursDay.model_validate({"isOpen": True, "from": "12:00", "to": "12:00"})

    def test_bad_time_format(self):
        with pytest.raises(ValidationError):
            WorkingHoursDay.model_validate({"isOpen": True, "from": "9am", "to": "18:00"})
