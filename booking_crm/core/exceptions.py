from datetime import datetime


class BookingError(Exception):
    """Base class for booking-flow errors that callers are expected to handle."""


class SlotConflict(BookingError):
    """The requested interval overlaps an existing, non-cancelled appointment."""

    def __init__(self, business_id: int, start: datetime, end: datetime) -> None:
        self.business_id = business_id
        self.start = start
        self.end = end
        super().__init__(f"Business {business_id}: slot {start:%Y-%m-%d %H:%M}-{end:%H:%M} is already booked")


class AppointmentClosed(BookingError):
    """A cancelled appointment cannot be modified."""

    def __init__(self, appointment_id: int) -> None:
        self.appointment_id = appointment_id
        super().__init__(f"Appointment {appointment_id} is cancelled and can no longer be modified")


class InvalidStatusTransition(BookingError):
    def __init__(self, entity: str, entity_id: int, current: str, requested: str) -> None:
        self.entity = entity
        self.entity_id = entity_id
        self.current = current
        self.requested = requested
        super().__init__(f"{entity} {entity_id} cannot change status from {current} to {requested}")


class ServiceInUse(BookingError):
    """A service with upcoming scheduled appointments cannot be removed."""

    def __init__(self, service_id: int) -> None:
        self.service_id = service_id
        super().__init__(f"Service {service_id} has upcoming appointments")


class ClientPhoneTaken(BookingError):
    def __init__(self, phone: str) -> None:
        self.phone = phone
        super().__init__(f"A client with phone {phone} already exists")
