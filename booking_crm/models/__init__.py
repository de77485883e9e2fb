from booking_crm.models.business import (
    Business,
    BusinessCreate,
    BusinessPublic,
    Service,
    ServiceCreate,
    ServicePublic,
)
from booking_crm.models.client import Client, ClientNote, ClientNotePublic, ClientPublic
from booking_crm.models.appointment import (
    Appointment,
    AppointmentPublic,
    AppointmentStatus,
    PaymentStatus,
)
from booking_crm.models.payment import Payment, PaymentMethod, PaymentPublic, PaymentRecordStatus

__all__ = [
    "Business",
    "BusinessCreate",
    "BusinessPublic",
    "Service",
    "ServiceCreate",
    "ServicePublic",
    "Client",
    "ClientNote",
    "ClientNotePublic",
    "ClientPublic",
    "Appointment",
    "AppointmentPublic",
    "AppointmentStatus",
    "PaymentStatus",
    "Payment",
    "PaymentMethod",
    "PaymentPublic",
    "PaymentRecordStatus",
]
