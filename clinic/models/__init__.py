from clinic.models.user import User, UserPublic
from clinic.models.specialization import (
    DoctorSpecialization,
    DoctorSpecializationPublic,
    Specialization,
    SpecializationCreate,
)
from clinic.models.weekly_availability import WeeklyAvailability, WeeklyAvailabilityPublic
from clinic.models.slot_exception import SlotException, SlotExceptionPublic
from clinic.models.availability_slot import (
    AvailabilitySlot,
    AvailabilitySlotPublic,
    SlotSearchPage,
    SlotSource,
)
from clinic.models.appointment import (
    ACTIVE_STATUSES,
    Appointment,
    AppointmentPublic,
    AppointmentStatus,
    AppointmentWithSlotPublic,
)

__all__ = [
    "User",
    "UserPublic",
    "Specialization",
    "SpecializationCreate",
    "DoctorSpecialization",
    "DoctorSpecializationPublic",
    "WeeklyAvailability",
    "WeeklyAvailabilityPublic",
    "SlotException",
    "SlotExceptionPublic",
    "AvailabilitySlot",
    "AvailabilitySlotPublic",
    "SlotSearchPage",
    "SlotSource",
    "ACTIVE_STATUSES",
    "Appointment",
    "AppointmentPublic",
    "AppointmentStatus",
    "AppointmentWithSlotPublic",
]
