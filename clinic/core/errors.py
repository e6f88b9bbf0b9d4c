"""Failure kinds shared by the scheduling services and the HTTP layer."""

from fastapi import status


class ClinicError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "clinic_error"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.__class__.__doc__ or self.code
        super().__init__(self.detail)


class SpecializationRequired(ClinicError):
    """Doctor has zero or several specializations; provide specializationId"""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "specialization_required"


class NotFound(ClinicError):
    """Not found"""

    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class AlreadyBooked(ClinicError):
    """Slot already booked"""

    status_code = status.HTTP_409_CONFLICT
    code = "already_booked"


class StorageFailure(ClinicError):
    """Storage is unavailable"""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "storage_failure"
