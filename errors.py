from fastapi import status


class BookingError(Exception):
    """Base class for failures surfaced to callers of the booking core."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "booking_error"

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class ValidationError(BookingError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "validation_error"


class ConflictError(BookingError):
    status_code = status.HTTP_409_CONFLICT
    code = "conflict"


class NotFoundError(BookingError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class InvalidStateError(BookingError):
    status_code = status.HTTP_409_CONFLICT
    code = "invalid_state"


class StorageError(BookingError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "storage_error"
