# barber_booking/errors.py

from enum import Enum


class ConflictReason(str, Enum):
    slot_taken = "slot_taken"
    break_conflict = "break_conflict"
    leave_early_conflict = "leave_early_conflict"
    day_off_conflict = "day_off_conflict"
    duplicate_service = "duplicate_service"


CONFLICT_MESSAGES = {
    ConflictReason.slot_taken: "The barber already has an appointment at that time. Please choose another time.",
    ConflictReason.break_conflict: "The barber is on a break at that time. Please choose another time.",
    ConflictReason.leave_early_conflict: "The barber is leaving early that day. Please choose another time.",
    ConflictReason.day_off_conflict: "The barber is off that day. Please choose another day.",
    ConflictReason.duplicate_service: (
        "You already have an active appointment for this service that day. "
        "Choose another service or cancel the current appointment."
    ),
}


class SchedulingError(Exception):
    status_code = 500
    code = "unexpected_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(SchedulingError):
    status_code = 400
    code = "validation_error"


class NotFoundError(SchedulingError):
    status_code = 404
    code = "not_found"


class AuthorizationError(SchedulingError):
    status_code = 403
    code = "forbidden"


class ConflictError(SchedulingError):
    status_code = 409

    def __init__(self, reason: ConflictReason, message: str = None):
        super().__init__(message or CONFLICT_MESSAGES[reason])
        self.reason = reason
        self.code = reason.value
