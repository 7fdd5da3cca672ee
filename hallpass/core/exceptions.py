# hallpass/core/exceptions.py
"""
Error vocabulary of the admission engine.

Every error is raised synchronously to the caller. The engine never retries;
translating these into a transport format (HTTP status codes, messages) is
the calling layer's job.
"""

from typing import Optional


class HallpassError(Exception):
    """Base class for all engine errors."""

    code = "hallpass_error"

    def __init__(self, message: str, *, code: Optional[str] = None):
        self.message = message
        if code is not None:
            self.code = code
        super().__init__(message)


class ValidationError(HallpassError):
    """A required field is missing or malformed."""
    code = "validation_error"


class NotEnrolled(HallpassError):
    code = "not_enrolled"

    def __init__(self, student_id: str, classroom_id: str):
        self.student_id = student_id
        self.classroom_id = classroom_id
        super().__init__("Student is not enrolled in this classroom")


class AlreadyCheckedOut(HallpassError):
    code = "already_checked_out"

    def __init__(self, student_id: str):
        self.student_id = student_id
        super().__init__("Student is already checked out")


class NotCheckedOut(HallpassError):
    code = "not_checked_out"

    def __init__(self, student_id: str):
        self.student_id = student_id
        super().__init__("Student is not checked out")


class DestinationRequired(HallpassError):
    code = "destination_required"

    def __init__(self):
        super().__init__("Destination is required for checkout")


class DestinationNotFound(HallpassError):
    code = "destination_not_found"

    def __init__(self, destination: str):
        self.destination = destination
        super().__init__(f"Destination '{destination}' not found")


class DuplicateDestination(HallpassError):
    code = "duplicate_destination"

    def __init__(self, name: str):
        self.name = name
        super().__init__("A destination with this name already exists")


class EntryNotFound(HallpassError):
    code = "entry_not_found"

    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__("Entry not found")


class InvalidAction(HallpassError):
    code = "invalid_action"

    def __init__(self, action: str, allowed: list[str]):
        self.action = action
        self.allowed = allowed
        super().__init__(f"Invalid action '{action}'. Use: {', '.join(allowed)}")


class CapacityConflict(HallpassError):
    """Another active destination in the classroom already has a waiting room."""
    code = "capacity_conflict"

    def __init__(self, conflicting_id: str, conflicting_name: str):
        self.conflicting_id = conflicting_id
        self.conflicting_name = conflicting_name
        super().__init__(
            f'Only one destination can have a waiting room. '
            f'"{conflicting_name}" already has a capacity limit.'
        )


class DestinationBusy(HallpassError):
    """The destination lock could not be acquired within the configured timeout."""
    code = "destination_busy"

    def __init__(self, classroom_id: str, destination_id: str):
        self.classroom_id = classroom_id
        self.destination_id = destination_id
        super().__init__("Destination is busy, try again")
