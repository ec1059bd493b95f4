from enum import Enum


class RejectionKind(str, Enum):
    capacity = "capacity"
    conflict = "conflict"
    not_found = "not_found"
    invalid = "invalid"


class AppError(Exception):
    """Base class for all application exceptions."""
    def __init__(self, message: str, status_code: int = 500, details: dict = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class ResourceNotFoundError(AppError):
    """Raised when the entity addressed by the request path does not exist."""
    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(f"{resource_type} with id {resource_id} not found", status_code=404)


class ConfigurationError(AppError):
    """Raised when system configuration is invalid."""
    def __init__(self, message: str):
        super().__init__(message, status_code=500)


class InfrastructureError(AppError):
    """Raised when the persistence layer itself fails. Never retried here."""
    def __init__(self, message: str = "Schedule storage is unavailable"):
        super().__init__(message, status_code=503)


class ScheduleRejection(AppError):
    """A business-correct refusal of a schedule mutation.

    Every subclass carries a ``kind`` so callers can tell a missing reference
    from a full room from a clash without parsing the message.
    """

    kind: RejectionKind = RejectionKind.invalid

    def __init__(self, message: str, details: dict = None):
        payload = {"kind": self.kind.value}
        payload.update(details or {})
        super().__init__(message, status_code=422, details=payload)


class ReferenceNotFoundError(ScheduleRejection):
    kind = RejectionKind.not_found

    def __init__(self, resource_type: str, resource_id: str | None, message: str | None = None):
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(
            message or f"{resource_type} tidak ditemukan",
            details={"resource_type": resource_type, "resource_id": resource_id},
        )


class CapacityExceededError(ScheduleRejection):
    kind = RejectionKind.capacity

    def __init__(self, *, room_id: str, room_name: str, capacity: int, required: int):
        self.room_id = room_id
        self.capacity = capacity
        self.required = required
        super().__init__(
            f"Kapasitas ruangan tidak mencukupi. Ruangan {room_name} hanya dapat menampung "
            f"{capacity} orang, sedangkan diperlukan {required} orang.",
            details={"room_id": room_id, "capacity": capacity, "required": required},
        )


class ScheduleConflictError(ScheduleRejection):
    kind = RejectionKind.conflict

    def __init__(self, message: str, *, conflict: dict, fragments: list[str]):
        self.conflict = conflict
        self.fragments = fragments
        super().__init__(message, details={"conflict": conflict, "reasons": fragments})


class ScheduleRuleError(ScheduleRejection):
    """Raised when a request breaks a per-kind scheduling rule."""
    kind = RejectionKind.invalid


class BatchImportError(AppError):
    """Raised when any row of an import fails; nothing from the batch is stored."""
    def __init__(self, row_errors: list[dict]):
        self.row_errors = row_errors
        super().__init__(
            f"Import dibatalkan: {len(row_errors)} baris bermasalah, tidak ada data yang disimpan.",
            status_code=422,
            details={"errors": row_errors},
        )
