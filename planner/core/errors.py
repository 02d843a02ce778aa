class PlannerError(Exception):
    """Base class for errors raised by planner services."""


class NotFoundError(PlannerError):
    """A record id did not resolve."""

    def __init__(self, table: str, record_id: object, message: str | None = None) -> None:
        self.table = table
        self.record_id = record_id
        super().__init__(message or f"{table} {record_id} not found")


class ValidationError(PlannerError):
    """Request content was rejected before any write was issued."""


class UploadFailure(PlannerError):
    """One file failed to upload or register against its note."""

    def __init__(self, filename: str, reason: str) -> None:
        self.filename = filename
        self.reason = reason
        super().__init__(f"Upload failed for {filename}: {reason}")
