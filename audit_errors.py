"""Exceptions raised by the audit pipeline."""


class AuditError(Exception):
    """Base exception for audit errors."""
    pass


class EmptyInputError(AuditError):
    """Raised when a filter receives zero records."""

    def __init__(self, message="cannot filter an empty list"):
        super().__init__(message)


class FetchError(AuditError):
    """Raised when listing resources from the Compute Engine API fails."""

    def __init__(self, project_id, resource_kind, cause):
        self.project_id = project_id
        self.resource_kind = resource_kind
        self.cause = cause
        super().__init__(f"Failed to retrieve {resource_kind} for {project_id}: {cause}")


class ExportError(AuditError):
    """Raised when a CSV report cannot be written."""
    pass


class NoDataError(AuditError):
    """Raised when there are no rows to export."""
    pass


class AuditAbortedError(AuditError):
    """Raised in fail-fast mode when a task fails. Carries the results collected so far."""

    def __init__(self, message, results=None):
        super().__init__(message)
        self.results = results or []
