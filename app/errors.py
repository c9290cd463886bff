"""Error taxonomy of the signing workflow.

Every error here is caller-correctable and is surfaced synchronously; the
HTTP layer maps each class to a status code in ``app.main``.
"""
from dataclasses import asdict, dataclass


@dataclass(frozen=True)
class Violation:
    message: str
    field_id: int | None = None

    def to_dict(self) -> dict:
        return asdict(self)


class WorkflowError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(WorkflowError):
    status_code = 404


class AuthorizationError(WorkflowError):
    status_code = 403


class WorkflowStateError(WorkflowError):
    status_code = 400


class ConflictError(WorkflowError):
    status_code = 409


class ValidationFailed(WorkflowError):
    status_code = 422

    def __init__(self, message: str, violations: list[Violation]):
        super().__init__(message)
        self.violations = list(violations)
