"""Error taxonomy for the complaint workflow"""

from typing import Optional


class WorkflowError(Exception):
    """Base error for every recoverable workflow failure"""

    default_message = "Operation did not complete."

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class AnalysisError(WorkflowError):
    """Classification or drafting call failed or returned malformed data"""

    default_message = "Workflow engine encountered an error."


class DispatchError(WorkflowError):
    """Outbound transmission of a response failed"""

    default_message = "Failed to dispatch response."


class SyncError(WorkflowError):
    """Fetching externally sourced complaints failed"""

    default_message = "Failed to connect to mail servers."


class ValidationError(WorkflowError):
    """Input rejected before any state mutation"""

    default_message = "Invalid input."


class AuthorizationError(ValidationError):
    """Active session is missing or its role may not perform the operation"""

    default_message = "You are not permitted to perform this action."


class InvalidTransitionError(ValidationError):
    """Requested status change would move a record backwards"""

    default_message = "This record can no longer be changed."


class RecordNotFoundError(WorkflowError):
    """No record with the requested identifier"""

    default_message = "Record not found."


class DuplicateRecordError(WorkflowError):
    """A record with the same identifier already exists"""

    default_message = "Record already exists."
