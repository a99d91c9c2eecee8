# drivedup Exceptions
# Error types shared by the backends, the job stores and the orchestrator

from typing import Optional


class DrivedupError(Exception):
    """Base class for all drivedup errors."""


class RemoteError(DrivedupError):
    """Exception raised when a single remote operation fails."""

    def __init__(self, message: str, status: Optional[int] = None):
        self.message = message
        self.status = status
        super().__init__(message)


class JobBusyError(DrivedupError):
    """Raised when a job is started while another one holds the checkpoint slot."""


class InvalidJobError(DrivedupError):
    """Raised when a job row cannot be used to start a job."""
