"""Error types raised by the ShipKit provisioning workflow.

Every error carries the ``Outcome`` the workflow reports for it, so the
orchestrator can turn a failure into a ``WorkflowResult`` without a chain of
``isinstance`` checks.
"""

from enum import Enum
from typing import Optional


class Outcome(str, Enum):
    """Final state of a provisioning run."""

    SUCCESS = "success"
    INVALID_TOKEN = "invalid-token"
    INVALID_NAME = "invalid-name"
    DESTINATION_EXISTS = "destination-exists"
    INVALID_SELECTION = "invalid-selection"
    TRANSPORT_ERROR = "transport-error"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"
    EXTRACTION_ERROR = "extraction-error"
    INSTALL_ERROR = "install-error"


class ShipkitError(Exception):
    """Base class for expected workflow failures."""

    outcome = Outcome.TRANSPORT_ERROR

    def __init__(self, message: str, *, detail: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail


class InvalidTokenError(ShipkitError):
    outcome = Outcome.INVALID_TOKEN


class InvalidNameError(ShipkitError):
    outcome = Outcome.INVALID_NAME


class DestinationExistsError(ShipkitError):
    outcome = Outcome.DESTINATION_EXISTS


class SelectionError(ShipkitError):
    outcome = Outcome.INVALID_SELECTION


class DownloadError(ShipkitError):
    """The build API could not be reached or answered with an error."""

    outcome = Outcome.TRANSPORT_ERROR

    def __init__(self, message: str, *, status_code: Optional[int] = None, detail: Optional[str] = None):
        super().__init__(message, detail=detail)
        self.status_code = status_code


class DownloadTimeoutError(DownloadError):
    outcome = Outcome.TIMEOUT


class DownloadCancelledError(DownloadError):
    outcome = Outcome.CANCELLED


class ExtractionError(ShipkitError):
    outcome = Outcome.EXTRACTION_ERROR


class InstallError(ShipkitError):
    """The package manager failed or could not be started."""

    outcome = Outcome.INSTALL_ERROR

    def __init__(self, message: str, *, returncode: Optional[int] = None, detail: Optional[str] = None):
        super().__init__(message, detail=detail)
        self.returncode = returncode
