"""Exception hierarchy for txn_pipeline.

Readers and detectors raise these internally; the statement entry points turn
them into failed :class:`~txn_pipeline.models.StatementResult` values so that
nothing escapes the pipeline boundary as a stack trace.
"""

UNKNOWN_FORMAT_MESSAGE = "Unknown file format. Please use CSV with columns: Date, Description, Amount"
PASSWORD_REQUIRED_MESSAGE = "PDF is password protected. Please enter the password."


class TxnPipelineError(Exception):
    """Base exception for all txn_pipeline errors."""


class UnknownFormatError(TxnPipelineError):
    """Raised when no statement format claims the input."""

    def __init__(self, message: str = UNKNOWN_FORMAT_MESSAGE) -> None:
        super().__init__(message)


class StatementReadError(TxnPipelineError):
    """Raised when statement bytes cannot be opened or decoded."""


class PasswordRequiredError(StatementReadError):
    """Raised for an encrypted PDF opened without (or with a wrong) password."""

    def __init__(self, message: str = PASSWORD_REQUIRED_MESSAGE) -> None:
        super().__init__(message)


class ConfigurationError(TxnPipelineError):
    """Raised when configuration values are invalid."""
