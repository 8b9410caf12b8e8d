"""Errors raised for malformed input reaching the intake path.

Short or degenerate signals are not errors: the analytics return None or
zero-filled records for those. These exceptions cover payloads and call
arguments that break the intake contract, and each one is logged on the
``vitalseq`` logger as it is raised.
"""

from vitalseq import config

logger = config.get_logger()


class LoggedException(Exception):
    """Base class for vitalseq errors; logs the message at ERROR level."""

    def __init__(self, message: str) -> None:
        """Log *message* and build the exception.

        Args:
            message: What was wrong with the input, including the sequence id
                when one is known.
        """
        logger.error(message)
        super().__init__(message)


class BatchFormatError(LoggedException):
    """A batch payload lacks metadata or carries a malformed data entry."""


class InvalidBatchError(LoggedException):
    """A batch number falls outside ``1..total_batches`` of a live sequence."""


class SampleOrderError(LoggedException):
    """Sample values and timestamps cannot be paired up."""
