"""Billing domain exceptions."""

import functools

from ledgerflow.core.exceptions import ExternalServiceError, InvalidStateError, LedgerflowException


class BillingJobPublishError(ExternalServiceError):
    """Wraps ExternalServiceError from the job queue adapter at the domain boundary."""

    def __init__(self, message: str = "Failed to publish billing jobs"):
        """Initialize with default message."""
        super().__init__(service_name="BillingJobQueue", message=message)


class BillingStateError(InvalidStateError):
    """Raised when a billing operation is invalid for a batch's current state."""

    def __init__(self, message: str = "Invalid billing state"):
        """Initialize with default message."""
        super().__init__(message)


class UnsupportedBillingCommandError(LedgerflowException):
    """Raised when the command handler receives a variant it does not know."""

    def __init__(self, command: object):
        """Initialize with the offending command."""
        self.command = command
        super().__init__(f"Unsupported billing command: {type(command).__name__}")


def wrap_queue_errors(fn):
    """Decorator: catch ExternalServiceError from the job queue, wrap as BillingJobPublishError."""

    @functools.wraps(fn)
    async def wrapper(*args, **kwargs):
        try:
            return await fn(*args, **kwargs)
        except ExternalServiceError as e:
            raise BillingJobPublishError(message=e.message) from e

    return wrapper
