"""Ledger domain exceptions."""

from typing import Optional

from ledgerflow.core.exceptions import InvalidStateError, LedgerflowException, NotFoundException


class InsufficientBalanceError(InvalidStateError):
    """Raised when an organization's credit cannot cover a debit.

    Terminal for the job that raised it: retrying cannot succeed until the
    organization is topped up.
    """

    def __init__(
        self,
        organization_id: str,
        required: int,
        available: int,
        message: Optional[str] = None,
    ) -> None:
        """Initialize with the amount owed and the amount available."""
        if message is None:
            message = (
                f"Insufficient balance for organization {organization_id}: "
                f"required {required}, available {available}"
            )
        self.organization_id = organization_id
        self.required = required
        self.available = available
        super().__init__(message)


class LedgerInvariantError(LedgerflowException):
    """Raised when ledger rows contradict each other. Never retried."""

    def __init__(self, message: str = "Ledger invariant violated"):
        """Initialize with a description of the violation."""
        self.message = message
        super().__init__(message)


class AccountNotFoundError(NotFoundException):
    """Raised when an organization has no balance row."""

    def __init__(self, organization_id: str):
        """Initialize with the organization id."""
        self.organization_id = organization_id
        super().__init__(f"No ledger account for organization {organization_id}")
