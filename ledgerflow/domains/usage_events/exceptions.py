"""Usage events domain exceptions."""

from typing import Optional

from ledgerflow.core.exceptions import InvalidStateError


class InvalidStatusTransitionError(InvalidStateError):
    """Raised when a usage event would move along an edge the lifecycle forbids."""

    def __init__(self, from_status: str, to_status: str, message: Optional[str] = None) -> None:
        """Initialize with the rejected edge."""
        if message is None:
            message = f"Usage event cannot move from {from_status} to {to_status}"
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(message)


class BatchAggregationError(InvalidStateError):
    """Raised when a non-empty claim aggregates to no organization at all."""

    def __init__(self, batch_id: object, claimed: int) -> None:
        """Initialize with the batch and its claimed size."""
        self.batch_id = batch_id
        self.claimed = claimed
        super().__init__(f"Batch {batch_id} claimed {claimed} events but aggregated to nothing")
