"""Usage billing: claim-based batching, FIFO credit ledger, and reconciliation."""
