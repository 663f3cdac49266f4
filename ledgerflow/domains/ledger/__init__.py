"""Ledger domain: pre-paid credit layers consumed FIFO by idempotent debits."""
