"""Ledger domain fakes for testing."""
