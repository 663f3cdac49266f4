"""Billing domain: batch orchestration, job settlement and reconciliation."""
