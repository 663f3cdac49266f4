"""Temporal integration for periodic billing orchestration."""
