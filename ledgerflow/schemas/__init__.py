"""Pydantic schemas shared by the API, domains and adapters."""
