"""CRUD singletons."""

from .crud_balance import balance
from .crud_balance_transaction import balance_transaction
from .crud_usage_event import usage_event

__all__ = ["balance", "balance_transaction", "usage_event"]
