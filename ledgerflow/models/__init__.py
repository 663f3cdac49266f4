"""Models for the application."""

from .balance import Balance
from .balance_transaction import BalanceTransaction
from .usage_event import UsageEvent

__all__ = ["Balance", "BalanceTransaction", "UsageEvent"]
