"""Domain services for the record store.

Services combine collections into higher-level behaviour: compensating
transactions, their registry, and the join/projection query builder.
"""

from record_store.domain.services.select import Select
from record_store.domain.services.transaction import Transaction
from record_store.domain.services.transaction_manager import TransactionManager

__all__ = [
    "Select",
    "Transaction",
    "TransactionManager",
]
