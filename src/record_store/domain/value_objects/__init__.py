"""Value objects for the record store domain.

Exports:
    Conditions:
        - Condition: Search condition accepted by every collection
        - Predicate: Compiled form of a condition
        - compile_condition, ids_in, match_all

    Transaction Types:
        - TransactionState: ACTIVE / ENDED
        - TimeoutAction: END / ROLLBACK on inactivity timeout
"""

from record_store.domain.value_objects.condition import (
    Condition,
    Predicate,
    compile_condition,
    ids_in,
    match_all,
)
from record_store.domain.value_objects.transaction_types import (
    TimeoutAction,
    TransactionState,
)

__all__ = [
    # Conditions
    "Condition",
    "Predicate",
    "compile_condition",
    "ids_in",
    "match_all",
    # Transaction types
    "TimeoutAction",
    "TransactionState",
]
