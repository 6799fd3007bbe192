from chorecoin.services import (
    due_date_buckets,
    group_service,
    history_service,
    ledger_service,
    operations,
    task_service,
    task_state_machine,
)


__all__ = [
    "due_date_buckets",
    "group_service",
    "history_service",
    "ledger_service",
    "operations",
    "task_service",
    "task_state_machine",
]
