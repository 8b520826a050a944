__all__ = [
    "reconcile_recurring",
    "build_recurring_transaction",
    "find_linked_transaction",
    "find_fingerprint_match",
    "reconcile_installments",
    "plan_next_payment",
    "plan_undo_last_payment",
    "get_paid_count",
    "get_installment_progress",
    "compute_balance",
    "solve_balance_offset",
    "apply_goal_contribution",
    "is_category_in_use",
    "unlink_card",
    "get_month_summary",
    "get_expenses_by_category",
    "calculate_card_usage",
    "get_card_usage",
    "get_near_due_recurring",
    "get_goal_progress",
    "FinanceStore",
    "ReconciliationReport",
]

from fincontrol.services.recurring_service import (
    reconcile_recurring,
    build_recurring_transaction,
    find_linked_transaction,
    find_fingerprint_match
)

from fincontrol.services.installment_service import (
    reconcile_installments,
    plan_next_payment,
    plan_undo_last_payment,
    get_paid_count,
    get_installment_progress
)

from fincontrol.services.bookkeeping_service import (
    compute_balance,
    solve_balance_offset,
    apply_goal_contribution,
    is_category_in_use,
    unlink_card
)

from fincontrol.services.dashboard_service import (
    get_month_summary,
    get_expenses_by_category,
    calculate_card_usage,
    get_card_usage,
    get_near_due_recurring,
    get_goal_progress
)

from fincontrol.services.finance_store import (
    FinanceStore,
    ReconciliationReport
)
