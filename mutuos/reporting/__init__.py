"""Read-side aggregates over the installment ledger."""

from mutuos.reporting.aggregates import (
    AggregateReporter,
    ContractKpis,
    InstallmentBucket,
    PortfolioKpis,
    days_overdue,
    derive_schedule_status,
    due_soon_bucket,
    installment_state,
    outstanding_balance,
    overdue_bucket,
)

__all__ = [
    "AggregateReporter",
    "ContractKpis",
    "InstallmentBucket",
    "PortfolioKpis",
    "days_overdue",
    "derive_schedule_status",
    "due_soon_bucket",
    "installment_state",
    "outstanding_balance",
    "overdue_bucket",
]
