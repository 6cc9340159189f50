"""Point-in-time aggregates over the installment ledger.

Everything here is recomputed on demand from a ledger snapshot; nothing is
cached or stored.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Iterable, Sequence

from mutuos.models.enums import InstallmentState, ScheduleStatus
from mutuos.models.installment import Installment
from mutuos.money import Money
from mutuos.store.ledger import InstallmentLedger

DEFAULT_DUE_SOON_WINDOW_DAYS = 30


@dataclass
class InstallmentBucket:
    """A set of open installments and their total (principal + interest + tax)."""

    installments: list[Installment] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.installments)

    @property
    def amount(self) -> Money:
        return Money.sum(i.total_amount for i in self.installments)


@dataclass
class ContractKpis:
    contract_id: str
    as_of: date
    outstanding_balance: Money
    overdue_count: int
    overdue_amount: Money
    due_soon_count: int
    due_soon_amount: Money
    status: ScheduleStatus


@dataclass
class PortfolioKpis:
    as_of: date
    total_contracts: int
    outstanding_balance: Money
    overdue_count: int
    overdue_amount: Money
    due_soon_count: int
    due_soon_amount: Money
    status_distribution: dict[ScheduleStatus, int] = field(default_factory=dict)


def outstanding_balance(installments: Iterable[Installment]) -> Money:
    """Sum of principal over open installments."""
    return Money.sum(i.principal_amount for i in installments if not i.settled)


def overdue_bucket(installments: Iterable[Installment], as_of: date) -> InstallmentBucket:
    """Open installments due strictly before ``as_of``."""
    return InstallmentBucket([i for i in installments if not i.settled and i.due_date < as_of])


def due_soon_bucket(
    installments: Iterable[Installment],
    as_of: date,
    window_days: int = DEFAULT_DUE_SOON_WINDOW_DAYS,
) -> InstallmentBucket:
    """Open installments due in ``[as_of, as_of + window_days]`` (both inclusive)."""
    horizon = as_of + timedelta(days=window_days)
    return InstallmentBucket(
        [i for i in installments if not i.settled and as_of <= i.due_date <= horizon]
    )


def derive_schedule_status(installments: Sequence[Installment], as_of: date) -> ScheduleStatus:
    if not installments:
        return ScheduleStatus.NO_INSTALLMENTS
    if all(i.settled for i in installments):
        return ScheduleStatus.SETTLED
    if overdue_bucket(installments, as_of).count:
        return ScheduleStatus.OVERDUE
    return ScheduleStatus.IN_PROGRESS


def days_overdue(installment: Installment, as_of: date) -> int:
    """Days past due for an open installment, 0 otherwise."""
    if installment.settled:
        return 0
    return max(0, (as_of - installment.due_date).days)


def installment_state(installment: Installment, as_of: date) -> InstallmentState:
    if installment.settled:
        return InstallmentState.SETTLED
    if installment.due_date < as_of:
        return InstallmentState.OVERDUE
    return InstallmentState.OPEN


class AggregateReporter:
    """KPIs for dashboards, read from a ledger."""

    def __init__(
        self,
        ledger: InstallmentLedger,
        due_soon_window_days: int = DEFAULT_DUE_SOON_WINDOW_DAYS,
    ) -> None:
        if due_soon_window_days < 0:
            raise ValueError(f"due_soon_window_days must be >= 0, got {due_soon_window_days}")
        self.ledger = ledger
        self.due_soon_window_days = due_soon_window_days

    def kpis_for(self, contract_id: str, installments: Sequence[Installment], as_of: date) -> ContractKpis:
        """KPIs for an already-read snapshot of one contract."""
        overdue = overdue_bucket(installments, as_of)
        due_soon = due_soon_bucket(installments, as_of, self.due_soon_window_days)
        return ContractKpis(
            contract_id=contract_id,
            as_of=as_of,
            outstanding_balance=outstanding_balance(installments),
            overdue_count=overdue.count,
            overdue_amount=overdue.amount,
            due_soon_count=due_soon.count,
            due_soon_amount=due_soon.amount,
            status=derive_schedule_status(installments, as_of),
        )

    def contract_kpis(self, contract_id: str, as_of: date) -> ContractKpis:
        return self.kpis_for(contract_id, self.ledger.list_installments(contract_id), as_of)

    def portfolio_kpis(self, as_of: date, contract_ids: Iterable[str] | None = None) -> PortfolioKpis:
        """Aggregate KPIs across contracts.

        Parameters
        ----------
        as_of : date
            Reference date.
        contract_ids : Iterable[str] | None
            Contracts to include. Defaults to every contract in the ledger;
            pass the full registry to count contracts without installments.
        """
        ids = list(contract_ids) if contract_ids is not None else self.ledger.contract_ids()
        per_contract = [self.contract_kpis(cid, as_of) for cid in ids]

        distribution: dict[ScheduleStatus, int] = {}
        for kpis in per_contract:
            distribution[kpis.status] = distribution.get(kpis.status, 0) + 1

        return PortfolioKpis(
            as_of=as_of,
            total_contracts=len(ids),
            outstanding_balance=Money.sum(k.outstanding_balance for k in per_contract),
            overdue_count=sum(k.overdue_count for k in per_contract),
            overdue_amount=Money.sum(k.overdue_amount for k in per_contract),
            due_soon_count=sum(k.due_soon_count for k in per_contract),
            due_soon_amount=Money.sum(k.due_soon_amount for k in per_contract),
            status_distribution=distribution,
        )
