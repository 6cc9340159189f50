"""Installment models."""

from dataclasses import dataclass
from datetime import date, datetime

from mutuos.money import Money


@dataclass(frozen=True)
class ScheduledInstallment:
    """Computed installment, not yet persisted (dry-run row)."""

    number: int
    due_date: date
    principal_amount: Money
    interest_amount: Money
    tax_amount: Money

    @property
    def total_amount(self) -> Money:
        return self.principal_amount + self.interest_amount + self.tax_amount


@dataclass
class Installment:
    """Loan installment (parcela) owned by the ledger."""

    contract_id: str
    number: int  # 1, 2, 3, ...
    due_date: date
    principal_amount: Money
    interest_amount: Money
    tax_amount: Money
    settled: bool = False
    settlement_date: date | None = None
    entry_id: str | None = None  # Cash-ledger entry that recorded the settlement
    installment_id: str = ""
    created_at: datetime | None = None

    @property
    def total_amount(self) -> Money:
        return self.principal_amount + self.interest_amount + self.tax_amount

    @classmethod
    def from_scheduled(
        cls,
        contract_id: str,
        row: ScheduledInstallment,
        installment_id: str = "",
    ) -> "Installment":
        """Create an open installment from a computed schedule row."""
        return cls(
            contract_id=contract_id,
            number=row.number,
            due_date=row.due_date,
            principal_amount=row.principal_amount,
            interest_amount=row.interest_amount,
            tax_amount=row.tax_amount,
            installment_id=installment_id,
        )
