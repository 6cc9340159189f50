"""Loan contract snapshot read by the engine."""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from mutuos.models.enums import ContractStatus, RateIndex
from mutuos.money import Money


@dataclass
class LoanContract:
    """Mútuo contract header.

    Owned by the contract-management collaborator; the engine only reads
    ``principal``, ``annual_rate``, ``grace_months`` and ``start_date``.
    """

    contract_id: str
    principal: Money
    annual_rate: Decimal  # Percent per year (e.g., 12 for 12% a.a.)
    start_date: date
    grace_months: int = 0
    status: ContractStatus = ContractStatus.ACTIVE
    rate_index: RateIndex = RateIndex.OUTRO
    borrower_id: str | None = None
    lender_id: str | None = None
    contract_number: str | None = None
    notes: str | None = None
