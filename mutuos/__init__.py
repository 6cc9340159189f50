"""Loan amortization and installment lifecycle engine for mútuo contracts."""

from mutuos.models import Installment, LoanContract, ScheduledInstallment
from mutuos.money import Money
from mutuos.reporting import AggregateReporter
from mutuos.schedule import ScheduleGenerator, ScheduleParameters
from mutuos.store import InMemoryLedger, InstallmentLedger

__version__ = "0.1.0"

__all__ = [
    "AggregateReporter",
    "InMemoryLedger",
    "Installment",
    "InstallmentLedger",
    "LoanContract",
    "Money",
    "ScheduleGenerator",
    "ScheduleParameters",
    "ScheduledInstallment",
]
