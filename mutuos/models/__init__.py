"""Domain models for loan contracts and installments."""

from mutuos.models.base import Event
from mutuos.models.contract import LoanContract
from mutuos.models.enums import (
    AmortizationMethod,
    ContractStatus,
    EventType,
    InstallmentState,
    RateIndex,
    ScheduleStatus,
)
from mutuos.models.installment import Installment, ScheduledInstallment

__all__ = [
    "AmortizationMethod",
    "ContractStatus",
    "Event",
    "EventType",
    "Installment",
    "InstallmentState",
    "LoanContract",
    "RateIndex",
    "ScheduleStatus",
    "ScheduledInstallment",
]
