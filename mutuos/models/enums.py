"""Enumeration types for loan contracts and installments."""

from enum import Enum


class AmortizationMethod(str, Enum):
    PRICE = "PRICE"
    SAC = "SAC"


class RateIndex(str, Enum):
    """Reference index a contract spread is quoted over (informational)."""

    CDI = "CDI"
    IPCA = "IPCA"
    SELIC = "SELIC"
    DI = "DI"
    IGPM = "IGP-M"
    OUTRO = "OUTRO"


class ContractStatus(str, Enum):
    ACTIVE = "ACTIVE"
    CLOSED = "CLOSED"


class ScheduleStatus(str, Enum):
    """Contract status derived from its installments, never stored."""

    NO_INSTALLMENTS = "NO_INSTALLMENTS"
    SETTLED = "SETTLED"
    OVERDUE = "OVERDUE"
    IN_PROGRESS = "IN_PROGRESS"


class InstallmentState(str, Enum):
    OPEN = "OPEN"
    OVERDUE = "OVERDUE"
    SETTLED = "SETTLED"


class EventType(str, Enum):
    INSTALLMENT_CREATED = "installment.created"
    INSTALLMENT_DELETED = "installment.deleted"
    INSTALLMENT_SETTLED = "installment.settled"
    INSTALLMENT_UNSETTLED = "installment.unsettled"
