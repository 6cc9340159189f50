"""Installment ledger implementations."""

from mutuos.store.ledger import InMemoryLedger, InstallmentLedger

__all__ = ["InMemoryLedger", "InstallmentLedger"]
