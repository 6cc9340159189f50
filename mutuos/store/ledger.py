"""Installment ledger: the only owner of installment state."""

from __future__ import annotations

import logging
import threading
import uuid
from abc import ABC, abstractmethod
from contextlib import AbstractContextManager, contextmanager
from dataclasses import replace
from datetime import date, datetime
from typing import Iterable, Iterator, Sequence

from mutuos.events import Subscriber, build_event
from mutuos.exceptions import (
    AlreadySettledError,
    ConcurrentModificationError,
    DuplicateInstallmentNumberError,
    InstallmentNotFoundError,
    InvalidParameterError,
)
from mutuos.models.enums import EventType
from mutuos.models.installment import Installment, ScheduledInstallment

logger = logging.getLogger(__name__)

InstallmentRow = Installment | ScheduledInstallment


class InstallmentLedger(ABC):
    """Installments of every contract, mutated only through named operations.

    Implementations provide atomicity per operation and a per-contract lock
    (``contract_lock``) for callers that must serialize schedule mutations.
    The ledger never takes that lock on its own.
    """

    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []

    def subscribe(self, callback: Subscriber) -> None:
        """Register a callback receiving an ``Event`` per mutated installment."""
        self._subscribers.append(callback)

    def _publish(self, event_type: EventType, installments: Iterable[Installment]) -> None:
        if not self._subscribers:
            return
        for installment in installments:
            event = build_event(event_type, installment)
            for callback in self._subscribers:
                callback(event)

    def _materialize(self, contract_id: str, rows: Iterable[InstallmentRow]) -> list[Installment]:
        """Turn schedule rows into installments and check the batch itself."""
        now = datetime.now()
        result: list[Installment] = []
        seen: set[int] = set()

        for row in rows:
            if isinstance(row, ScheduledInstallment):
                installment = Installment.from_scheduled(contract_id, row, str(uuid.uuid4()))
            else:
                if row.contract_id != contract_id:
                    raise InvalidParameterError(
                        f"Installment {row.number} belongs to contract {row.contract_id}, not {contract_id}"
                    )
                installment = replace(row, installment_id=row.installment_id or str(uuid.uuid4()))

            if installment.number in seen:
                raise DuplicateInstallmentNumberError(
                    f"Installment number {installment.number} repeated for contract {contract_id}"
                )
            seen.add(installment.number)

            if installment.created_at is None:
                installment.created_at = now
            result.append(installment)

        return result

    @staticmethod
    def _check_free(contract_id: str, installments: Sequence[Installment], taken: Iterable[int]) -> None:
        taken = set(taken)
        clashes = sorted(i.number for i in installments if i.number in taken)
        if clashes:
            raise DuplicateInstallmentNumberError(
                f"Contract {contract_id} already has installment numbers {clashes}"
            )

    @staticmethod
    def _check_settlement_date(settlement_date: date) -> None:
        if not isinstance(settlement_date, date):
            raise InvalidParameterError(
                f"settlement_date must be a date, got {settlement_date!r}"
            )

    # Mutations
    @abstractmethod
    def append(self, contract_id: str, installments: Iterable[InstallmentRow]) -> list[Installment]:
        """Insert a freshly generated sequence.

        Raises
        ------
        DuplicateInstallmentNumberError
            If any number already exists for the contract. Nothing is written.
        """

    @abstractmethod
    def replace_unsettled(self, contract_id: str, installments: Iterable[InstallmentRow]) -> int:
        """Delete every open installment of the contract, then append.

        Settled installments are untouched and their numbers are not reused.

        Returns
        -------
        int
            Number of purged installments.

        Raises
        ------
        DuplicateInstallmentNumberError
            If a new number collides with a settled installment. Nothing is
            deleted in that case.
        """

    @abstractmethod
    def purge_unsettled(self, contract_id: str) -> int:
        """Delete every open installment of the contract."""

    @abstractmethod
    def settle(
        self,
        contract_id: str,
        number: int,
        settlement_date: date,
        entry_id: str | None = None,
    ) -> Installment:
        """Mark an installment as settled ("liquidar").

        Raises
        ------
        InvalidParameterError
            If ``settlement_date`` is not a date. Nothing is written.
        InstallmentNotFoundError
            If the installment does not exist.
        AlreadySettledError
            If it is already settled.
        """

    @abstractmethod
    def unsettle(self, contract_id: str, number: int) -> Installment:
        """Reopen a settled installment ("desfazer liquidação").

        Raises
        ------
        InstallmentNotFoundError
            If the installment does not exist or is currently open.
        """

    # Reads
    @abstractmethod
    def get(self, contract_id: str, number: int) -> Installment:
        """Get one installment (copy). Raises ``InstallmentNotFoundError``."""

    @abstractmethod
    def list_installments(self, contract_id: str) -> list[Installment]:
        """All installments of a contract ordered by number (copies)."""

    @abstractmethod
    def contract_ids(self) -> list[str]:
        """Contracts with at least one installment."""

    @abstractmethod
    def contract_lock(self, contract_id: str) -> AbstractContextManager[None]:
        """Context manager serializing schedule mutations for one contract."""

    def has_settled(self, contract_id: str) -> bool:
        """Whether any installment of the contract is settled."""
        return any(i.settled for i in self.list_installments(contract_id))

    def settled_installments(self, contract_id: str) -> list[Installment]:
        return [i for i in self.list_installments(contract_id) if i.settled]

    def unsettled_installments(self, contract_id: str) -> list[Installment]:
        return [i for i in self.list_installments(contract_id) if not i.settled]


class InMemoryLedger(InstallmentLedger):
    """In-memory ledger keyed by contract and installment number."""

    def __init__(self, lock_timeout: float = 5.0) -> None:
        super().__init__()
        self.lock_timeout = lock_timeout
        self._installments: dict[str, dict[int, Installment]] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _contract(self, contract_id: str) -> dict[int, Installment]:
        return self._installments.setdefault(contract_id, {})

    def append(self, contract_id: str, installments: Iterable[InstallmentRow]) -> list[Installment]:
        new = self._materialize(contract_id, installments)
        existing = self._contract(contract_id)
        self._check_free(contract_id, new, existing.keys())

        for installment in new:
            existing[installment.number] = installment

        logger.info("Appended %d installments to contract %s", len(new), contract_id)
        self._publish(EventType.INSTALLMENT_CREATED, new)
        return [replace(i) for i in new]

    def replace_unsettled(self, contract_id: str, installments: Iterable[InstallmentRow]) -> int:
        new = self._materialize(contract_id, installments)
        existing = self._contract(contract_id)
        self._check_free(contract_id, new, (n for n, i in existing.items() if i.settled))

        purged = self.purge_unsettled(contract_id)
        for installment in new:
            existing[installment.number] = installment

        logger.info(
            "Replaced open installments of contract %s: %d purged, %d appended",
            contract_id,
            purged,
            len(new),
        )
        self._publish(EventType.INSTALLMENT_CREATED, new)
        return purged

    def purge_unsettled(self, contract_id: str) -> int:
        existing = self._contract(contract_id)
        removed = [existing.pop(n) for n in sorted(existing) if not existing[n].settled]

        if removed:
            logger.info("Purged %d open installments of contract %s", len(removed), contract_id)
        self._publish(EventType.INSTALLMENT_DELETED, removed)
        return len(removed)

    def _find(self, contract_id: str, number: int) -> Installment:
        installment = self._installments.get(contract_id, {}).get(number)
        if installment is None:
            raise InstallmentNotFoundError(f"Installment {number} of contract {contract_id} not found")
        return installment

    def settle(
        self,
        contract_id: str,
        number: int,
        settlement_date: date,
        entry_id: str | None = None,
    ) -> Installment:
        self._check_settlement_date(settlement_date)
        installment = self._find(contract_id, number)
        if installment.settled:
            raise AlreadySettledError(
                f"Installment {number} of contract {contract_id} already settled "
                f"on {installment.settlement_date}"
            )

        installment.settled = True
        installment.settlement_date = settlement_date
        installment.entry_id = entry_id

        logger.info(
            "Settled installment %d of contract %s on %s",
            number,
            contract_id,
            settlement_date,
            extra={"contract_id": contract_id, "installment_number": number},
        )
        self._publish(EventType.INSTALLMENT_SETTLED, [installment])
        return replace(installment)

    def unsettle(self, contract_id: str, number: int) -> Installment:
        installment = self._find(contract_id, number)
        if not installment.settled:
            raise InstallmentNotFoundError(
                f"Installment {number} of contract {contract_id} is not settled"
            )

        installment.settled = False
        installment.settlement_date = None
        installment.entry_id = None

        logger.info(
            "Reopened installment %d of contract %s",
            number,
            contract_id,
            extra={"contract_id": contract_id, "installment_number": number},
        )
        self._publish(EventType.INSTALLMENT_UNSETTLED, [installment])
        return replace(installment)

    def get(self, contract_id: str, number: int) -> Installment:
        return replace(self._find(contract_id, number))

    def list_installments(self, contract_id: str) -> list[Installment]:
        existing = self._installments.get(contract_id, {})
        return [replace(existing[n]) for n in sorted(existing)]

    def contract_ids(self) -> list[str]:
        return [cid for cid, rows in self._installments.items() if rows]

    @contextmanager
    def contract_lock(self, contract_id: str) -> Iterator[None]:
        with self._locks_guard:
            lock = self._locks.setdefault(contract_id, threading.Lock())

        if not lock.acquire(timeout=self.lock_timeout):
            raise ConcurrentModificationError(
                f"Contract {contract_id} is locked by another schedule mutation"
            )
        try:
            yield
        finally:
            lock.release()

    def summary(self) -> dict[str, int]:
        """Return summary counts of stored installments."""
        rows = [i for contract in self._installments.values() for i in contract.values()]
        return {
            "contracts": len(self.contract_ids()),
            "installments": len(rows),
            "settled": sum(1 for i in rows if i.settled),
            "open": sum(1 for i in rows if not i.settled),
        }
