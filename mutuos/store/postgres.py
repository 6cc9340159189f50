"""PostgreSQL-backed installment ledger (psycopg 3)."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import replace
from datetime import date
from typing import Any, Iterable, Iterator

import psycopg
from psycopg import errors
from psycopg.rows import dict_row

from mutuos.exceptions import (
    AlreadySettledError,
    ConcurrentModificationError,
    DuplicateInstallmentNumberError,
    InstallmentNotFoundError,
)
from mutuos.models.enums import EventType
from mutuos.models.installment import Installment
from mutuos.money import Money
from mutuos.store.ledger import InstallmentLedger, InstallmentRow

logger = logging.getLogger(__name__)

TABLE = "mutuos_parcelas"

SCHEMA_SQL = f"""
CREATE TABLE IF NOT EXISTS {TABLE} (
    installment_id   TEXT PRIMARY KEY,
    contract_id      TEXT NOT NULL,
    number           INTEGER NOT NULL CHECK (number >= 1),
    due_date         DATE NOT NULL,
    principal_amount NUMERIC(15, 2) NOT NULL CHECK (principal_amount >= 0),
    interest_amount  NUMERIC(15, 2) NOT NULL CHECK (interest_amount >= 0),
    tax_amount       NUMERIC(15, 2) NOT NULL CHECK (tax_amount >= 0),
    settled          BOOLEAN NOT NULL DEFAULT FALSE,
    settlement_date  DATE,
    entry_id         TEXT,
    created_at       TIMESTAMP NOT NULL DEFAULT now(),
    UNIQUE (contract_id, number),
    CHECK (settled = (settlement_date IS NOT NULL))
);
CREATE INDEX IF NOT EXISTS idx_{TABLE}_open_due
    ON {TABLE} (due_date) WHERE NOT settled;
"""

COLUMNS = (
    "installment_id, contract_id, number, due_date, principal_amount, interest_amount, "
    "tax_amount, settled, settlement_date, entry_id, created_at"
)

INSERT_SQL = f"""
INSERT INTO {TABLE} ({COLUMNS})
VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
"""

SETTLE_SQL = f"""
UPDATE {TABLE}
   SET settled = TRUE, settlement_date = %s, entry_id = %s
 WHERE contract_id = %s AND number = %s AND NOT settled
RETURNING {COLUMNS}
"""

UNSETTLE_SQL = f"""
UPDATE {TABLE}
   SET settled = FALSE, settlement_date = NULL, entry_id = NULL
 WHERE contract_id = %s AND number = %s AND settled
RETURNING {COLUMNS}
"""

PURGE_SQL = f"DELETE FROM {TABLE} WHERE contract_id = %s AND NOT settled RETURNING {COLUMNS}"

# Errors the caller should retry with a fresh transaction
RETRIABLE_ERRORS = (errors.LockNotAvailable, errors.SerializationFailure, errors.DeadlockDetected)


def row_to_installment(row: dict[str, Any]) -> Installment:
    """Convert a ``dict_row`` result to an ``Installment``."""
    return Installment(
        contract_id=row["contract_id"],
        number=row["number"],
        due_date=row["due_date"],
        principal_amount=Money(row["principal_amount"]),
        interest_amount=Money(row["interest_amount"]),
        tax_amount=Money(row["tax_amount"]),
        settled=row["settled"],
        settlement_date=row["settlement_date"],
        entry_id=row["entry_id"],
        installment_id=row["installment_id"],
        created_at=row["created_at"],
    )


def installment_to_params(installment: Installment) -> tuple:
    return (
        installment.installment_id,
        installment.contract_id,
        installment.number,
        installment.due_date,
        installment.principal_amount.amount,
        installment.interest_amount.amount,
        installment.tax_amount.amount,
        installment.settled,
        installment.settlement_date,
        installment.entry_id,
        installment.created_at,
    )


class PostgresLedger(InstallmentLedger):
    """Ledger stored in the ``mutuos_parcelas`` table.

    Every mutation runs in its own transaction (a savepoint when called
    inside ``contract_lock``). Settle and unsettle are single conditional
    UPDATEs, so a concurrent settle/unsettle pair on the same row cannot
    lose an update.
    """

    def __init__(self, conninfo: str | psycopg.Connection, lock_timeout_ms: int = 5000) -> None:
        """Initialize the ledger.

        Parameters
        ----------
        conninfo : str | psycopg.Connection
            Connection string, or an open connection (used as-is; it should
            be in autocommit mode so each ``transaction()`` block commits).
        lock_timeout_ms : int
            How long ``contract_lock`` waits before reporting contention.
        """
        super().__init__()
        if isinstance(conninfo, str):
            self.conn = psycopg.connect(conninfo, autocommit=True)
            self._owns_connection = True
        else:
            self.conn = conninfo
            self._owns_connection = False
        self.lock_timeout_ms = lock_timeout_ms

    def ensure_schema(self) -> None:
        """Create the installment table if it does not exist."""
        with self.conn.transaction(), self.conn.cursor() as cur:
            cur.execute(SCHEMA_SQL)
        logger.info("Ensured schema for table %s", TABLE)

    def close(self) -> None:
        if self._owns_connection:
            self.conn.close()

    @contextmanager
    def _translate(self, contract_id: str) -> Iterator[None]:
        """Map driver errors to ledger errors."""
        try:
            yield
        except errors.UniqueViolation as exc:
            raise DuplicateInstallmentNumberError(
                f"Contract {contract_id} already has one of the inserted installment numbers"
            ) from exc
        except RETRIABLE_ERRORS as exc:
            raise ConcurrentModificationError(
                f"Concurrent modification of contract {contract_id}: {exc}"
            ) from exc

    def _numbers(self, cur: psycopg.Cursor, contract_id: str, settled_only: bool = False) -> list[int]:
        sql = f"SELECT number FROM {TABLE} WHERE contract_id = %s"
        if settled_only:
            sql += " AND settled"
        cur.execute(sql, (contract_id,))
        return [row[0] for row in cur.fetchall()]

    def append(self, contract_id: str, installments: Iterable[InstallmentRow]) -> list[Installment]:
        new = self._materialize(contract_id, installments)

        with self._translate(contract_id), self.conn.transaction(), self.conn.cursor() as cur:
            self._check_free(contract_id, new, self._numbers(cur, contract_id))
            cur.executemany(INSERT_SQL, [installment_to_params(i) for i in new])

        logger.info("Appended %d installments to contract %s", len(new), contract_id)
        self._publish(EventType.INSTALLMENT_CREATED, new)
        return [replace(i) for i in new]

    def replace_unsettled(self, contract_id: str, installments: Iterable[InstallmentRow]) -> int:
        new = self._materialize(contract_id, installments)

        with self._translate(contract_id), self.conn.transaction():
            with self.conn.cursor() as cur:
                self._check_free(contract_id, new, self._numbers(cur, contract_id, settled_only=True))
            with self.conn.cursor(row_factory=dict_row) as cur:
                cur.execute(PURGE_SQL, (contract_id,))
                removed = [row_to_installment(row) for row in cur.fetchall()]
                cur.executemany(INSERT_SQL, [installment_to_params(i) for i in new])

        logger.info(
            "Replaced open installments of contract %s: %d purged, %d appended",
            contract_id,
            len(removed),
            len(new),
        )
        self._publish(EventType.INSTALLMENT_DELETED, removed)
        self._publish(EventType.INSTALLMENT_CREATED, new)
        return len(removed)

    def purge_unsettled(self, contract_id: str) -> int:
        with self._translate(contract_id), self.conn.transaction():
            with self.conn.cursor(row_factory=dict_row) as cur:
                cur.execute(PURGE_SQL, (contract_id,))
                removed = [row_to_installment(row) for row in cur.fetchall()]

        if removed:
            logger.info("Purged %d open installments of contract %s", len(removed), contract_id)
        self._publish(EventType.INSTALLMENT_DELETED, removed)
        return len(removed)

    def settle(
        self,
        contract_id: str,
        number: int,
        settlement_date: date,
        entry_id: str | None = None,
    ) -> Installment:
        self._check_settlement_date(settlement_date)
        with self._translate(contract_id), self.conn.transaction():
            with self.conn.cursor(row_factory=dict_row) as cur:
                cur.execute(SETTLE_SQL, (settlement_date, entry_id, contract_id, number))
                row = cur.fetchone()
                if row is None:
                    cur.execute(
                        f"SELECT settlement_date FROM {TABLE} WHERE contract_id = %s AND number = %s",
                        (contract_id, number),
                    )
                    existing = cur.fetchone()
                    if existing is None:
                        raise InstallmentNotFoundError(
                            f"Installment {number} of contract {contract_id} not found"
                        )
                    raise AlreadySettledError(
                        f"Installment {number} of contract {contract_id} already settled "
                        f"on {existing['settlement_date']}"
                    )

        installment = row_to_installment(row)
        logger.info(
            "Settled installment %d of contract %s on %s",
            number,
            contract_id,
            settlement_date,
            extra={"contract_id": contract_id, "installment_number": number},
        )
        self._publish(EventType.INSTALLMENT_SETTLED, [installment])
        return installment

    def unsettle(self, contract_id: str, number: int) -> Installment:
        with self._translate(contract_id), self.conn.transaction():
            with self.conn.cursor(row_factory=dict_row) as cur:
                cur.execute(UNSETTLE_SQL, (contract_id, number))
                row = cur.fetchone()

        if row is None:
            raise InstallmentNotFoundError(
                f"Installment {number} of contract {contract_id} not found or not settled"
            )

        installment = row_to_installment(row)
        logger.info(
            "Reopened installment %d of contract %s",
            number,
            contract_id,
            extra={"contract_id": contract_id, "installment_number": number},
        )
        self._publish(EventType.INSTALLMENT_UNSETTLED, [installment])
        return installment

    def get(self, contract_id: str, number: int) -> Installment:
        with self.conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                f"SELECT {COLUMNS} FROM {TABLE} WHERE contract_id = %s AND number = %s",
                (contract_id, number),
            )
            row = cur.fetchone()
        if row is None:
            raise InstallmentNotFoundError(f"Installment {number} of contract {contract_id} not found")
        return row_to_installment(row)

    def list_installments(self, contract_id: str) -> list[Installment]:
        with self.conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                f"SELECT {COLUMNS} FROM {TABLE} WHERE contract_id = %s ORDER BY number",
                (contract_id,),
            )
            return [row_to_installment(row) for row in cur.fetchall()]

    def contract_ids(self) -> list[str]:
        with self.conn.cursor() as cur:
            cur.execute(f"SELECT DISTINCT contract_id FROM {TABLE} ORDER BY contract_id")
            return [row[0] for row in cur.fetchall()]

    @contextmanager
    def contract_lock(self, contract_id: str) -> Iterator[None]:
        """Hold a transaction-scoped advisory lock on the contract.

        Ledger calls made inside the block join the same transaction, so a
        purge and the following append commit together.

        Raises
        ------
        ConcurrentModificationError
            If the lock is not granted within ``lock_timeout_ms``.
        """
        with self._translate(contract_id), self.conn.transaction():
            with self.conn.cursor() as cur:
                cur.execute("SELECT set_config('lock_timeout', %s, true)", (f"{int(self.lock_timeout_ms)}ms",))
                cur.execute("SELECT pg_advisory_xact_lock(hashtext(%s))", (contract_id,))
            logger.debug("Acquired advisory lock for contract %s", contract_id)
            yield
