"""Tests for the in-memory installment ledger."""

from datetime import date
from decimal import Decimal

import pytest

from mutuos.exceptions import (
    AlreadySettledError,
    ConcurrentModificationError,
    DuplicateInstallmentNumberError,
    InstallmentNotFoundError,
    InvalidParameterError,
)
from mutuos.models.base import Event
from mutuos.models.installment import Installment, ScheduledInstallment
from mutuos.money import Money
from mutuos.schedule.calculator import calculate_sac
from mutuos.store.ledger import InMemoryLedger

CONTRACT = "mutuo-test-001"


@pytest.fixture
def rows() -> list[ScheduledInstallment]:
    """Twelve SAC rows for 120,000.00 at 12% a.a."""
    return calculate_sac(Money("120000.00"), Decimal("12"), 12, 0, Decimal("0"), date(2024, 1, 15))


@pytest.fixture
def loaded(ledger: InMemoryLedger, rows: list[ScheduledInstallment]) -> InMemoryLedger:
    """Ledger holding the twelve rows."""
    ledger.append(CONTRACT, rows)
    return ledger


class TestAppend:
    """Tests for append."""

    def test_append(self, ledger: InMemoryLedger, rows: list[ScheduledInstallment]) -> None:
        """Test appended installments are open and identified."""
        created = ledger.append(CONTRACT, rows)

        assert len(created) == 12
        assert all(not i.settled and i.settlement_date is None for i in created)
        assert all(i.installment_id for i in created)
        assert all(i.created_at is not None for i in created)
        assert len({i.installment_id for i in created}) == 12
        assert ledger.contract_ids() == [CONTRACT]

    def test_duplicate_number_writes_nothing(
        self, loaded: InMemoryLedger, rows: list[ScheduledInstallment]
    ) -> None:
        """Test appending an existing number fails atomically."""
        extra = ScheduledInstallment(13, date(2025, 2, 15), Money("1.00"), Money("0.00"), Money("0.00"))

        with pytest.raises(DuplicateInstallmentNumberError, match=r"\[12\]"):
            loaded.append(CONTRACT, [extra, rows[-1]])

        assert len(loaded.list_installments(CONTRACT)) == 12

    def test_duplicate_within_batch(self, ledger: InMemoryLedger, rows: list[ScheduledInstallment]) -> None:
        """Test a batch repeating a number is refused."""
        with pytest.raises(DuplicateInstallmentNumberError):
            ledger.append(CONTRACT, [rows[0], rows[0]])

        assert ledger.list_installments(CONTRACT) == []

    def test_foreign_installment_rejected(self, ledger: InMemoryLedger, rows: list[ScheduledInstallment]) -> None:
        """Test installments of another contract are refused."""
        foreign = Installment.from_scheduled("other-contract", rows[0])

        with pytest.raises(InvalidParameterError):
            ledger.append(CONTRACT, [foreign])

    def test_other_contract_independent(self, loaded: InMemoryLedger, rows: list[ScheduledInstallment]) -> None:
        """Test numbering is unique per contract only."""
        loaded.append("mutuo-test-002", rows)

        assert sorted(loaded.contract_ids()) == [CONTRACT, "mutuo-test-002"]


class TestSettlement:
    """Tests for settle and unsettle."""

    def test_settle(self, loaded: InMemoryLedger) -> None:
        """Test settling records date and cash-ledger entry."""
        result = loaded.settle(CONTRACT, 1, date(2024, 2, 14), entry_id="LAN-000001")

        assert result.settled is True
        assert result.settlement_date == date(2024, 2, 14)
        assert result.entry_id == "LAN-000001"
        assert loaded.get(CONTRACT, 1).settled is True
        assert loaded.has_settled(CONTRACT)

    def test_settle_twice(self, loaded: InMemoryLedger) -> None:
        """Test a second settle fails and keeps the first date."""
        loaded.settle(CONTRACT, 1, date(2024, 2, 14))

        with pytest.raises(AlreadySettledError):
            loaded.settle(CONTRACT, 1, date(2024, 3, 1))

        assert loaded.get(CONTRACT, 1).settlement_date == date(2024, 2, 14)

    @pytest.mark.parametrize("contract_id,number", [(CONTRACT, 99), ("missing", 1)])
    def test_settle_missing(self, loaded: InMemoryLedger, contract_id: str, number: int) -> None:
        """Test settling an unknown installment."""
        with pytest.raises(InstallmentNotFoundError):
            loaded.settle(contract_id, number, date(2024, 2, 14))

    @pytest.mark.parametrize("settlement_date", [None, "2024-02-14"])
    def test_settle_without_date(self, loaded: InMemoryLedger, settlement_date: object) -> None:
        """Test settling requires a date and leaves the installment open."""
        with pytest.raises(InvalidParameterError, match="settlement_date"):
            loaded.settle(CONTRACT, 1, settlement_date)

        installment = loaded.get(CONTRACT, 1)
        assert installment.settled is False
        assert installment.settlement_date is None
        assert not loaded.has_settled(CONTRACT)

    def test_unsettle_restores_previous_state(self, loaded: InMemoryLedger) -> None:
        """Test settle followed by unsettle is a no-op on the record."""
        before = loaded.get(CONTRACT, 2)

        loaded.settle(CONTRACT, 2, date(2024, 3, 15), entry_id="LAN-000002")
        after = loaded.unsettle(CONTRACT, 2)

        assert after == before
        assert loaded.get(CONTRACT, 2) == before

    def test_unsettle_open_installment(self, loaded: InMemoryLedger) -> None:
        """Test reopening an open installment fails."""
        with pytest.raises(InstallmentNotFoundError, match="not settled"):
            loaded.unsettle(CONTRACT, 1)

    def test_unsettle_missing(self, loaded: InMemoryLedger) -> None:
        """Test reopening an unknown installment fails."""
        with pytest.raises(InstallmentNotFoundError):
            loaded.unsettle(CONTRACT, 42)


class TestPurgeAndReplace:
    """Tests for purge_unsettled and replace_unsettled."""

    def test_purge_keeps_settled(self, loaded: InMemoryLedger) -> None:
        """Test purging removes only open installments."""
        loaded.settle(CONTRACT, 1, date(2024, 2, 15))
        loaded.settle(CONTRACT, 2, date(2024, 3, 15))

        assert loaded.purge_unsettled(CONTRACT) == 10
        assert [i.number for i in loaded.list_installments(CONTRACT)] == [1, 2]

    def test_purge_empty_contract(self, ledger: InMemoryLedger) -> None:
        """Test purging a contract without installments."""
        assert ledger.purge_unsettled("nothing-here") == 0

    def test_replace_unsettled(self, loaded: InMemoryLedger) -> None:
        """Test open installments are swapped for the new batch."""
        settled = loaded.settle(CONTRACT, 1, date(2024, 2, 15))
        new = calculate_sac(Money("110000.00"), Decimal("12"), 5, 0, Decimal("0"), date(2024, 1, 15), first_number=2)

        purged = loaded.replace_unsettled(CONTRACT, new)

        installments = loaded.list_installments(CONTRACT)
        assert purged == 11
        assert [i.number for i in installments] == [1, 2, 3, 4, 5, 6]
        assert installments[0] == settled

    def test_replace_colliding_with_settled_deletes_nothing(
        self, loaded: InMemoryLedger, rows: list[ScheduledInstallment]
    ) -> None:
        """Test a new number equal to a settled one is refused up front."""
        loaded.settle(CONTRACT, 3, date(2024, 4, 15))

        with pytest.raises(DuplicateInstallmentNumberError, match=r"\[3\]"):
            loaded.replace_unsettled(CONTRACT, rows)

        assert len(loaded.list_installments(CONTRACT)) == 12


class TestReads:
    """Tests for read operations."""

    def test_list_is_ordered_copy(self, loaded: InMemoryLedger) -> None:
        """Test callers cannot mutate ledger state through reads."""
        installments = loaded.list_installments(CONTRACT)
        installments[0].settled = True

        assert [i.number for i in installments] == list(range(1, 13))
        assert loaded.get(CONTRACT, 1).settled is False

    def test_get_missing(self, loaded: InMemoryLedger) -> None:
        """Test get of unknown installment."""
        with pytest.raises(InstallmentNotFoundError):
            loaded.get(CONTRACT, 0)

    def test_settled_and_unsettled(self, loaded: InMemoryLedger) -> None:
        """Test state filters."""
        loaded.settle(CONTRACT, 1, date(2024, 2, 15))

        assert [i.number for i in loaded.settled_installments(CONTRACT)] == [1]
        assert len(loaded.unsettled_installments(CONTRACT)) == 11

    def test_summary(self, loaded: InMemoryLedger) -> None:
        """Test summary counts."""
        loaded.settle(CONTRACT, 1, date(2024, 2, 15))

        assert loaded.summary() == {"contracts": 1, "installments": 12, "settled": 1, "open": 11}

    def test_total_amount(self, loaded: InMemoryLedger) -> None:
        """Test installment total."""
        first = loaded.get(CONTRACT, 1)

        assert first.total_amount == Money("11200.00")


class TestContractLock:
    """Tests for the per-contract lock."""

    def test_lock_is_exclusive(self, ledger: InMemoryLedger) -> None:
        """Test a second holder times out with a retriable error."""
        with ledger.contract_lock(CONTRACT):
            with pytest.raises(ConcurrentModificationError):
                with ledger.contract_lock(CONTRACT):
                    pass

    def test_lock_released(self, ledger: InMemoryLedger) -> None:
        """Test the lock can be taken again after release."""
        with ledger.contract_lock(CONTRACT):
            pass
        with ledger.contract_lock(CONTRACT):
            pass

    def test_locks_are_per_contract(self, ledger: InMemoryLedger) -> None:
        """Test different contracts do not block each other."""
        with ledger.contract_lock(CONTRACT):
            with ledger.contract_lock("mutuo-test-002"):
                pass


class TestSubscribers:
    """Tests for lifecycle events."""

    def test_events_per_mutation(self, ledger: InMemoryLedger, rows: list[ScheduledInstallment]) -> None:
        """Test each mutated installment produces one event."""
        events: list[Event] = []
        ledger.subscribe(events.append)

        ledger.append(CONTRACT, rows[:3])
        ledger.settle(CONTRACT, 1, date(2024, 2, 15))
        ledger.unsettle(CONTRACT, 1)
        ledger.purge_unsettled(CONTRACT)

        assert [e.event_type for e in events] == (
            ["installment.created"] * 3
            + ["installment.settled", "installment.unsettled"]
            + ["installment.deleted"] * 3
        )
        assert all(e.subject == CONTRACT for e in events)

    def test_failed_mutation_emits_nothing(self, loaded: InMemoryLedger) -> None:
        """Test errors do not publish events."""
        events: list[Event] = []
        loaded.subscribe(events.append)

        with pytest.raises(InstallmentNotFoundError):
            loaded.settle(CONTRACT, 99, date(2024, 2, 15))

        assert events == []
