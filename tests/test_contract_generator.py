"""Tests for the Faker-based contract generator."""

from datetime import date

import pytest

from mutuos.generators.contract import ContractGenerator
from mutuos.models.enums import ContractStatus
from mutuos.money import Money
from mutuos.schedule.generator import ScheduleGenerator
from mutuos.store.ledger import InMemoryLedger

REFERENCE = date(2024, 6, 1)


class TestContractGenerator:
    """Tests for ContractGenerator."""

    def test_generate(self, seed: int) -> None:
        """Test generated contracts are valid inputs."""
        contract = ContractGenerator(seed=seed).generate(reference_date=REFERENCE)

        assert contract.contract_id
        assert contract.principal > Money.zero()
        assert contract.annual_rate >= 0
        assert contract.start_date <= REFERENCE
        assert contract.grace_months >= 0
        assert contract.status == ContractStatus.ACTIVE
        assert contract.contract_number.startswith("MUT-")

    def test_reproducible(self, seed: int) -> None:
        """Test the same seed gives the same contracts."""
        first_gen = ContractGenerator(seed=seed)
        second_gen = ContractGenerator(seed=seed)

        first = [first_gen.generate(REFERENCE) for _ in range(3)]
        second = [second_gen.generate(REFERENCE) for _ in range(3)]

        assert first == second

    def test_parameters_valid(self, seed: int) -> None:
        """Test generated parameters pass validation."""
        gen = ContractGenerator(seed=seed)

        for _ in range(20):
            contract = gen.generate(REFERENCE)
            params = gen.parameters_for(contract)

            params.validate(contract)
            assert params.grace_months == contract.grace_months
            assert params.installment_count > params.grace_months


class TestRandomizedConservation:
    """Randomized checks over generated contracts."""

    @pytest.mark.parametrize("seed", [1, 7, 42, 2024])
    def test_principal_conserved(self, seed: int) -> None:
        """Test every generated schedule repays exactly the principal."""
        gen = ContractGenerator(seed=seed)
        engine = ScheduleGenerator()

        for _ in range(25):
            contract = gen.generate(REFERENCE)
            schedule = engine.simulate(contract, gen.parameters_for(contract))

            assert schedule.total_principal == contract.principal
            assert all(not i.principal_amount.is_negative for i in schedule.installments)
            dates = [i.due_date for i in schedule.installments]
            assert dates == sorted(set(dates))

    def test_generated_portfolio(self, seed: int) -> None:
        """Test a whole generated portfolio persists and settles cleanly."""
        gen = ContractGenerator(seed=seed)
        ledger = InMemoryLedger()
        engine = ScheduleGenerator(ledger)

        for _ in range(10):
            contract = gen.generate(REFERENCE)
            with ledger.contract_lock(contract.contract_id):
                engine.generate(contract, gen.parameters_for(contract))
            first = ledger.list_installments(contract.contract_id)[0]
            ledger.settle(contract.contract_id, first.number, first.due_date)

        assert ledger.summary()["contracts"] == 10
        assert ledger.summary()["settled"] == 10
