"""Sample loan contracts and generation requests."""

from datetime import date, timedelta
from decimal import Decimal

from mutuos.generators.base import BaseGenerator
from mutuos.models.contract import LoanContract
from mutuos.models.enums import AmortizationMethod, ContractStatus, RateIndex
from mutuos.money import Money
from mutuos.schedule.parameters import ScheduleParameters


class ContractGenerator(BaseGenerator):
    """Generate realistic intercompany and personal mútuo contracts."""

    # Annual spread ranges (percent) by reference index
    SPREADS = {
        RateIndex.CDI: (0.5, 4.0),
        RateIndex.IPCA: (4.0, 9.0),
        RateIndex.SELIC: (0.5, 3.0),
        RateIndex.DI: (0.5, 4.0),
        RateIndex.IGPM: (5.0, 10.0),
        RateIndex.OUTRO: (6.0, 24.0),
    }

    INSTALLMENT_COUNTS = [6, 12, 18, 24, 36, 48, 60]

    def generate(self, reference_date: date | None = None) -> LoanContract:
        """Generate a contract.

        Parameters
        ----------
        reference_date : date | None
            Contracts start up to two years before this date (today by
            default).

        Returns
        -------
        LoanContract
            Generated contract.
        """
        reference_date = reference_date or date.today()
        rate_index = self.random.choice(list(RateIndex))
        low, high = self.SPREADS[rate_index]

        # Intercompany loans run between two companies and are larger
        intercompany = self.random.random() < 0.7
        if intercompany:
            principal = Decimal(self.random.randint(50, 5000) * 1000)
            borrower_id = self.fake.cnpj()
            lender_id = self.fake.cnpj()
        else:
            principal = Decimal(self.random.randint(500, 20000) * 10)
            borrower_id = self.fake.cpf()
            lender_id = self.fake.cnpj()

        # Some contracts are interest-free (annual rate 0)
        if self.random.random() < 0.1:
            annual_rate = Decimal("0")
        else:
            annual_rate = Decimal(str(round(self.random.uniform(low, high), 2)))

        return LoanContract(
            contract_id=self.fake.uuid4(),
            principal=Money(principal),
            annual_rate=annual_rate,
            start_date=reference_date - timedelta(days=self.random.randint(0, 730)),
            grace_months=self.random.choice([0, 0, 0, 1, 3, 6]),
            status=ContractStatus.ACTIVE,
            rate_index=rate_index,
            borrower_id=borrower_id,
            lender_id=lender_id,
            contract_number=f"MUT-{self.random.randint(1, 9999):04d}/{reference_date.year}",
            notes=self.fake.sentence(nb_words=8) if self.random.random() < 0.3 else None,
        )

    def parameters_for(self, contract: LoanContract) -> ScheduleParameters:
        """Generate a valid generation request for ``contract``."""
        count = self.random.choice([c for c in self.INSTALLMENT_COUNTS if c > contract.grace_months])
        return ScheduleParameters.for_contract(
            contract,
            installment_count=count,
            method=self.random.choice(list(AmortizationMethod)),
            tax_rate_percent=self.random.choice([Decimal("0"), Decimal("0.38"), Decimal("1.5")]),
        )
