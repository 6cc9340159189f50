"""Schedule generation: validate, calculate, reconcile into the ledger."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from mutuos.exceptions import ArithmeticDomainError, ConfigurationError
from mutuos.models.contract import LoanContract
from mutuos.models.enums import AmortizationMethod
from mutuos.models.installment import ScheduledInstallment
from mutuos.money import Money, to_decimal
from mutuos.schedule.calculator import calculate_schedule
from mutuos.schedule.parameters import ScheduleParameters, coerce_method, validate_parameters
from mutuos.store.ledger import InstallmentLedger

logger = logging.getLogger(__name__)


@dataclass
class GeneratedSchedule:
    """Result of a generation or a dry run."""

    contract_id: str
    method: AmortizationMethod
    installments: list[ScheduledInstallment]
    purged: int = 0
    persisted: bool = False

    @property
    def count(self) -> int:
        return len(self.installments)

    @property
    def total_principal(self) -> Money:
        return Money.sum(i.principal_amount for i in self.installments)

    @property
    def total_interest(self) -> Money:
        return Money.sum(i.interest_amount for i in self.installments)

    @property
    def total_tax(self) -> Money:
        return Money.sum(i.tax_amount for i in self.installments)

    @property
    def total_amount(self) -> Money:
        """Principal + interest + tax over the whole schedule."""
        return Money.sum(i.total_amount for i in self.installments)


class ScheduleGenerator:
    """Generate installment schedules for loan contracts.

    ``simulate`` previews and ``generate`` persists; both go through the same
    calculation so a preview always matches what would be written.

    Regenerating with ``replace_unsettled`` while some installments are
    settled amortizes only what the settled installments have not repaid,
    numbering the new installments after the highest settled number. Settled
    numbers are never reused and gaps left by purged installments stay.

    The generator assumes the caller holds ``ledger.contract_lock`` when
    concurrent generation for the same contract is possible.
    """

    def __init__(self, ledger: InstallmentLedger | None = None) -> None:
        self.ledger = ledger

    def _calculate(self, contract: LoanContract, parameters: ScheduleParameters) -> list[ScheduledInstallment]:
        validate_parameters(parameters, contract)

        principal = Money(to_decimal(contract.principal))
        first_number = 1

        if parameters.replace_unsettled and self.ledger is not None:
            settled = self.ledger.settled_installments(contract.contract_id)
            if settled:
                principal = principal - Money.sum(i.principal_amount for i in settled)
                first_number = max(i.number for i in settled) + 1
                logger.info(
                    "Contract %s has %d settled installments; regenerating %s from number %d",
                    contract.contract_id,
                    len(settled),
                    principal,
                    first_number,
                )
                if principal.is_negative or principal.is_zero:
                    raise ArithmeticDomainError(
                        f"Contract {contract.contract_id} principal is fully repaid by settled installments"
                    )

        return calculate_schedule(
            parameters.method,
            principal,
            contract.annual_rate,
            parameters.installment_count,
            parameters.grace_months,
            parameters.tax_rate_percent,
            contract.start_date,
            first_number=first_number,
        )

    def simulate(self, contract: LoanContract, parameters: ScheduleParameters) -> GeneratedSchedule:
        """Compute the schedule without writing anything (dry run).

        Raises
        ------
        InvalidParameterError
            If the parameters fail validation.
        ArithmeticDomainError
            If the terms cannot be amortized.
        """
        rows = self._calculate(contract, parameters)
        return GeneratedSchedule(
            contract_id=contract.contract_id,
            method=coerce_method(parameters.method),
            installments=rows,
        )

    def generate(self, contract: LoanContract, parameters: ScheduleParameters) -> GeneratedSchedule:
        """Compute the schedule and persist it.

        The schedule is fully computed before the ledger is touched, so a
        failed generation leaves existing installments as they were.

        Parameters
        ----------
        contract : LoanContract
            Contract snapshot.
        parameters : ScheduleParameters
            Generation request.

        Returns
        -------
        GeneratedSchedule
            Written installments, their totals and how many were purged.

        Raises
        ------
        InvalidParameterError
            Bad input; fix and resubmit.
        ArithmeticDomainError
            Degenerate terms; fix and resubmit.
        DuplicateInstallmentNumberError
            Appending over existing installments without ``replace_unsettled``.
        ConcurrentModificationError
            Lock contention in the persistence layer; retry.
        """
        if self.ledger is None:
            raise ConfigurationError("ScheduleGenerator.generate requires a ledger")

        rows = self._calculate(contract, parameters)

        if parameters.replace_unsettled:
            purged = self.ledger.replace_unsettled(contract.contract_id, rows)
        else:
            self.ledger.append(contract.contract_id, rows)
            purged = 0

        schedule = GeneratedSchedule(
            contract_id=contract.contract_id,
            method=coerce_method(parameters.method),
            installments=rows,
            purged=purged,
            persisted=True,
        )
        logger.info(
            "Generated %d %s installments for contract %s (total %s, %d purged)",
            schedule.count,
            schedule.method.value,
            contract.contract_id,
            schedule.total_amount,
            purged,
        )
        return schedule
