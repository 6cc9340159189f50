"""PRICE and SAC amortization schedules.

Pure functions: contract terms in, list of ``ScheduledInstallment`` out.
No I/O and no ledger access, so the same code backs dry runs and persisted
generation.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Callable

from dateutil.relativedelta import relativedelta

from mutuos.exceptions import ArithmeticDomainError
from mutuos.models.enums import AmortizationMethod
from mutuos.models.installment import ScheduledInstallment
from mutuos.money import Money, to_decimal
from mutuos.schedule.parameters import coerce_method

logger = logging.getLogger(__name__)

# Principal slice for a regular (non-grace, non-final) installment,
# given the interest already computed for it.
SliceFn = Callable[[Money], Money]


def monthly_rate(annual_rate: Decimal | int | str) -> Decimal:
    """Convert an annual percentage to a monthly fraction (simple division)."""
    return to_decimal(annual_rate) / 12 / 100


def due_date_for(start_date: date, number: int) -> date:
    """Due date of installment ``number``: ``number`` calendar months after start.

    Computed from ``start_date`` every time so end-of-month clamping never
    accumulates (Jan 31 -> Feb 29 -> Mar 31).
    """
    return start_date + relativedelta(months=number)


def _build_schedule(
    principal: Money,
    rate: Decimal,
    installment_count: int,
    grace_months: int,
    tax_rate_percent: Decimal,
    start_date: date,
    first_number: int,
    regular_slice: SliceFn,
) -> list[ScheduledInstallment]:
    tax_fraction = tax_rate_percent / 100
    balance = principal
    rows: list[ScheduledInstallment] = []

    for k in range(1, installment_count + 1):
        number = first_number + k - 1
        interest = balance.multiply(rate)

        if k <= grace_months:
            principal_amount = Money.zero()
        elif k == installment_count:
            # Final installment absorbs any rounding residue
            principal_amount = balance
        else:
            # Rounded-up slices of a tiny principal may run out early
            principal_amount = min(regular_slice(interest), balance)

        if principal_amount.is_negative:
            raise ArithmeticDomainError(
                f"Installment {number}: principal slice {principal_amount} "
                f"is inconsistent with outstanding balance {balance}"
            )
        balance = balance - principal_amount

        rows.append(
            ScheduledInstallment(
                number=number,
                due_date=due_date_for(start_date, number),
                principal_amount=principal_amount,
                interest_amount=interest,
                tax_amount=(principal_amount + interest).multiply(tax_fraction),
            )
        )

    return rows


def _normalize(
    principal: Money | Decimal | int | str,
    installment_count: int,
    grace_months: int,
    tax_rate_percent: Decimal | int | str,
) -> tuple[Money, int, Decimal]:
    principal = principal if isinstance(principal, Money) else Money(to_decimal(principal))
    if principal.is_negative or principal.is_zero:
        raise ArithmeticDomainError(f"Nothing to amortize: principal is {principal}")

    amortizing = installment_count - grace_months
    if amortizing <= 0:
        raise ArithmeticDomainError(
            f"No installments left to amortize principal: {installment_count} "
            f"installments with {grace_months} months of grace"
        )
    return principal, amortizing, to_decimal(tax_rate_percent)


def calculate_price(
    principal: Money | Decimal | int | str,
    annual_rate: Decimal | int | str,
    installment_count: int,
    grace_months: int,
    tax_rate_percent: Decimal | int | str,
    start_date: date,
    *,
    first_number: int = 1,
) -> list[ScheduledInstallment]:
    """Level-payment (Tabela Price) schedule.

    The payment ``PMT = P * i * (1+i)^n / ((1+i)^n - 1)`` is computed once,
    unrounded, with ``n = installment_count``. Each amortizing installment
    pays ``round(balance * i)`` of interest and ``round(PMT - interest)`` of
    principal, so principal + interest equals ``round(PMT)`` on every
    regular installment. With a zero rate ``PMT = P / (n - G)``.

    Parameters
    ----------
    principal : Money | Decimal | int | str
        Amount to amortize.
    annual_rate : Decimal | int | str
        Annual percentage (12 means 12% a.a.).
    installment_count : int
        Number of installments to produce.
    grace_months : int
        Leading installments that pay interest only.
    tax_rate_percent : Decimal | int | str
        Flat tax over principal + interest of each installment.
    start_date : date
        Contract start; installment ``k`` falls ``k`` months later.
    first_number : int
        Number of the first produced installment (regeneration continues
        after settled installments).

    Returns
    -------
    list[ScheduledInstallment]
        Ordered schedule rows.

    Raises
    ------
    ArithmeticDomainError
        If no installment is left to amortize or a principal slice is negative.
    """
    principal, amortizing, tax_rate = _normalize(
        principal, installment_count, grace_months, tax_rate_percent
    )
    rate = monthly_rate(annual_rate)

    if rate == 0:
        pmt = principal.amount / amortizing
    else:
        factor = (1 + rate) ** installment_count
        pmt = principal.amount * rate * factor / (factor - 1)

    logger.debug("PRICE payment for %s over %d installments: %s", principal, installment_count, pmt)

    return _build_schedule(
        principal,
        rate,
        installment_count,
        grace_months,
        tax_rate,
        start_date,
        first_number,
        lambda interest: Money.round(pmt - interest.amount),
    )


def calculate_sac(
    principal: Money | Decimal | int | str,
    annual_rate: Decimal | int | str,
    installment_count: int,
    grace_months: int,
    tax_rate_percent: Decimal | int | str,
    start_date: date,
    *,
    first_number: int = 1,
) -> list[ScheduledInstallment]:
    """Constant-amortization (SAC) schedule.

    Every amortizing installment repays ``round(P / (n - G))`` of principal;
    interest is ``round(balance * i)`` and shrinks as the balance falls.
    Arguments and errors are the same as ``calculate_price``.
    """
    principal, amortizing, tax_rate = _normalize(
        principal, installment_count, grace_months, tax_rate_percent
    )
    rate = monthly_rate(annual_rate)
    amortization = Money.round(principal.amount / amortizing)

    logger.debug("SAC amortization for %s over %d installments: %s", principal, amortizing, amortization)

    return _build_schedule(
        principal,
        rate,
        installment_count,
        grace_months,
        tax_rate,
        start_date,
        first_number,
        lambda interest: amortization,
    )


CALCULATORS = {
    AmortizationMethod.PRICE: calculate_price,
    AmortizationMethod.SAC: calculate_sac,
}


def calculate_schedule(
    method: AmortizationMethod | str,
    principal: Money | Decimal | int | str,
    annual_rate: Decimal | int | str,
    installment_count: int,
    grace_months: int,
    tax_rate_percent: Decimal | int | str,
    start_date: date,
    *,
    first_number: int = 1,
) -> list[ScheduledInstallment]:
    """Dispatch to the calculator for ``method``."""
    calculator = CALCULATORS[coerce_method(method)]
    return calculator(
        principal,
        annual_rate,
        installment_count,
        grace_months,
        tax_rate_percent,
        start_date,
        first_number=first_number,
    )
