"""Schedule generation parameters and their validation."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from mutuos.exceptions import InvalidParameterError
from mutuos.models.contract import LoanContract
from mutuos.models.enums import AmortizationMethod
from mutuos.money import to_decimal


@dataclass
class ScheduleParameters:
    """Input bundle for one generation request."""

    installment_count: int
    grace_months: int = 0
    method: AmortizationMethod = AmortizationMethod.PRICE
    tax_rate_percent: Decimal = Decimal("0")
    replace_unsettled: bool = False

    @classmethod
    def for_contract(
        cls,
        contract: LoanContract,
        installment_count: int,
        method: AmortizationMethod | str = AmortizationMethod.PRICE,
        tax_rate_percent: Decimal | int | str = Decimal("0"),
        replace_unsettled: bool = False,
    ) -> ScheduleParameters:
        """Build parameters using the contract's grace period."""
        return cls(
            installment_count=installment_count,
            grace_months=contract.grace_months,
            method=method,
            tax_rate_percent=tax_rate_percent,
            replace_unsettled=replace_unsettled,
        )

    def validate(self, contract: LoanContract) -> None:
        """Validate against ``contract``. See ``validate_parameters``."""
        validate_parameters(self, contract)


def coerce_method(method: AmortizationMethod | str) -> AmortizationMethod:
    """Return ``method`` as an ``AmortizationMethod``.

    Raises
    ------
    InvalidParameterError
        If the value is not PRICE or SAC.
    """
    if isinstance(method, AmortizationMethod):
        return method
    try:
        return AmortizationMethod(str(method).upper())
    except ValueError:
        raise InvalidParameterError(
            f"Unsupported amortization method: {method!r} (expected PRICE or SAC)"
        ) from None


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_parameters(parameters: ScheduleParameters, contract: LoanContract) -> None:
    """Validate a generation request. Pure, no side effects.

    ``grace_months == installment_count`` is accepted here; the calculator
    rejects it with ``ArithmeticDomainError`` since it is a degenerate
    schedule rather than malformed input.

    Parameters
    ----------
    parameters : ScheduleParameters
        Requested schedule terms.
    contract : LoanContract
        Contract the schedule belongs to.

    Raises
    ------
    InvalidParameterError
        On the first failed rule.
    """
    if not _is_int(parameters.installment_count) or parameters.installment_count < 1:
        raise InvalidParameterError(
            f"installment_count must be an integer >= 1, got {parameters.installment_count!r}"
        )

    if not _is_int(parameters.grace_months) or parameters.grace_months < 0:
        raise InvalidParameterError(
            f"grace_months must be an integer >= 0, got {parameters.grace_months!r}"
        )

    if parameters.grace_months > parameters.installment_count:
        raise InvalidParameterError(
            f"grace_months ({parameters.grace_months}) cannot exceed "
            f"installment_count ({parameters.installment_count})"
        )

    coerce_method(parameters.method)

    try:
        tax_rate = to_decimal(parameters.tax_rate_percent)
    except (TypeError, ValueError) as exc:
        raise InvalidParameterError(f"tax_rate_percent is not a number: {exc}") from exc
    if tax_rate < 0:
        raise InvalidParameterError(f"tax_rate_percent must be >= 0, got {tax_rate}")

    try:
        principal = to_decimal(contract.principal)
        annual_rate = to_decimal(contract.annual_rate)
    except (TypeError, ValueError) as exc:
        raise InvalidParameterError(f"Contract {contract.contract_id} has non-numeric terms: {exc}") from exc

    if principal <= 0:
        raise InvalidParameterError(
            f"Contract {contract.contract_id} principal must be > 0, got {principal}"
        )
    if principal != principal.quantize(Decimal("0.01")):
        raise InvalidParameterError(
            f"Contract {contract.contract_id} principal has more than 2 decimal places: {principal}"
        )
    if annual_rate < 0:
        raise InvalidParameterError(
            f"Contract {contract.contract_id} annual_rate must be >= 0, got {annual_rate}"
        )
