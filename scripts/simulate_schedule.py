#!/usr/bin/env python3
"""Preview an amortization schedule without persisting anything.

Example:
    python scripts/simulate_schedule.py --principal 120000 --rate 12 \
        --installments 12 --method SAC --start 2024-01-15
"""

import argparse
import sys
from datetime import date
from decimal import Decimal
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from mutuos.exceptions import MutuosError
from mutuos.logging import setup_logging
from mutuos.models.contract import LoanContract
from mutuos.money import Money
from mutuos.schedule.generator import ScheduleGenerator
from mutuos.schedule.parameters import ScheduleParameters
from mutuos.sinks.console import ConsoleSink


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Simulate a PRICE or SAC installment schedule")
    parser.add_argument("--principal", required=True, help="Contract principal (e.g., 120000.00)")
    parser.add_argument("--rate", default="0", help="Annual rate in percent (default: 0)")
    parser.add_argument("--installments", type=int, required=True, help="Number of installments")
    parser.add_argument("--grace", type=int, default=0, help="Interest-only months (default: 0)")
    parser.add_argument("--method", default="PRICE", help="PRICE or SAC (default: PRICE)")
    parser.add_argument("--tax", default="0", help="Flat tax percent per installment (default: 0)")
    parser.add_argument(
        "--start",
        type=date.fromisoformat,
        default=date.today(),
        help="Contract start date, YYYY-MM-DD (default: today)",
    )
    parser.add_argument("--json", action="store_true", help="Print rows as JSON lines instead of a table")
    parser.add_argument("--log-level", default="WARNING", help="Log level (default: WARNING)")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Run the simulation and print the schedule."""
    args = parse_args(argv)
    setup_logging(level=args.log_level)

    try:
        contract = LoanContract(
            contract_id="simulation",
            principal=Money(Decimal(args.principal)),
            annual_rate=Decimal(args.rate),
            start_date=args.start,
            grace_months=args.grace,
        )
        parameters = ScheduleParameters.for_contract(
            contract,
            installment_count=args.installments,
            method=args.method,
            tax_rate_percent=Decimal(args.tax),
        )
        schedule = ScheduleGenerator().simulate(contract, parameters)
    except (MutuosError, ArithmeticError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    sink = ConsoleSink()
    if args.json:
        for row in schedule.installments:
            sink.send("schedule", row, key=str(row.number))
    else:
        sink.write_batch("installments", schedule.installments)

    print("\n" + "=" * 60)
    print(f"Method:          {schedule.method.value}")
    print(f"Installments:    {schedule.count}")
    print(f"Total principal: {schedule.total_principal}")
    print(f"Total interest:  {schedule.total_interest}")
    print(f"Total tax:       {schedule.total_tax}")
    print(f"Total amount:    {schedule.total_amount}")
    print("=" * 60)
    return 0


if __name__ == "__main__":
    sys.exit(main())
