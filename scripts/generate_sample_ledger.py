#!/usr/bin/env python3
"""Generate a sample installment ledger for validation and demos.

Builds Faker contracts, generates their schedules into an in-memory
ledger, settles the installments that fell due before the reference date
(leaving a few behind as overdue) and writes:
- contracts.json, installments.json, contract_kpis.json, portfolio_kpis.json
- mutuos_installments.jsonl with every lifecycle event

With --kafka the lifecycle events also go to a Kafka topic keyed by contract.
"""

import argparse
import logging
import random
import sys
from datetime import date, timedelta
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from mutuos.config import MutuosConfig
from mutuos.events import SinkSubscriber
from mutuos.generators.contract import ContractGenerator
from mutuos.logging import setup_logging_from_config
from mutuos.reporting.aggregates import AggregateReporter
from mutuos.schedule.generator import ScheduleGenerator
from mutuos.sinks.json_file import JsonFileSink
from mutuos.sinks.kafka import KafkaSink
from mutuos.store.ledger import InMemoryLedger

logger = logging.getLogger(__name__)


def settle_past_due(
    ledger: InMemoryLedger,
    contract_id: str,
    as_of: date,
    rng: random.Random,
    miss_ratio: float,
) -> int:
    """Settle installments due before ``as_of``, skipping some at random.

    Returns
    -------
    int
        Number of installments settled.
    """
    settled = 0
    for installment in ledger.unsettled_installments(contract_id):
        if installment.due_date >= as_of or rng.random() < miss_ratio:
            continue
        paid_on = min(as_of, installment.due_date + timedelta(days=rng.randint(-5, 10)))
        ledger.settle(contract_id, installment.number, paid_on, entry_id=f"LAN-{rng.randint(1, 999999):06d}")
        settled += 1
    return settled


def main() -> None:
    """Generate the sample ledger."""
    config = MutuosConfig.from_env()

    parser = argparse.ArgumentParser(description="Generate a sample mútuo installment ledger")
    parser.add_argument("--contracts", type=int, default=20, help="Number of contracts (default: 20)")
    parser.add_argument("--seed", type=int, default=42, help="Random seed (default: 42)")
    parser.add_argument(
        "--output",
        type=Path,
        default=config.output.json_output_dir,
        help="Output directory (default: $OUTPUT_DIR or ./output)",
    )
    parser.add_argument(
        "--as-of",
        type=date.fromisoformat,
        default=date.today(),
        help="Reference date, YYYY-MM-DD (default: today)",
    )
    parser.add_argument(
        "--miss-ratio",
        type=float,
        default=0.05,
        help="Chance a past-due installment is left unpaid (default: 0.05)",
    )
    parser.add_argument("--kafka", action="store_true", help="Also publish events to Kafka")
    args = parser.parse_args()

    setup_logging_from_config(config)

    ledger = InMemoryLedger()
    json_sink = JsonFileSink(args.output, pretty=config.output.pretty_json)
    ledger.subscribe(SinkSubscriber(json_sink, topic=config.kafka.topic))

    kafka_sink = None
    if args.kafka:
        kafka_sink = KafkaSink(config.kafka)
        ledger.subscribe(SinkSubscriber(kafka_sink, topic=config.kafka.topic))

    contract_gen = ContractGenerator(seed=args.seed)
    generator = ScheduleGenerator(ledger)
    rng = random.Random(args.seed)

    contracts = []
    total_settled = 0
    for _ in range(args.contracts):
        contract = contract_gen.generate(reference_date=args.as_of)
        parameters = contract_gen.parameters_for(contract)
        with ledger.contract_lock(contract.contract_id):
            generator.generate(contract, parameters)
        total_settled += settle_past_due(ledger, contract.contract_id, args.as_of, rng, args.miss_ratio)
        contracts.append(contract)

    reporter = AggregateReporter(ledger, due_soon_window_days=config.engine.due_soon_window_days)
    installments = [i for c in contracts for i in ledger.list_installments(c.contract_id)]
    contract_kpis = [reporter.contract_kpis(c.contract_id, args.as_of) for c in contracts]
    portfolio = reporter.portfolio_kpis(args.as_of, [c.contract_id for c in contracts])

    json_sink.write_batch("contracts", contracts)
    json_sink.write_batch("installments", installments)
    json_sink.write_batch("contract_kpis", contract_kpis)
    json_sink.write_batch("portfolio_kpis", [portfolio])
    json_sink.close()
    if kafka_sink is not None:
        kafka_sink.close()

    summary = ledger.summary()
    logger.info(
        "Generated %d contracts, %d installments (%d settled this run, %d open)",
        summary["contracts"],
        summary["installments"],
        total_settled,
        summary["open"],
    )
    logger.info(
        "Portfolio as of %s: outstanding %s, overdue %d (%s), due soon %d (%s)",
        args.as_of,
        portfolio.outstanding_balance,
        portfolio.overdue_count,
        portfolio.overdue_amount,
        portfolio.due_soon_count,
        portfolio.due_soon_amount,
    )


if __name__ == "__main__":
    main()
