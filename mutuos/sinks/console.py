"""Console sink for local runs and dry-run previews."""

import json
import sys
from typing import IO, Any, Sequence

from mutuos.models.installment import Installment, ScheduledInstallment
from mutuos.sinks.serialization import to_dict

TABLE_HEADER = f"{'#':>4}  {'Due date':<10}  {'Principal':>15}  {'Interest':>13}  {'Tax':>11}  {'Total':>15}"


def format_schedule_table(rows: Sequence[ScheduledInstallment | Installment]) -> str:
    """Render installments as a fixed-width table, settled rows flagged."""
    lines = [TABLE_HEADER, "-" * len(TABLE_HEADER)]
    for row in rows:
        flag = "  settled" if getattr(row, "settled", False) else ""
        lines.append(
            f"{row.number:>4}  {row.due_date.isoformat():<10}  {str(row.principal_amount):>15}  "
            f"{str(row.interest_amount):>13}  {str(row.tax_amount):>11}  {str(row.total_amount):>15}{flag}"
        )
    return "\n".join(lines)


class ConsoleSink:
    """Print records to a text stream (stdout by default).

    Batches of installments print as a table; anything else prints as JSON.
    """

    def __init__(
        self,
        pretty: bool = True,
        max_records: int | None = None,
        stream: IO[str] | None = None,
    ) -> None:
        """Create the sink.

        Parameters
        ----------
        pretty : bool
            Indent JSON output.
        max_records : int | None
            Records shown per batch; the rest are only counted.
        stream : IO[str] | None
            Output stream, stdout when omitted.
        """
        self.pretty = pretty
        self.max_records = max_records
        self.stream = stream or sys.stdout
        self.totals: dict[str, int] = {}

    def _print(self, text: str) -> None:
        print(text, file=self.stream)

    def _json(self, record: Any) -> str:
        return json.dumps(to_dict(record), indent=2 if self.pretty else None, ensure_ascii=False)

    def write_batch(self, entity_type: str, records: list[Any]) -> None:
        shown = records if self.max_records is None else records[: self.max_records]

        self._print(f"\n== {entity_type}: {len(records)} records ==")
        if shown and all(isinstance(r, (ScheduledInstallment, Installment)) for r in shown):
            self._print(format_schedule_table(shown))
        else:
            for record in shown:
                self._print(self._json(record))
        if len(shown) < len(records):
            self._print(f"({len(records) - len(shown)} more not shown)")

        self.totals[entity_type] = self.totals.get(entity_type, 0) + len(records)

    def send(self, topic: str, record: Any, key: str | None = None) -> None:
        """Print one record on a single line as ``[topic] key {json}``."""
        payload = json.dumps(to_dict(record), ensure_ascii=False)
        self._print(f"[{topic}] {key or '-'} {payload}")
        self.totals[topic] = self.totals.get(topic, 0) + 1

    def close(self) -> None:
        """Print how many records went through each entity or topic."""
        if not self.totals:
            return
        self._print("\n== console sink totals ==")
        for name, count in sorted(self.totals.items()):
            self._print(f"{name}: {count}")
