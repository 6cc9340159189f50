"""JSON file sink: batch snapshots and an append-only event log."""

import json
import logging
from pathlib import Path
from typing import Any

from mutuos.exceptions import SinkError
from mutuos.sinks.serialization import to_dict

logger = logging.getLogger(__name__)


class JsonFileSink:
    """Write records under one output directory.

    ``write_batch`` replaces ``<entity_type>.json`` with a JSON array;
    ``send`` appends one line to ``<topic>.jsonl`` (dots in the topic become
    underscores), so a ledger subscriber leaves a replayable event log.
    """

    def __init__(self, output_dir: str | Path, pretty: bool = False) -> None:
        """Create the sink and its directory.

        Parameters
        ----------
        output_dir : str | Path
            Target directory, created if missing.
        pretty : bool
            Indent batch files.

        Raises
        ------
        SinkError
            If the directory cannot be created.
        """
        self.output_dir = Path(output_dir)
        self.pretty = pretty
        self.totals: dict[str, int] = {}
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise SinkError(f"Cannot create output directory {self.output_dir}: {exc}") from exc

    def path_for_topic(self, topic: str) -> Path:
        return self.output_dir / f"{topic.replace('.', '_')}.jsonl"

    def write_batch(self, entity_type: str, records: list[Any]) -> None:
        path = self.output_dir / f"{entity_type}.json"
        payload = [to_dict(record) for record in records]

        with open(path, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2 if self.pretty else None, ensure_ascii=False)

        self.totals[entity_type] = len(records)
        logger.debug("Wrote %d %s to %s", len(records), entity_type, path)

    def send(self, topic: str, record: Any, key: str | None = None) -> None:
        """Append ``record`` to the topic's JSON Lines log (``key`` is unused)."""
        with open(self.path_for_topic(topic), "a", encoding="utf-8") as f:
            f.write(json.dumps(to_dict(record), ensure_ascii=False))
            f.write("\n")
        self.totals[topic] = self.totals.get(topic, 0) + 1

    def close(self) -> None:
        logger.info("JSON output in %s", self.output_dir)
        for name, count in sorted(self.totals.items()):
            logger.info("  %s: %d records", name, count)
