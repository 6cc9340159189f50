"""Tests for console, JSON file and Kafka sinks."""

import io
import json
import tempfile
from datetime import date
from pathlib import Path
from typing import Iterator
from unittest.mock import MagicMock, patch

import pytest

from mutuos.config import KafkaConfig
from mutuos.events import build_event
from mutuos.exceptions import SinkError
from mutuos.models.enums import EventType
from mutuos.models.installment import Installment, ScheduledInstallment
from mutuos.money import Money
from mutuos.sinks.console import TABLE_HEADER, ConsoleSink, format_schedule_table
from mutuos.sinks.json_file import JsonFileSink
from mutuos.sinks.kafka import DeliveryStats, KafkaSink, partition_key


def schedule_rows(count: int = 3) -> list[ScheduledInstallment]:
    return [
        ScheduledInstallment(n, date(2024, 1 + n, 15), Money("100.00"), Money("1.00"), Money("0.00"))
        for n in range(1, count + 1)
    ]


def make_installment() -> Installment:
    return Installment.from_scheduled("mutuo-test-001", schedule_rows(1)[0], "inst-001")


@pytest.fixture
def producer() -> Iterator[MagicMock]:
    """Patched confluent-kafka Producer instance."""
    with patch("mutuos.sinks.kafka.Producer") as producer_class:
        instance = producer_class.return_value
        instance.flush.return_value = 0
        yield instance


class TestConsoleSink:
    """Tests for ConsoleSink."""

    def test_init_default(self) -> None:
        """Test default initialization."""
        sink = ConsoleSink()

        assert sink.pretty is True
        assert sink.max_records is None
        assert sink.totals == {}

    def test_schedule_table(self) -> None:
        """Test installment rows render as a table."""
        table = format_schedule_table(schedule_rows(2))
        lines = table.splitlines()

        assert lines[0] == TABLE_HEADER
        assert len(lines) == 4
        assert "2024-02-15" in lines[2]
        assert lines[2].rstrip().endswith("101.00")

    def test_schedule_table_flags_settled(self) -> None:
        """Test settled installments are marked."""
        installment = make_installment()
        installment.settled = True

        assert format_schedule_table([installment]).endswith("settled")

    def test_write_batch_installments(self) -> None:
        """Test a batch of installments prints as a table."""
        stream = io.StringIO()
        sink = ConsoleSink(stream=stream)

        sink.write_batch("installments", schedule_rows())

        output = stream.getvalue()
        assert "== installments: 3 records ==" in output
        assert TABLE_HEADER in output
        assert sink.totals["installments"] == 3

    def test_write_batch_other_records(self) -> None:
        """Test non-installment records print as JSON."""
        stream = io.StringIO()
        sink = ConsoleSink(pretty=False, stream=stream)

        sink.write_batch("kpis", [{"outstanding_balance": Money("10.00")}])

        assert '{"outstanding_balance": "10.00"}' in stream.getvalue()

    def test_write_batch_max_records(self) -> None:
        """Test output is truncated to max_records."""
        stream = io.StringIO()
        sink = ConsoleSink(max_records=1, stream=stream)

        sink.write_batch("installments", schedule_rows())

        assert "(2 more not shown)" in stream.getvalue()
        assert sink.totals["installments"] == 3

    def test_send(self, capsys: pytest.CaptureFixture) -> None:
        """Test a single event line with topic and key on stdout."""
        sink = ConsoleSink()
        event = build_event(EventType.INSTALLMENT_SETTLED, make_installment())

        sink.send("mutuos.installments", event, key=event.subject)
        captured = capsys.readouterr()

        assert captured.out.startswith("[mutuos.installments] mutuo-test-001 {")
        assert "installment.settled" in captured.out

    def test_close_summary(self) -> None:
        """Test closing prints totals, and nothing when empty."""
        stream = io.StringIO()
        sink = ConsoleSink(stream=stream)
        sink.close()
        assert stream.getvalue() == ""

        sink.write_batch("installments", schedule_rows(2))
        sink.close()

        assert "installments: 2" in stream.getvalue()


class TestJsonFileSink:
    """Tests for JsonFileSink."""

    def test_init_creates_directory(self) -> None:
        """Test that init creates output directory."""
        with tempfile.TemporaryDirectory() as tmpdir:
            output_dir = Path(tmpdir) / "new_subdir"
            sink = JsonFileSink(output_dir)

            assert output_dir.exists()
            assert sink.pretty is False

    def test_init_failure(self) -> None:
        """Test unwritable output directory."""
        with patch("mutuos.sinks.json_file.Path.mkdir", side_effect=PermissionError("denied")):
            with pytest.raises(SinkError, match="denied"):
                JsonFileSink("/not/allowed")

    @pytest.mark.parametrize("pretty", [False, True])
    def test_write_batch(self, pretty: bool) -> None:
        """Test writing a batch to a JSON array file."""
        with tempfile.TemporaryDirectory() as tmpdir:
            sink = JsonFileSink(tmpdir, pretty=pretty)

            sink.write_batch("installments", schedule_rows())

            with open(Path(tmpdir) / "installments.json", encoding="utf-8") as f:
                data = json.load(f)

            assert len(data) == 3
            assert data[0]["due_date"] == "2024-02-15"
            assert data[2]["interest_amount"] == "1.00"
            assert sink.totals == {"installments": 3}

    def test_send_appends_jsonl(self) -> None:
        """Test events are appended one per line."""
        with tempfile.TemporaryDirectory() as tmpdir:
            sink = JsonFileSink(tmpdir)
            installment = make_installment()

            sink.send("mutuos.installments", build_event(EventType.INSTALLMENT_CREATED, installment))
            sink.send("mutuos.installments", build_event(EventType.INSTALLMENT_SETTLED, installment))
            sink.close()

            path = sink.path_for_topic("mutuos.installments")
            lines = path.read_text(encoding="utf-8").splitlines()

            assert path.name == "mutuos_installments.jsonl"
            assert [json.loads(line)["event_type"] for line in lines] == [
                "installment.created",
                "installment.settled",
            ]
            assert sink.totals["mutuos.installments"] == 2


class TestDeliveryStats:
    """Tests for DeliveryStats."""

    def test_rates(self) -> None:
        """Test success rate, pending and throughput."""
        stats = DeliveryStats(sent=12, delivered=8, failed=2, started_at=0.0, closed_at=4.0)

        assert stats.success_rate == 0.8
        assert stats.pending == 2
        assert stats.throughput == 3.0

    def test_empty(self) -> None:
        """Test edge cases without acknowledgements or close."""
        assert DeliveryStats().success_rate == 0.0
        assert DeliveryStats(sent=5).throughput == 0.0
        assert DeliveryStats(sent=5, started_at=2.0, closed_at=2.0).throughput == 0.0


class TestPartitionKey:
    """Tests for partition_key."""

    def test_event(self) -> None:
        """Test events are keyed by subject."""
        event = build_event(EventType.INSTALLMENT_CREATED, make_installment())

        assert partition_key(event) == "mutuo-test-001"

    def test_dataclass_and_dict(self) -> None:
        """Test installments and mappings use contract_id."""
        assert partition_key(make_installment()) == "mutuo-test-001"
        assert partition_key({"contract_id": "c-9"}) == "c-9"
        assert partition_key({"subject": "c-8"}) == "c-8"

    def test_no_key(self) -> None:
        """Test records without a contract are unkeyed."""
        assert partition_key(schedule_rows(1)[0]) is None
        assert partition_key({"id": 1}) is None
        assert partition_key("text") is None


class TestKafkaSink:
    """Tests for KafkaSink."""

    def test_init_with_string(self, producer: MagicMock) -> None:
        """Test initialization with bootstrap servers."""
        sink = KafkaSink("kafka:9092")

        assert sink.config.bootstrap_servers == "kafka:9092"
        assert sink.topic == "mutuos.installments"
        assert sink.producer is producer

    def test_init_with_config(self, producer: MagicMock) -> None:
        """Test initialization with KafkaConfig and topic override."""
        config = KafkaConfig(bootstrap_servers="kafka:9092", acks="1", topic="dev.mutuos")

        assert KafkaSink(config).topic == "dev.mutuos"
        assert KafkaSink(config, topic="other").topic == "other"

    def test_send_event(self, producer: MagicMock) -> None:
        """Test events carry key, JSON payload and event_type header."""
        sink = KafkaSink("localhost:9092")
        event = build_event(EventType.INSTALLMENT_SETTLED, make_installment())

        sink.send("mutuos.installments", event)

        kwargs = producer.produce.call_args[1]
        assert kwargs["topic"] == "mutuos.installments"
        assert kwargs["key"] == b"mutuo-test-001"
        assert kwargs["headers"] == [("event_type", b"installment.settled")]
        assert json.loads(kwargs["value"])["data"]["principal_amount"] == "100.00"
        assert sink.stats.sent == 1
        producer.poll.assert_called_once_with(0)

    def test_send_without_key(self, producer: MagicMock) -> None:
        """Test records without a contract produce unkeyed messages."""
        sink = KafkaSink("localhost:9092")

        sink.send("mutuos.schedules", {"id": 1})

        kwargs = producer.produce.call_args[1]
        assert kwargs["key"] is None
        assert kwargs["headers"] is None

    def test_publish_uses_default_topic(self, producer: MagicMock) -> None:
        """Test publish sends to the configured topic."""
        sink = KafkaSink(KafkaConfig(topic="prod.mutuos"))

        sink.publish(build_event(EventType.INSTALLMENT_CREATED, make_installment()))

        assert producer.produce.call_args[1]["topic"] == "prod.mutuos"

    def test_write_batch(self, producer: MagicMock) -> None:
        """Test writing a batch flushes once."""
        sink = KafkaSink("localhost:9092")

        sink.write_batch("mutuos.schedules", schedule_rows(5))

        assert producer.produce.call_count == 5
        producer.flush.assert_called_once_with(30.0)

    def test_flush_reports_remaining(self, producer: MagicMock) -> None:
        """Test flush returns the number of queued messages."""
        producer.flush.return_value = 3
        sink = KafkaSink("localhost:9092")

        assert sink.flush(timeout=1.0) == 3

    def test_delivery_reports(self, producer: MagicMock) -> None:
        """Test delivery reports update stats."""
        sink = KafkaSink("localhost:9092")
        msg = MagicMock()
        msg.topic.return_value = "mutuos.installments"
        msg.partition.return_value = 0
        msg.offset.return_value = 7

        sink._on_delivery(None, msg)
        sink._on_delivery("broker down", None)

        assert sink.stats.delivered == 1
        assert sink.stats.failed == 1

    def test_close(self, producer: MagicMock) -> None:
        """Test close flushes and stamps the close time."""
        sink = KafkaSink("localhost:9092")

        sink.close()

        producer.flush.assert_called_once_with(30.0)
        assert sink.stats.closed_at is not None
