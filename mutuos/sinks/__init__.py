"""Output sinks for exporting schedules and events."""

from mutuos.sinks.console import ConsoleSink
from mutuos.sinks.json_file import JsonFileSink
from mutuos.sinks.kafka import KafkaSink

__all__ = ["ConsoleSink", "JsonFileSink", "KafkaSink"]
