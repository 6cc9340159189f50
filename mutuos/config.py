"""Configuration for the mutuos engine, its stores and sinks.

Every section can be built from environment variables; ``MutuosConfig.from_env``
assembles them all.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from mutuos.exceptions import ConfigurationError
from mutuos.models.enums import AmortizationMethod


def _env_int(name: str, default: int, minimum: int | None = None) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from None
    if minimum is not None and value < minimum:
        raise ConfigurationError(f"{name} must be >= {minimum}, got {value}")
    return value


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes")


@dataclass
class KafkaConfig:
    """confluent-kafka producer settings plus the event topic."""

    bootstrap_servers: str = "localhost:9092"
    topic: str = "mutuos.installments"
    acks: str = "all"
    compression: str = "snappy"
    linger_ms: int = 5
    batch_size: int = 16384
    retries: int = 3
    client_id: str = "mutuos"

    def to_dict(self) -> dict[str, Any]:
        """Producer configuration in librdkafka key format (no topic)."""
        return {
            "bootstrap.servers": self.bootstrap_servers,
            "client.id": self.client_id,
            "acks": self.acks,
            "compression.type": self.compression,
            "linger.ms": self.linger_ms,
            "batch.size": self.batch_size,
            "retries": self.retries,
        }

    @classmethod
    def from_env(cls) -> "KafkaConfig":
        defaults = cls()
        return cls(
            bootstrap_servers=os.getenv("KAFKA_BOOTSTRAP_SERVERS", defaults.bootstrap_servers),
            topic=os.getenv("KAFKA_TOPIC", defaults.topic),
            acks=os.getenv("KAFKA_ACKS", defaults.acks),
            client_id=os.getenv("KAFKA_CLIENT_ID", defaults.client_id),
        )


@dataclass
class PostgresConfig:
    """Connection settings for the PostgreSQL installment ledger."""

    host: str = "localhost"
    port: int = 5432
    database: str = "mutuos"
    user: str = "postgres"
    password: str = "postgres"
    lock_timeout_ms: int = 5000  # Bound on waiting for a contract lock

    @property
    def connection_string(self) -> str:
        return f"postgresql://{self.user}:{self.password}@{self.host}:{self.port}/{self.database}"

    @classmethod
    def from_env(cls) -> "PostgresConfig":
        defaults = cls()
        return cls(
            host=os.getenv("POSTGRES_HOST", defaults.host),
            port=_env_int("POSTGRES_PORT", defaults.port, minimum=1),
            database=os.getenv("POSTGRES_DB", defaults.database),
            user=os.getenv("POSTGRES_USER", defaults.user),
            password=os.getenv("POSTGRES_PASSWORD", defaults.password),
            lock_timeout_ms=_env_int("POSTGRES_LOCK_TIMEOUT_MS", defaults.lock_timeout_ms, minimum=0),
        )


@dataclass
class OutputConfig:
    """Where file sinks write."""

    json_output_dir: Path = field(default_factory=lambda: Path("output"))
    pretty_json: bool = False

    @classmethod
    def from_env(cls) -> "OutputConfig":
        return cls(
            json_output_dir=Path(os.getenv("OUTPUT_DIR", "output")),
            pretty_json=_env_flag("PRETTY_JSON"),
        )


@dataclass
class EngineConfig:
    """Schedule and reporting defaults."""

    due_soon_window_days: int = 30
    default_method: AmortizationMethod = AmortizationMethod.PRICE

    @classmethod
    def from_env(cls) -> "EngineConfig":
        method_name = os.getenv("DEFAULT_METHOD", "PRICE").strip().upper()
        try:
            method = AmortizationMethod(method_name)
        except ValueError:
            raise ConfigurationError(f"DEFAULT_METHOD must be PRICE or SAC, got {method_name!r}") from None
        return cls(
            due_soon_window_days=_env_int("DUE_SOON_WINDOW_DAYS", 30, minimum=0),
            default_method=method,
        )


@dataclass
class MutuosConfig:
    """Top-level configuration."""

    kafka: KafkaConfig = field(default_factory=KafkaConfig)
    postgres: PostgresConfig = field(default_factory=PostgresConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    engine: EngineConfig = field(default_factory=EngineConfig)
    log_level: str = "INFO"
    log_format: str = "standard"  # "standard" or "json"

    @classmethod
    def from_env(cls) -> "MutuosConfig":
        """Read every section from the environment.

        Raises
        ------
        ConfigurationError
            If a numeric or enum variable holds an invalid value.
        """
        return cls(
            kafka=KafkaConfig.from_env(),
            postgres=PostgresConfig.from_env(),
            output=OutputConfig.from_env(),
            engine=EngineConfig.from_env(),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "standard"),
        )
