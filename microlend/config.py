"""Configuration management for microlend."""

from dataclasses import dataclass, field
from pathlib import Path

from microlend.exceptions import ConfigurationError


@dataclass
class ScheduleConfig:
    """Schedule engine and loan lifecycle configuration."""

    anchor_hour_utc: int = 12
    renewal_max_unpaid: int = 3
    currency_symbol: str = "$"

    def __post_init__(self) -> None:
        if not 0 <= self.anchor_hour_utc <= 23:
            raise ConfigurationError(
                f"anchor_hour_utc must be between 0 and 23, got {self.anchor_hour_utc}"
            )
        if self.renewal_max_unpaid < 0:
            raise ConfigurationError(
                f"renewal_max_unpaid must not be negative, got {self.renewal_max_unpaid}"
            )


@dataclass
class PostgresConfig:
    """PostgreSQL connection configuration."""

    host: str = "localhost"
    port: int = 5432
    database: str = "microlend"
    user: str = "postgres"
    password: str = "postgres"

    @property
    def connection_string(self) -> str:
        """Get connection string."""
        return f"postgresql://{self.user}:{self.password}@{self.host}:{self.port}/{self.database}"


@dataclass
class OutputConfig:
    """Output configuration."""

    json_output_dir: Path = field(default_factory=lambda: Path("output"))
    pretty_json: bool = False


@dataclass
class MicrolendConfig:
    """Main configuration for microlend."""

    schedule: ScheduleConfig = field(default_factory=ScheduleConfig)
    postgres: PostgresConfig = field(default_factory=PostgresConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    seed: int | None = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "MicrolendConfig":
        """Create config from environment variables."""
        import os

        try:
            schedule = ScheduleConfig(
                anchor_hour_utc=int(os.getenv("SCHEDULE_ANCHOR_HOUR", "12")),
                renewal_max_unpaid=int(os.getenv("RENEWAL_MAX_UNPAID", "3")),
                currency_symbol=os.getenv("CURRENCY_SYMBOL", "$"),
            )

            postgres = PostgresConfig(
                host=os.getenv("POSTGRES_HOST", "localhost"),
                port=int(os.getenv("POSTGRES_PORT", "5432")),
                database=os.getenv("POSTGRES_DB", "microlend"),
                user=os.getenv("POSTGRES_USER", "postgres"),
                password=os.getenv("POSTGRES_PASSWORD", "postgres"),
            )

            seed = int(os.getenv("SEED")) if os.getenv("SEED") else None
        except ValueError as e:
            raise ConfigurationError(f"Invalid numeric setting in environment: {e}") from e

        output = OutputConfig(
            json_output_dir=Path(os.getenv("OUTPUT_DIR", "output")),
            pretty_json=os.getenv("PRETTY_JSON", "false").lower() == "true",
        )

        return cls(
            schedule=schedule,
            postgres=postgres,
            output=output,
            seed=seed,
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )
