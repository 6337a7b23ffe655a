"""Configuration management for bad_debt."""

from dataclasses import dataclass, field

from bad_debt.exceptions import ConfigurationError
from bad_debt.models.portfolio.enums import BadDebtStatus

LOG_FORMATS = ("standard", "json")


@dataclass
class PostgresConfig:
    """PostgreSQL connection configuration."""

    host: str = "localhost"
    port: int = 5432
    database: str = "solufacil"
    user: str = "postgres"
    password: str = "postgres"
    url: str | None = None  # Takes precedence over the individual fields

    @property
    def connection_string(self) -> str:
        """Get connection string."""
        if self.url:
            return self.url
        return f"postgresql://{self.user}:{self.password}@{self.host}:{self.port}/{self.database}"


@dataclass
class ReportConfig:
    """Defaults applied when building dead-debt reports."""

    default_status: BadDebtStatus = BadDebtStatus.UNMARKED
    # Fetches returning more loans than this are logged as warnings
    large_fetch_warning: int = 5000


@dataclass
class EngineConfig:
    """Main configuration for bad_debt."""

    postgres: PostgresConfig = field(default_factory=PostgresConfig)
    report: ReportConfig = field(default_factory=ReportConfig)
    log_level: str = "INFO"
    log_format: str = "standard"

    def __post_init__(self) -> None:
        if self.log_format not in LOG_FORMATS:
            raise ConfigurationError(
                f"Unknown log format {self.log_format!r}; expected one of {LOG_FORMATS}"
            )

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """Create config from environment variables."""
        import os

        port_str = os.getenv("POSTGRES_PORT", "5432")
        try:
            port = int(port_str)
        except ValueError as e:
            raise ConfigurationError(f"POSTGRES_PORT must be an integer, got {port_str!r}") from e

        postgres = PostgresConfig(
            host=os.getenv("POSTGRES_HOST", "localhost"),
            port=port,
            database=os.getenv("POSTGRES_DB", "solufacil"),
            user=os.getenv("POSTGRES_USER", "postgres"),
            password=os.getenv("POSTGRES_PASSWORD", "postgres"),
            url=os.getenv("DATABASE_URL") or None,
        )

        status_str = os.getenv("DEFAULT_BAD_DEBT_STATUS", BadDebtStatus.UNMARKED.value)
        try:
            default_status = BadDebtStatus(status_str.upper())
        except ValueError as e:
            raise ConfigurationError(f"Unknown DEFAULT_BAD_DEBT_STATUS {status_str!r}") from e

        threshold_str = os.getenv("LARGE_FETCH_WARNING", "5000")
        try:
            large_fetch_warning = int(threshold_str)
        except ValueError as e:
            raise ConfigurationError(
                f"LARGE_FETCH_WARNING must be an integer, got {threshold_str!r}"
            ) from e

        return cls(
            postgres=postgres,
            report=ReportConfig(
                default_status=default_status,
                large_fetch_warning=large_fetch_warning,
            ),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "standard"),
        )
