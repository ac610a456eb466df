"""Runtime configuration for the PCE client, logging, and ledger columns."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path


@dataclass(slots=True)
class PceSettings:
    """Connection settings for the policy compute engine."""

    fqdn: str = ""
    port: int = 8443
    org: int = 1
    api_user: str = ""
    api_key: str = ""
    disable_tls_checking: bool = False
    request_timeout_seconds: float = 60.0
    max_retries: int = 3


@dataclass(slots=True)
class LedgerColumnSettings:
    """Header names of the columns owned by reconciliation."""

    identifier: str = "async_query_href"
    status: str = "async_query_status"
    result_size: str = "flows"
    flows_by_port: str = "flows_by_port"


@dataclass(slots=True)
class Settings:
    """Application settings grouped by concern."""

    pce: PceSettings = field(default_factory=PceSettings)
    columns: LedgerColumnSettings = field(default_factory=LedgerColumnSettings)
    log_file: Path = Path("traffic-ledger.log")
    debug: bool = False

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from environment with defaults matching a stock PCE install."""

        return cls(
            pce=PceSettings(
                fqdn=os.getenv("TRAFFIC_LEDGER_PCE_FQDN", "").strip(),
                port=_env_int("TRAFFIC_LEDGER_PCE_PORT", 8443),
                org=_env_int("TRAFFIC_LEDGER_PCE_ORG", 1),
                api_user=os.getenv("TRAFFIC_LEDGER_API_USER", "").strip(),
                api_key=os.getenv("TRAFFIC_LEDGER_API_KEY", "").strip(),
                disable_tls_checking=_env_bool(
                    "TRAFFIC_LEDGER_DISABLE_TLS_CHECKING",
                    default=False,
                ),
                request_timeout_seconds=float(
                    os.getenv("TRAFFIC_LEDGER_REQUEST_TIMEOUT_SECONDS", "60.0"),
                ),
                max_retries=_env_int("TRAFFIC_LEDGER_MAX_RETRIES", 3),
            ),
            columns=LedgerColumnSettings(
                identifier=os.getenv("TRAFFIC_LEDGER_ID_COLUMN", "async_query_href"),
                status=os.getenv("TRAFFIC_LEDGER_STATUS_COLUMN", "async_query_status"),
                result_size=os.getenv("TRAFFIC_LEDGER_SIZE_COLUMN", "flows"),
                flows_by_port=os.getenv("TRAFFIC_LEDGER_PORTS_COLUMN", "flows_by_port"),
            ),
            log_file=Path(os.getenv("TRAFFIC_LEDGER_LOG_FILE", "traffic-ledger.log")),
            debug=_env_bool("TRAFFIC_LEDGER_DEBUG", default=False),
        )

    def validate_for_pce(self) -> None:
        """Raise configuration error if PCE connection settings are missing or invalid."""

        if not self.pce.fqdn:
            raise ValueError("TRAFFIC_LEDGER_PCE_FQDN is required.")
        if not self.pce.api_user:
            raise ValueError("TRAFFIC_LEDGER_API_USER is required.")
        if not self.pce.api_key:
            raise ValueError("TRAFFIC_LEDGER_API_KEY is required.")
        if self.pce.port <= 0:
            raise ValueError("TRAFFIC_LEDGER_PCE_PORT must be > 0.")
        if self.pce.org <= 0:
            raise ValueError("TRAFFIC_LEDGER_PCE_ORG must be > 0.")
        if self.pce.request_timeout_seconds <= 0:
            raise ValueError("TRAFFIC_LEDGER_REQUEST_TIMEOUT_SECONDS must be > 0.")
        if self.pce.max_retries < 0:
            raise ValueError("TRAFFIC_LEDGER_MAX_RETRIES must be >= 0.")
        self.validate_columns()

    def validate_columns(self) -> None:
        """Raise configuration error if ledger column names are empty or collide."""

        names = {
            "TRAFFIC_LEDGER_ID_COLUMN": self.columns.identifier,
            "TRAFFIC_LEDGER_STATUS_COLUMN": self.columns.status,
            "TRAFFIC_LEDGER_SIZE_COLUMN": self.columns.result_size,
            "TRAFFIC_LEDGER_PORTS_COLUMN": self.columns.flows_by_port,
        }
        for env_name, value in names.items():
            if not value.strip():
                raise ValueError(f"{env_name} must not be empty.")
        if len(set(names.values())) != len(names):
            raise ValueError(
                f"Ledger column names must be distinct: {sorted(names.values())!r}",
            )


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value.strip())
    except ValueError as error:
        raise ValueError(f"Invalid integer value for {name}: {value!r}") from error


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"Invalid boolean value for {name}: {value!r}")
