"""Controllers for async query CLI commands."""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from traffic_ledger.config import PceSettings, Settings
from traffic_ledger.ledger.codec import LedgerStore
from traffic_ledger.logging_setup import configure_logging
from traffic_ledger.pce.client import PceClient
from traffic_ledger.reconcile.merge import ResultCountMerger, ResultMerger, TrafficSummaryMerger
from traffic_ledger.reconcile.models import ReconcileReport, ResultFetchError
from traffic_ledger.reconcile.reconciler import ReconcileContext, Reconciler
from traffic_ledger.reconcile.summary import render_summary

logger = logging.getLogger(__name__)

ClientFactory = Callable[[PceSettings], PceClient]


@dataclass(slots=True)
class QueryListCommand:
    """CLI inputs for registry listing."""

    debug: bool = False


@dataclass(slots=True)
class PortUsageCommand:
    """CLI inputs for in-place port usage reconciliation."""

    ledger_path: Path
    debug: bool = False


@dataclass(slots=True)
class RuleUsageCommand:
    """CLI inputs for rule usage reconciliation into a separate output file."""

    ledger_path: Path
    output_path: Path | None = None
    debug: bool = False


class QueriesCliController:
    """Coordinates async query command execution."""

    def __init__(self, client_factory: ClientFactory = PceClient) -> None:
        self._client_factory = client_factory

    def list_queries(self, command: QueryListCommand) -> list[str]:
        settings = _load_settings(debug=command.debug)
        with self._client(settings) as client:
            queries = client.list_queries()

        statuses = Counter(query.status or "-" for query in queries)
        lines = [f"Async queries: {len(queries)}"]
        if statuses:
            lines.append(
                "Statuses: "
                + " ".join(f"{status}={count}" for status, count in sorted(statuses.items())),
            )
        lines.extend(f"  {query.href} status={query.status or '-'}" for query in queries)
        return lines

    def port_usage(self, command: PortUsageCommand) -> list[str]:
        settings = _load_settings(debug=command.debug)
        logger.info("started port-usage results for %s", command.ledger_path)
        report = self._reconcile(
            settings,
            store=LedgerStore(command.ledger_path),
            merger=ResultCountMerger(size_column=settings.columns.result_size),
        )
        return _report_lines(report, noun="traffic queries")

    def rule_usage(self, command: RuleUsageCommand) -> list[str]:
        settings = _load_settings(debug=command.debug)
        output_path = command.output_path or default_rule_usage_output()
        logger.info("started rule-usage for %s", command.ledger_path)
        report = self._reconcile(
            settings,
            store=LedgerStore(command.ledger_path, target=output_path),
            merger=TrafficSummaryMerger(
                flows_column=settings.columns.result_size,
                flows_by_port_column=settings.columns.flows_by_port,
            ),
        )
        return _report_lines(report, noun="rule traffic queries")

    def _reconcile(
        self,
        settings: Settings,
        *,
        store: LedgerStore,
        merger: ResultMerger,
    ) -> ReconcileReport:
        with self._client(settings) as client:
            reconciler = Reconciler(
                ReconcileContext(
                    registry=client,
                    store=store,
                    merger=merger,
                    identifier_column=settings.columns.identifier,
                    status_column=settings.columns.status,
                ),
            )
            try:
                return reconciler.run()
            except ResultFetchError as exc:
                saved = exc.report.counters.newly_completed if exc.report is not None else 0
                logger.error("%s (%d newly completed row(s) already saved)", exc, saved)
                raise

    @contextmanager
    def _client(self, settings: Settings) -> Iterator[PceClient]:
        client = self._client_factory(settings.pce)
        try:
            yield client
        finally:
            client.close()


def default_rule_usage_output(now: datetime | None = None) -> Path:
    stamp = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
    return Path(f"traffic-ledger-rule-usage-{stamp}.csv")


def _load_settings(*, debug: bool) -> Settings:
    settings = Settings.from_env()
    if debug:
        settings.debug = True
    settings.validate_for_pce()
    configure_logging(settings)
    return settings


def _report_lines(report: ReconcileReport, *, noun: str) -> list[str]:
    lines = render_summary(report.counters, noun=noun)
    for line in lines:
        logger.info(line, extra={"file_only": True})
    lines.append(f"Output file: {report.ledger_path}")
    return lines
