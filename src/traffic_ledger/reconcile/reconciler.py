"""Reconcile a ledger of async query hrefs against the remote query registry."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from traffic_ledger.ledger.codec import ColumnMap, Ledger, LedgerStore, resolve_columns
from traffic_ledger.pce.client import PceApiError, QueryRegistry
from traffic_ledger.reconcile.merge import ResultMerger
from traffic_ledger.reconcile.models import (
    COMPLETED_STATUS,
    RegistrySnapshot,
    RegistryUnavailableError,
    ReconcileReport,
    ResultFetchError,
    RowClassification,
    RowOutcome,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ReconcileContext:
    """Collaborators for one reconciliation pass, owned by the caller."""

    registry: QueryRegistry
    store: LedgerStore
    merger: ResultMerger
    identifier_column: str
    status_column: str


class Reconciler:
    """Advances pending ledger rows whose remote queries have completed.

    One pass loads the ledger, resolves the owned columns, fetches the registry
    snapshot once, classifies every row in file order and merges result
    payloads into newly completed rows. The ledger is checkpointed after each
    merged row and written once more at the end of the pass.
    """

    def __init__(self, context: ReconcileContext) -> None:
        self.context = context

    def run(self) -> ReconcileReport:
        store = self.context.store
        ledger = store.load()
        column_map = resolve_columns(
            ledger,
            identifier=self.context.identifier_column,
            status=self.context.status_column,
            owned=self.context.merger.columns,
            path=store.source,
        )
        store.check_target()
        report = ReconcileReport(ledger_path=store.target)

        snapshot: RegistrySnapshot | None = None
        if _has_pending_rows(ledger, column_map):
            snapshot = self._fetch_snapshot()
            report.snapshot_size = len(snapshot)

        for offset, row in enumerate(ledger.rows):
            row_number = ledger.line_number(offset)
            outcome = self._reconcile_row(
                ledger=ledger,
                row=row,
                row_number=row_number,
                column_map=column_map,
                snapshot=snapshot,
                report=report,
            )
            report.record(outcome)

        store.save(ledger)
        return report

    def _fetch_snapshot(self) -> RegistrySnapshot:
        logger.info("getting all async queries")
        try:
            queries = self.context.registry.list_queries()
        except PceApiError as exc:
            raise RegistryUnavailableError(
                message=f"Could not list async queries: {exc}",
                code="registry_unavailable",
            ) from exc
        snapshot = RegistrySnapshot.from_queries(queries)
        logger.info("%d total async queries for this user", len(snapshot))
        return snapshot

    def _reconcile_row(  # noqa: PLR0913
        self,
        *,
        ledger: Ledger,
        row: list[str],
        row_number: int,
        column_map: ColumnMap,
        snapshot: RegistrySnapshot | None,
        report: ReconcileReport,
    ) -> RowOutcome:
        identifier = row[column_map.identifier]

        if row[column_map.status] == COMPLETED_STATUS:
            logger.info(
                "csv row %d - %s already completed from previous run",
                row_number,
                identifier,
            )
            return RowOutcome(row_number, identifier, RowClassification.ALREADY_COMPLETED)

        query = snapshot.get(identifier) if snapshot is not None else None
        if query is None:
            logger.warning(
                "csv row %d - %s does not exist as an async query. invalid href or it expired.",
                row_number,
                identifier,
            )
            return RowOutcome(row_number, identifier, RowClassification.EXPIRED)

        if not query.is_completed:
            logger.info("csv row %d - %s is not completed.", row_number, identifier)
            return RowOutcome(row_number, identifier, RowClassification.STILL_PENDING)

        try:
            items = self.context.registry.fetch_result(query)
        except PceApiError as exc:
            raise ResultFetchError(
                message=(
                    f"Could not download results for csv row {row_number} - {identifier}: {exc}"
                ),
                code="result_fetch_failed",
                row_number=row_number,
                identifier=identifier,
                report=report,
            ) from exc

        for column, value in self.context.merger.merge(items).items():
            row[column_map.owned[column]] = value
        row[column_map.status] = COMPLETED_STATUS
        self.context.store.save(ledger)
        logger.info("csv row %d - %s completed and downloaded", row_number, identifier)
        return RowOutcome(row_number, identifier, RowClassification.NEWLY_COMPLETED)


def _has_pending_rows(ledger: Ledger, column_map: ColumnMap) -> bool:
    return any(row[column_map.status] != COMPLETED_STATUS for row in ledger.rows)
