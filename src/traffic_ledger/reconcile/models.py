"""Domain models for async query reconciliation."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

COMPLETED_STATUS = "completed"


class RowClassification(str, Enum):
    """Per-row reconciliation outcomes. None of them is an error."""

    ALREADY_COMPLETED = "already_completed"
    NEWLY_COMPLETED = "newly_completed"
    EXPIRED = "expired"
    STILL_PENDING = "still_pending"


@dataclass(slots=True, frozen=True)
class AsyncQuery:
    """One async query known to the remote registry."""

    href: str
    status: str

    @property
    def is_completed(self) -> bool:
        return self.status == COMPLETED_STATUS


@dataclass(slots=True, frozen=True)
class RegistrySnapshot:
    """Point-in-time listing of async queries keyed by href."""

    entries: dict[str, AsyncQuery]

    @classmethod
    def from_queries(cls, queries: list[AsyncQuery]) -> RegistrySnapshot:
        """Index queries by href; a repeated href keeps the later entry."""

        return cls(entries={query.href: query for query in queries})

    def get(self, href: str) -> AsyncQuery | None:
        return self.entries.get(href)

    def __len__(self) -> int:
        return len(self.entries)


@dataclass(slots=True)
class ReconcileCounters:
    """Counters tracked for one reconciliation pass."""

    total: int = 0
    already_completed: int = 0
    newly_completed: int = 0
    expired: int = 0
    still_pending: int = 0

    def record(self, classification: RowClassification) -> None:
        self.total += 1
        if classification is RowClassification.ALREADY_COMPLETED:
            self.already_completed += 1
        elif classification is RowClassification.NEWLY_COMPLETED:
            self.newly_completed += 1
        elif classification is RowClassification.EXPIRED:
            self.expired += 1
        else:
            self.still_pending += 1

    @property
    def is_consistent(self) -> bool:
        classified = (
            self.already_completed + self.newly_completed + self.expired + self.still_pending
        )
        return classified == self.total


@dataclass(slots=True, frozen=True)
class RowOutcome:
    """Classification of one ledger row. ``row_number`` counts the header as row 1."""

    row_number: int
    identifier: str
    classification: RowClassification


@dataclass(slots=True)
class ReconcileReport:
    """Result of one reconciliation pass."""

    ledger_path: Path
    counters: ReconcileCounters = field(default_factory=ReconcileCounters)
    outcomes: list[RowOutcome] = field(default_factory=list)
    snapshot_size: int | None = None

    def record(self, outcome: RowOutcome) -> None:
        self.outcomes.append(outcome)
        self.counters.record(outcome.classification)


@dataclass(slots=True)
class ReconcileError(Exception):
    """Base error for a reconciliation pass that cannot finish."""

    message: str
    code: str = "reconcile_error"

    def __str__(self) -> str:
        return self.message


@dataclass(slots=True)
class LedgerFormatError(ReconcileError):
    """Ledger cannot be reconciled; raised before any remote call or write."""

    path: Path | None = None


@dataclass(slots=True)
class LedgerWriteError(ReconcileError):
    """Ledger target cannot be written. Raised before remote work when the target is unusable."""

    path: Path | None = None


@dataclass(slots=True)
class RegistryUnavailableError(ReconcileError):
    """Registry snapshot could not be fetched; the ledger was not modified."""


@dataclass(slots=True)
class ResultFetchError(ReconcileError):
    """Result payload for one newly completed row could not be fetched.

    ``report`` holds the rows classified before the failure. Rows merged
    before the failure are already checkpointed to disk.
    """

    row_number: int = 0
    identifier: str = ""
    report: ReconcileReport | None = None
