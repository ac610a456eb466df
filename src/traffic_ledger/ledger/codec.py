"""CSV ledger read, column resolution, and atomic rewrite."""

from __future__ import annotations

import csv
import io
import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

from traffic_ledger.reconcile.models import LedgerFormatError, LedgerWriteError

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Ledger:
    """Header plus data rows, held in memory in file order."""

    header: list[str]
    rows: list[list[str]]
    line_numbers: list[int] = field(default_factory=list)

    def column_index(self, name: str) -> int | None:
        """Position of the first header cell exactly equal to ``name``."""

        for index, column in enumerate(self.header):
            if column == name:
                return index
        return None

    def line_number(self, offset: int) -> int:
        """Physical file line on which data row ``offset`` starts."""

        if offset < len(self.line_numbers):
            return self.line_numbers[offset]
        return offset + 2

    def to_records(self) -> list[list[str]]:
        return [self.header, *self.rows]


@dataclass(slots=True, frozen=True)
class ColumnMap:
    """Resolved positions of the columns reconciliation writes to."""

    identifier: int
    status: int
    owned: dict[str, int]

    @property
    def max_index(self) -> int:
        return max(self.identifier, self.status, *self.owned.values())


def parse_ledger(text: str, *, path: Path | None = None) -> Ledger:
    """Parse CSV text into a ledger. A leading UTF-8 BOM and blank lines are ignored.

    Each data row remembers the file line it starts on, so row numbers in
    messages match the file even after blank lines or multi-line cells.
    """

    if text.startswith("\ufeff"):
        text = text[1:]
    records: list[list[str]] = []
    starts: list[int] = []
    reader = csv.reader(io.StringIO(text, newline=""))
    start = 1
    try:
        for record in reader:
            if record:
                records.append(record)
                starts.append(start)
            start = reader.line_num + 1
    except csv.Error as error:
        raise LedgerFormatError(
            message=f"Invalid CSV in ledger {path or '<memory>'}: {error}",
            code="ledger_invalid_csv",
            path=path,
        ) from error
    if not records:
        raise LedgerFormatError(
            message=f"Ledger {path or '<memory>'} is empty; a header row is required.",
            code="ledger_empty",
            path=path,
        )
    return Ledger(header=records[0], rows=records[1:], line_numbers=starts[1:])


def resolve_columns(
    ledger: Ledger,
    *,
    identifier: str,
    status: str,
    owned: tuple[str, ...],
    path: Path | None = None,
) -> ColumnMap:
    """Locate required columns by exact header name and check every row can hold them."""

    positions: dict[str, int] = {}
    missing: list[str] = []
    for name in (identifier, status, *owned):
        index = ledger.column_index(name)
        if index is None:
            missing.append(name)
        else:
            positions[name] = index
    if missing:
        raise LedgerFormatError(
            message=(
                f"Ledger {path or '<memory>'} is missing required column(s): "
                f"{', '.join(missing)}"
            ),
            code="ledger_missing_column",
            path=path,
        )

    column_map = ColumnMap(
        identifier=positions[identifier],
        status=positions[status],
        owned={name: positions[name] for name in owned},
    )
    for offset, row in enumerate(ledger.rows):
        if len(row) <= column_map.max_index:
            raise LedgerFormatError(
                message=(
                    f"Ledger {path or '<memory>'} row {ledger.line_number(offset)} "
                    f"has {len(row)} column(s); at least {column_map.max_index + 1} are required."
                ),
                code="ledger_short_row",
                path=path,
            )
    return column_map


def render_ledger(ledger: Ledger) -> str:
    buffer = io.StringIO(newline="")
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerows(ledger.to_records())
    return buffer.getvalue()


class LedgerStore:
    """File-backed ledger: reads from ``source`` and writes to ``target``.

    ``target`` defaults to ``source`` for in-place reconciliation.
    """

    def __init__(self, source: Path, target: Path | None = None) -> None:
        self.source = source
        self.target = target or source

    def load(self) -> Ledger:
        try:
            text = self.source.read_text(encoding="utf-8-sig")
        except FileNotFoundError as error:
            raise LedgerFormatError(
                message=f"Ledger file not found: {self.source}",
                code="ledger_not_found",
                path=self.source,
            ) from error
        except UnicodeDecodeError as error:
            raise LedgerFormatError(
                message=f"Ledger {self.source} is not valid UTF-8: {error}",
                code="ledger_invalid_encoding",
                path=self.source,
            ) from error
        except OSError as error:
            raise LedgerFormatError(
                message=f"Could not read ledger {self.source}: {error}",
                code="ledger_unreadable",
                path=self.source,
            ) from error
        return parse_ledger(text, path=self.source)

    def check_target(self) -> None:
        """Fail early when the target directory is missing or not writable."""

        parent = self.target.parent
        if not parent.is_dir():
            raise LedgerWriteError(
                message=f"Output directory does not exist: {parent}",
                code="ledger_write_failed",
                path=self.target,
            )
        if not os.access(parent, os.W_OK):
            raise LedgerWriteError(
                message=f"Output directory is not writable: {parent}",
                code="ledger_write_failed",
                path=self.target,
            )

    def save(self, ledger: Ledger) -> None:
        """Replace the target file with the full ledger in one atomic step."""

        try:
            _atomic_write_text(self.target, render_ledger(ledger))
        except OSError as error:
            raise LedgerWriteError(
                message=f"Could not write ledger {self.target}: {error}",
                code="ledger_write_failed",
                path=self.target,
            ) from error
        logger.debug("ledger written: %s (%d rows)", self.target, len(ledger.rows))


def _atomic_write_text(path: Path, data: str) -> None:
    tmp_fh = tempfile.NamedTemporaryFile(
        mode="w",
        encoding="utf-8",
        newline="",
        delete=False,
        dir=path.parent,
        prefix=f".{path.name}.",
        suffix=".tmp",
    )
    tmp_path = Path(tmp_fh.name)
    try:
        with tmp_fh:
            tmp_fh.write(data)
            tmp_fh.flush()
            try:
                os.fsync(tmp_fh.fileno())
            except OSError:
                # fsync is unsupported on some filesystems; replace stays atomic.
                logger.debug("fsync unsupported for %s", tmp_path)
        os.replace(tmp_path, path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise
