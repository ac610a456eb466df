from __future__ import annotations

import logging
from pathlib import Path

import allure
import pytest

from traffic_ledger.config import Settings
from traffic_ledger.logging_setup import ROOT_LOGGER_NAME, configure_logging, reset_logging

pytestmark = [
    allure.epic("Query Reconciliation"),
    allure.feature("Logging"),
]


def _own_handlers() -> list[logging.Handler]:
    return [
        handler
        for handler in logging.getLogger(ROOT_LOGGER_NAME).handlers
        if getattr(handler, "_traffic_ledger_handler", False)
    ]


def test_file_only_records_skip_console(
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    log_file = tmp_path / "run.log"
    configure_logging(Settings(log_file=log_file))
    logger = logging.getLogger("traffic_ledger.reconcile")

    logger.info("visible everywhere")
    logger.info("file only summary", extra={"file_only": True})
    logger.debug("hidden without debug")

    stderr = capsys.readouterr().err
    log_text = log_file.read_text(encoding="utf-8")
    assert "visible everywhere" in stderr
    assert "file only summary" not in stderr
    assert "[INFO] - visible everywhere" in log_text
    assert "file only summary" in log_text
    assert "hidden without debug" not in log_text


def test_debug_settings_enable_debug_records_in_file(tmp_path: Path) -> None:
    log_file = tmp_path / "run.log"
    configure_logging(Settings(log_file=log_file, debug=True))

    logging.getLogger("traffic_ledger.pce.client").debug("response body: []")

    assert "[DEBUG] - response body: []" in log_file.read_text(encoding="utf-8")


def test_configure_logging_replaces_previous_handlers(tmp_path: Path) -> None:
    configure_logging(Settings(log_file=tmp_path / "first.log"))
    configure_logging(Settings(log_file=tmp_path / "second.log"))

    assert len(_own_handlers()) == 2

    reset_logging()

    assert _own_handlers() == []
    assert logging.getLogger(ROOT_LOGGER_NAME).level == logging.NOTSET
