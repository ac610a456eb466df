"""CLI entrypoint for traffic-ledger."""

from collections.abc import Callable
from pathlib import Path

import rich_click as click

from traffic_ledger import __version__
from traffic_ledger.controllers import (
    PortUsageCommand,
    QueriesCliController,
    QueryListCommand,
    RuleUsageCommand,
)
from traffic_ledger.pce.client import PceApiError
from traffic_ledger.reconcile.models import ReconcileError

click.rich_click.USE_MARKDOWN = True
QUERIES_CONTROLLER = QueriesCliController()


@click.group()
@click.version_option(version=__version__, prog_name="traffic-ledger")
@click.option(
    "--debug/--no-debug",
    default=False,
    show_default=True,
    help="Write debug records, including API response bodies, to the log file.",
)
@click.pass_context
def traffic_ledger(ctx: click.Context, debug: bool) -> None:
    """Reconcile PCE async traffic queries with a CSV ledger."""

    ctx.obj = {"debug": debug}


@traffic_ledger.group()
def queries() -> None:
    """Async traffic query commands."""


@queries.command("list")
@click.pass_context
def queries_list(ctx: click.Context) -> None:
    """List async queries known to the PCE with their status."""

    _emit_lines(
        _run_or_fail(
            lambda: QUERIES_CONTROLLER.list_queries(QueryListCommand(debug=_debug(ctx))),
        ),
    )


@queries.command("port-usage")
@click.argument(
    "ledger_csv",
    type=click.Path(path_type=Path, dir_okay=False),
)
@click.pass_context
def queries_port_usage(ctx: click.Context, ledger_csv: Path) -> None:
    """Download completed port usage queries and update the ledger in place.

    Run as many times as needed until no query is pending. Rows already
    completed are skipped and rows whose query expired are reported.
    """

    _emit_lines(
        _run_or_fail(
            lambda: QUERIES_CONTROLLER.port_usage(
                PortUsageCommand(ledger_path=ledger_csv, debug=_debug(ctx)),
            ),
        ),
    )


@queries.command("rule-usage")
@click.argument(
    "ledger_csv",
    type=click.Path(path_type=Path, dir_okay=False),
)
@click.option(
    "--output-file",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="Output CSV path. Defaults to a timestamped file in the current directory.",
)
@click.pass_context
def queries_rule_usage(ctx: click.Context, ledger_csv: Path, output_file: Path | None) -> None:
    """Get traffic hit counts for rules from completed rule traffic queries.

    Pass the rule export with async query hrefs within 24 hours of creating
    the queries. The input file is not modified; feed the output file into
    the next run until every query has been processed.
    """

    _emit_lines(
        _run_or_fail(
            lambda: QUERIES_CONTROLLER.rule_usage(
                RuleUsageCommand(
                    ledger_path=ledger_csv,
                    output_path=output_file,
                    debug=_debug(ctx),
                ),
            ),
        ),
    )


def _debug(ctx: click.Context) -> bool:
    root = ctx.find_root()
    return bool(root.obj and root.obj.get("debug"))


def _run_or_fail(action: Callable[[], list[str]]) -> list[str]:
    try:
        return action()
    except (ReconcileError, PceApiError, ValueError) as exc:
        raise click.ClickException(str(exc)) from exc


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    traffic_ledger()
