"""Summary lines for a reconciliation pass."""

from __future__ import annotations

from traffic_ledger.reconcile.models import ReconcileCounters


def render_summary(counters: ReconcileCounters, *, noun: str = "traffic queries") -> list[str]:
    return [
        f"{counters.total} {noun} in input.",
        f"{counters.already_completed} {noun} completed prior to this run.",
        f"{counters.newly_completed} {noun} completed on this run.",
        f"{counters.expired} {noun} expired (see warnings).",
        f"{counters.still_pending} {noun} still pending.",
    ]
