"""Result mergers: turn a result payload into ledger column values."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Protocol

PROTOCOL_NAMES: dict[int, str] = {
    1: "ICMP",
    6: "TCP",
    17: "UDP",
    47: "GRE",
    50: "ESP",
    58: "ICMPv6",
    132: "SCTP",
}


class ResultMerger(Protocol):
    """Maps the items of one completed query onto the columns it owns."""

    @property
    def columns(self) -> tuple[str, ...]:
        """Header names this merger writes to."""
        raise NotImplementedError

    def merge(self, items: Sequence[Any]) -> dict[str, str]:
        """Column values for one newly completed row."""
        raise NotImplementedError


@dataclass(slots=True, frozen=True)
class ResultCountMerger:
    """Writes the number of result items into the result-size column."""

    size_column: str

    @property
    def columns(self) -> tuple[str, ...]:
        return (self.size_column,)

    def merge(self, items: Sequence[Any]) -> dict[str, str]:
        return {self.size_column: str(len(items))}


@dataclass(slots=True, frozen=True)
class TrafficSummaryMerger:
    """Writes total connections and a per-port breakdown of traffic flows."""

    flows_column: str
    flows_by_port_column: str
    max_entries: int = 20

    @property
    def columns(self) -> tuple[str, ...]:
        return (self.flows_column, self.flows_by_port_column)

    def merge(self, items: Sequence[Any]) -> dict[str, str]:
        total, by_port = summarize_flows(items, max_entries=self.max_entries)
        return {self.flows_column: str(total), self.flows_by_port_column: by_port}


def summarize_flows(flows: Sequence[Any], *, max_entries: int = 20) -> tuple[int, str]:
    """Sum ``num_connections`` and render ``"<port> <proto> (<count>)"`` entries.

    Entries are ordered by connection count, highest first, then by port and
    protocol. Entries beyond ``max_entries`` collapse into ``"+ N more"``.
    """

    total = 0
    per_service: dict[tuple[int, int], int] = {}
    for flow in flows:
        if not isinstance(flow, Mapping):
            continue
        connections = _as_int(flow.get("num_connections"))
        total += connections
        service = flow.get("service")
        if not isinstance(service, Mapping):
            continue
        key = (_as_int(service.get("port")), _as_int(service.get("proto")))
        per_service[key] = per_service.get(key, 0) + connections

    ordered = sorted(per_service.items(), key=lambda item: (-item[1], item[0]))
    entries = [
        f"{port} {protocol_name(proto)} ({count})" for (port, proto), count in ordered[:max_entries]
    ]
    beyond = len(ordered) - max_entries
    if beyond > 0:
        entries.append(f"+ {beyond} more")
    return total, "; ".join(entries)


def protocol_name(number: int) -> str:
    return PROTOCOL_NAMES.get(number, str(number))


def _as_int(value: object) -> int:
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    return 0
