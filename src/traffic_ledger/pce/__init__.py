"""PCE API client."""

from traffic_ledger.pce.client import PceApiError, PceClient, QueryRegistry

__all__ = [
    "PceApiError",
    "PceClient",
    "QueryRegistry",
]
