"""Reconcile PCE async traffic queries with a CSV ledger."""

__version__ = "0.1.0"
