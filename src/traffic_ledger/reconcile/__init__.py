"""Async query reconciliation.

A ledger row tracks one async traffic query by href. Each pass advances rows
whose remote query has completed since the previous pass and leaves every
other row as it was, so the command can be re-run until nothing is pending.
"""
