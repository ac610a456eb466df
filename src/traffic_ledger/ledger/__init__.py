"""CSV ledger codec."""
