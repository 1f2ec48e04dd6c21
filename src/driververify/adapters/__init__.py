"""Adapters connecting the reconciliation core to external systems."""
