"""Verification commands, resync jobs, and their error/result envelope.

Import from the submodules directly; ``reconciliation`` depends on ``errors``
while ``commands`` depends on discovery.
"""
