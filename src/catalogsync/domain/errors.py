"""Errors raised by the reconciliation core."""

from __future__ import annotations


class ReconciliationError(RuntimeError):
    """Raised when a repository cannot be reconciled with the catalog."""


class DataConsistencyError(ReconciliationError):
    """Raised when an entity expected in the replica cannot be resolved.

    The enclosing repository transaction is aborted; the association is never
    dropped silently.
    """
