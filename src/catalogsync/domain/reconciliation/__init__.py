"""Reconciliation of the external catalog into the relational replica.

Flow of one run:
1) load the replica cache from the store
2) list catalog repositories and apply the profile filter
3) per repository, in its own transaction: upsert the repository row,
   sync new or modified images with their CVEs, then the repository's
   image membership
4) fold the pending buffer into the cache on commit, drop it on rollback
"""

from __future__ import annotations

from .context import EntityCache, ReconciliationContext, ReplicaCache
from .delta import AssociationDelta, RepositorySyncReport, WriteCounts, compute_delta
from .engine import ReconciliationEngine
from .runner import SyncCatalogResult, run_sync

__all__ = [
    "AssociationDelta",
    "EntityCache",
    "ReconciliationContext",
    "ReconciliationEngine",
    "ReplicaCache",
    "RepositorySyncReport",
    "SyncCatalogResult",
    "WriteCounts",
    "compute_delta",
    "run_sync",
]
