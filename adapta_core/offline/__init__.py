# =============================================================================
# adapta_core/offline/__init__.py
# Offline-First Data Layer for the Curricular Adaptations Tracker
# =============================================================================
"""
Offline-First Data Layer

The app keeps working when the API is down: every write lands in the local
SQLite store, and every read merges the local records over whatever the API
returned.

Architecture:
------------
┌─────────────────────────────────────────────────────────────────┐
│                     UnifiedDataService                           │
│        (session, sign-in, writes, reads, roster import)          │
└─────────────────────────────────────────────────────────────────┘
          │                     │                      │
          ▼                     ▼                      ▼
┌──────────────────┐  ┌────────────────────┐  ┌──────────────────┐
│ DualWrite        │  │ StudentReport      │  │ RosterSync       │
│ Coordinator      │  │ Aggregator         │  │ (users/students) │
└──────────────────┘  └────────────────────┘  └──────────────────┘
          │   remote best effort  │   local authoritative
          ▼                       ▼
┌──────────────────┐      ┌──────────────────┐
│ RemoteApiClient  │      │  LocalDatabase   │
│ (REST, requests) │      │  (SQLite)        │
└──────────────────┘      └──────────────────┘
"""

from adapta_core.offline.local_database import (
    LocalDatabase,
    open_local_database,
)

from adapta_core.offline.dual_write import (
    DualWriteCoordinator,
    WriteOutcome,
)

from adapta_core.offline.aggregator import (
    StudentReportAggregator,
    merge_records,
    merge_key,
)

from adapta_core.offline.roster_sync import RosterSync

from adapta_core.offline.unified_data_service import UnifiedDataService

__all__ = [
    # Local store
    "LocalDatabase",
    "open_local_database",
    # Writes
    "DualWriteCoordinator",
    "WriteOutcome",
    # Reads
    "StudentReportAggregator",
    "merge_records",
    "merge_key",
    # Imports
    "RosterSync",
    # Entry point
    "UnifiedDataService",
]
