# =============================================================================
# adapta_core/offline/unified_data_service.py
# Unified Data Service - Single entry point for the UI
# =============================================================================
"""
UnifiedDataService - wires the local store, API client, session, sign-in,
dual writes, merged reads and roster imports together.

Usage:
------
from adapta_core.config import load_config
from adapta_core.offline import UnifiedDataService

service = UnifiedDataService.from_config(load_config())
service.start()                      # seed + restore session
service.sign_in("professor@escola.com", "prof123")
report = service.get_student_report(student_id)
outcome = service.writes.create_report(student_id, {...})
"""

from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional

from adapta_core.api.client import APIConfig, RemoteApiClient
from adapta_core.auth.authentication import FallbackAuthenticator, build_strategies
from adapta_core.config import AppConfig
from adapta_core.models import Entity, Session, StudentReport
from adapta_core.offline.aggregator import StudentReportAggregator
from adapta_core.offline.dual_write import DualWriteCoordinator
from adapta_core.offline.local_database import LocalDatabase
from adapta_core.offline.roster_sync import RosterSync
from adapta_core.state.session import SessionContext

logger = logging.getLogger(__name__)


class UnifiedDataService:
    """
    Composition root for the core. Each component stays reachable as an
    attribute so views can call it directly.
    """

    def __init__(
        self,
        config: AppConfig,
        store: LocalDatabase,
        api: RemoteApiClient,
        client_id: Optional[str] = None,
    ):
        self.config = config
        self.store = store
        self.api = api
        self.session = SessionContext(store, client_id=client_id)
        self.auth = FallbackAuthenticator(build_strategies(config, api, store), self.session)
        self.writes = DualWriteCoordinator(api, store, self.session)
        self.reads = StudentReportAggregator(api, store)
        self.roster = RosterSync(api, store, self.session)
        self._started = False

    @classmethod
    def from_config(cls, config: AppConfig, client_id: Optional[str] = None) -> UnifiedDataService:
        store = LocalDatabase(config.db_path)
        api = RemoteApiClient(APIConfig.from_app_config(config))
        return cls(config, store, api, client_id=client_id)

    def start(self) -> Optional[Session]:
        """
        Create the schema, seed defaults and restore any persisted session.

        Returns:
            The restored session, if there was one
        """
        if not self._started:
            self.store.initialize()
            self.store.seed()
            self._started = True
            logger.info(f"Data service started (API: {self.config.api_url})")
        return self.auth.check_session()

    # =========================================================================
    # SESSION
    # =========================================================================

    def sign_in(self, email: str, password: str) -> Session:
        # No-op unless the user collection is empty
        self.store.initialize_default_users()
        return self.auth.sign_in(email, password)

    def sign_out(self) -> None:
        self.auth.sign_out()

    # =========================================================================
    # READS
    # =========================================================================

    def list_students(self) -> List[Dict[str, Any]]:
        return self.store.get_all(Entity.STUDENTS)

    def get_student_report(self, student_id: Any) -> StudentReport:
        return self.reads.get_student_report(student_id)

    def get_status(self) -> Dict[str, Any]:
        """Status information for the sidebar."""
        user = self.session.user
        return {
            "api_url": self.config.api_url,
            "db_path": str(self.store.db_path),
            "signed_in_as": user.email if user else None,
            "role": user.role.value if user else None,
            "students": self.store.count(Entity.STUDENTS),
            "adaptations": self.store.count(Entity.ADAPTATIONS),
            "reports": self.store.count(Entity.REPORTS),
        }

    def close(self) -> None:
        self.api.session.close()
        self.store.close()
