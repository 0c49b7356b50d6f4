# =============================================================================
# adapta_core/offline/dual_write.py
# Dual-Write Coordinator - remote best effort, local authoritative
# =============================================================================
"""
DualWriteCoordinator - applies every student/adaptation/report mutation to the
remote API and to the local store.

Policy:
- The local store is the durability guarantee; its errors propagate, except
  on a create the API already accepted, which reports the local phase failed.
- The remote call is advisory; its failure is reported as ``offline`` on the
  outcome and never blocks or reverses the local write.
- Creates reuse the id the API assigned so both copies stay reconcilable.
- Deletes hit the local store first (cascading for students).
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from adapta_core.errors import LocalStoreError
from adapta_core.models import Entity, require_fields, student_id_of
from adapta_core.services.base_service import BaseService, ServiceResult


@dataclass
class WriteOutcome:
    """Result of one dual write, phase by phase."""
    entity: Entity
    record: Optional[Dict[str, Any]]
    remote: ServiceResult
    local: ServiceResult

    @property
    def success(self) -> bool:
        return self.local.success

    @property
    def offline(self) -> bool:
        """True when only the local copy was written."""
        return not self.remote.success

    @property
    def message(self) -> str:
        if not self.success:
            return self.local.error or "Falha ao salvar localmente"
        return "Salvo localmente (offline)" if self.offline else "Salvo com sucesso"


class DualWriteCoordinator(BaseService):
    """
    Mirrors mutations between the remote API and the local store.

    Usage:
        coordinator = DualWriteCoordinator(api_client, store, session_ctx)
        outcome = coordinator.create_student({"name": "Ana", ...})
        if outcome.offline:
            st.warning(outcome.message)
    """

    def __init__(self, api_client, store, session_context, validate: bool = True):
        super().__init__()
        self.api = api_client
        self.store = store
        self.session_context = session_context
        self.validate = validate

    @property
    def actor(self):
        return self.session_context.user if self.session_context else None

    # =========================================================================
    # GENERIC OPERATIONS
    # =========================================================================

    def create(self, entity: Entity, payload: Mapping[str, Any]) -> WriteOutcome:
        """
        Create remotely, then locally with the remote id when one came back.
        """
        entity = Entity(entity)
        data = {k: v for k, v in dict(payload).items() if k != "id"}
        if self.validate:
            require_fields(entity, data)

        with self.log_operation(f"Creating {entity.value}"):
            remote = self.attempt(
                f"Remote create {entity.value}", self.api.create, entity, self._remote_payload(entity, data)
            )

            local_data = dict(data)
            remote_id = _remote_id(remote.data) if remote.success else None
            if remote_id is not None:
                local_data["id"] = remote_id
            elif remote.success:
                self.logger.info(f"Remote create of {entity.value} returned no id; using a local id")

            try:
                record = self.store.create(entity, local_data, actor=self.actor)
            except LocalStoreError as e:
                if remote_id is None:
                    raise
                # The remote record exists; only the local copy is missing.
                self.logger.warning(
                    f"Remote {entity.value}/{remote_id} created but the local store refused it: {e.message}"
                )
                return WriteOutcome(entity, None, remote, ServiceResult.from_exception(e))

        return WriteOutcome(entity, record, remote, ServiceResult.ok(record))

    def update(
        self,
        entity: Entity,
        record_id: Any,
        updates: Mapping[str, Any],
        student_id: Any = None,
    ) -> WriteOutcome:
        """
        Update remotely by id (nested ``{studentId}/{id}`` retry on 404), then
        apply the same fields locally whatever the remote outcome.
        """
        entity = Entity(entity)
        changes = {k: v for k, v in dict(updates).items() if k != "id"}
        parent_id = student_id if student_id is not None else self._parent_of(entity, record_id)

        with self.log_operation(f"Updating {entity.value}/{record_id}"):
            remote = self.attempt(
                f"Remote update {entity.value}/{record_id}",
                self.api.update, entity, record_id, changes, parent_id=parent_id,
            )
            record = self.store.update(entity, record_id, changes, actor=self.actor)

        local = (
            ServiceResult.ok(record) if record is not None
            else ServiceResult.fail(f"{entity.value}/{record_id} not found locally", error_code="NOT_FOUND")
        )
        return WriteOutcome(entity, record, remote, local)

    def delete(self, entity: Entity, record_id: Any, student_id: Any = None) -> WriteOutcome:
        """
        Delete locally first, then best effort remotely; the remote outcome
        never brings the local record back.
        """
        entity = Entity(entity)
        parent_id = student_id if student_id is not None else self._parent_of(entity, record_id)

        with self.log_operation(f"Deleting {entity.value}/{record_id}"):
            removed = self.store.delete(entity, record_id)
            remote = self.attempt(
                f"Remote delete {entity.value}/{record_id}",
                self.api.delete, entity, record_id, parent_id=parent_id,
            )

        local = (
            ServiceResult.ok(True) if removed
            else ServiceResult.fail(f"{entity.value}/{record_id} not found locally", error_code="NOT_FOUND")
        )
        return WriteOutcome(entity, None, remote, local)

    def _parent_of(self, entity: Entity, record_id: Any) -> Optional[str]:
        if entity is Entity.STUDENTS:
            return None
        current = self.store.get_by_id(entity, record_id)
        return student_id_of(current) if current else None

    def _remote_payload(self, entity: Entity, data: Dict[str, Any]) -> Dict[str, Any]:
        payload = dict(data)
        user = self.actor
        if entity is Entity.REPORTS and user is not None:
            payload.setdefault("teacherId", user.id)
            payload.setdefault("teacherName", user.name)
        return payload

    # =========================================================================
    # STUDENTS
    # =========================================================================

    def create_student(self, student: Mapping[str, Any]) -> WriteOutcome:
        return self.create(Entity.STUDENTS, student)

    def update_student(self, student_id: Any, updates: Mapping[str, Any]) -> WriteOutcome:
        return self.update(Entity.STUDENTS, student_id, updates)

    def delete_student(self, student_id: Any) -> WriteOutcome:
        """Removes the student with all its adaptations and reports."""
        return self.delete(Entity.STUDENTS, student_id)

    # =========================================================================
    # ADAPTATIONS
    # =========================================================================

    def create_adaptation(self, student_id: Any, adaptation: Mapping[str, Any]) -> WriteOutcome:
        return self.create(Entity.ADAPTATIONS, {**adaptation, "studentId": str(student_id)})

    def update_adaptation(self, student_id: Any, adaptation_id: Any, updates: Mapping[str, Any]) -> WriteOutcome:
        return self.update(Entity.ADAPTATIONS, adaptation_id, updates, student_id=student_id)

    def delete_adaptation(self, student_id: Any, adaptation_id: Any) -> WriteOutcome:
        return self.delete(Entity.ADAPTATIONS, adaptation_id, student_id=student_id)

    # =========================================================================
    # REPORTS
    # =========================================================================

    def create_report(self, student_id: Any, report: Mapping[str, Any]) -> WriteOutcome:
        return self.create(Entity.REPORTS, {**report, "studentId": str(student_id)})

    def update_report(self, student_id: Any, report_id: Any, updates: Mapping[str, Any]) -> WriteOutcome:
        return self.update(Entity.REPORTS, report_id, updates, student_id=student_id)

    def delete_report(self, student_id: Any, report_id: Any) -> WriteOutcome:
        return self.delete(Entity.REPORTS, report_id, student_id=student_id)


def _remote_id(body: Any) -> Optional[str]:
    if isinstance(body, dict) and body.get("id") not in (None, ""):
        return str(body["id"])
    return None
