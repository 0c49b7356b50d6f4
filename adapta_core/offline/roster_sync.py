# =============================================================================
# adapta_core/offline/roster_sync.py
# Pull users and students from the remote API into the local store
# =============================================================================
"""
RosterSync - one-way imports from the API.

- Users: the remote list replaces the local collection (when non-empty).
- Students: remote students whose registration number is not yet known
  locally are created locally, keeping the remote id.
"""

from __future__ import annotations
from typing import Any, Dict, Iterable, List, Mapping, Optional

from adapta_core.errors import RemoteError
from adapta_core.models import Entity, User, generate_id
from adapta_core.services.base_service import BaseService


def registration_key(student: Mapping[str, Any]) -> str:
    return str(student.get("registrationNumber") or "").strip().lower()


def student_from_remote(remote: Mapping[str, Any]) -> Dict[str, Any]:
    """Map a remote student to the local shape."""
    return {
        "id": remote.get("id"),
        "name": remote.get("name") or "",
        "course": remote.get("course") or "",
        "class": remote.get("class") or remote.get("turma") or "",
        "birthDate": remote.get("birthDate") or "",
        "registrationNumber": str(remote.get("registrationNumber") or remote.get("id") or ""),
        "guardianName": remote.get("guardianName") or "",
        "guardianContact": remote.get("guardianContact") or "",
    }


class RosterSync(BaseService):
    """
    Usage:
        sync = RosterSync(api_client, store, session_ctx)
        sync.import_users()
        created = sync.import_students()
    """

    def __init__(self, api_client, store, session_context=None):
        super().__init__()
        self.api = api_client
        self.store = store
        self.session_context = session_context

    def import_users(self) -> int:
        """
        Replace local users with the API's list.

        Returns:
            Number of users stored (0 when the API failed or had none)
        """
        try:
            remote_users = self.api.list_users()
        except RemoteError as e:
            self.logger.warning(f"User import failed: {e}")
            return 0

        normalized = []
        for raw in remote_users:
            if not isinstance(raw, Mapping):
                continue
            if not (raw.get("id") or raw.get("userId") or raw.get("email")):
                raw = {**raw, "id": generate_id()}
            try:
                normalized.append(User.from_dict(raw).to_dict())
            except ValueError as e:
                self.logger.debug(f"Skipping remote user: {e}")

        if not normalized:
            return 0

        stored = self.store.replace_all(Entity.USERS, normalized)
        self.logger.info(f"Imported {stored} users from the API")
        return stored

    def list_importable_students(self) -> List[Dict[str, Any]]:
        """Remote students whose registration number is not in the local store."""
        with self.log_operation("Listing remote students"):
            remote = self.api.list_students()

        known = {registration_key(s) for s in self.store.get_all(Entity.STUDENTS)}
        known.discard("")
        return [
            dict(s) for s in remote
            if isinstance(s, Mapping) and (not registration_key(s) or registration_key(s) not in known)
        ]

    def import_students(self, students: Optional[Iterable[Mapping[str, Any]]] = None) -> List[Dict[str, Any]]:
        """
        Create local copies of remote students.

        Args:
            students: Remote records to import (defaults to every importable one)

        Returns:
            The records created locally
        """
        candidates = list(students) if students is not None else self.list_importable_students()
        actor = self.session_context.user if self.session_context else None

        known = {registration_key(s) for s in self.store.get_all(Entity.STUDENTS)}
        known.discard("")

        created = []
        for remote in candidates:
            data = student_from_remote(remote)
            key = registration_key(data)
            if key and key in known:
                continue
            if data["id"] is not None and self.store.get_by_id(Entity.STUDENTS, data["id"]):
                data.pop("id")
            record = self.store.create(Entity.STUDENTS, data, actor=actor)
            created.append(record)
            if key:
                known.add(key)

        self.logger.info(f"Imported {len(created)} students from the API")
        return created
