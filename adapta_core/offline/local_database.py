# =============================================================================
# adapta_core/offline/local_database.py
# Local SQLite Record Store
# =============================================================================
"""
LocalDatabase - the authoritative on-device copy of every record.

Features:
- One ordered collection per entity (users, students, adaptations, reports)
- Records stored as JSON documents keyed by their identifier
- Cascading delete of a student's adaptations and reports
- Idempotent seeding of default users and sample data
- Key/value settings table (holds the persisted session)
- Thread-local connections
"""

from __future__ import annotations
import json
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union
import logging

import pandas as pd

from adapta_core.config import DEFAULT_DB_PATH
from adapta_core.errors import LocalStoreError
from adapta_core.models import (
    CASCADE_CHILDREN,
    ENTITY_DEFAULTS,
    Entity,
    ReportResult,
    Role,
    User,
    generate_id,
    now_iso,
    student_id_of,
    today_iso,
)

logger = logging.getLogger(__name__)

EntityLike = Union[Entity, str]


class LocalDatabase:
    """
    Local SQLite store for students, adaptations, reports and users.

    Records keep the insertion order of their collection; updates happen in
    place so a record never moves.
    """

    DEFAULT_DB_PATH = DEFAULT_DB_PATH

    SCHEMA = {
        "records": """
            CREATE TABLE IF NOT EXISTS records (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                entity TEXT NOT NULL,
                record_id TEXT NOT NULL,
                student_id TEXT,
                data_json TEXT NOT NULL,
                UNIQUE(entity, record_id)
            )
        """,
        "records_student_index": """
            CREATE INDEX IF NOT EXISTS idx_records_student
            ON records (entity, student_id)
        """,
        "app_settings": """
            CREATE TABLE IF NOT EXISTS app_settings (
                key TEXT PRIMARY KEY,
                value TEXT,
                updated_at TEXT DEFAULT CURRENT_TIMESTAMP
            )
        """,
    }

    def __init__(self, db_path: Optional[Path] = None):
        """
        Initialize local database.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path) if db_path else self.DEFAULT_DB_PATH
        self._ensure_directory()
        self._local = threading.local()
        self._initialized = False

    def _ensure_directory(self) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def _get_connection(self) -> sqlite3.Connection:
        """Get thread-local database connection."""
        if getattr(self._local, "connection", None) is None:
            self._local.connection = sqlite3.connect(
                str(self.db_path),
                check_same_thread=False,
            )
            self._local.connection.row_factory = sqlite3.Row
        return self._local.connection

    @contextmanager
    def transaction(self):
        """Context manager for database transactions."""
        conn = self._get_connection()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise

    def initialize(self) -> None:
        """Create the schema."""
        if self._initialized:
            return

        with self.transaction() as conn:
            for name, ddl in self.SCHEMA.items():
                conn.execute(ddl)
                logger.debug(f"Created/verified: {name}")

        self._initialized = True
        logger.info(f"Local database initialized at: {self.db_path}")

    # =========================================================================
    # READS
    # =========================================================================

    @staticmethod
    def _key(entity: EntityLike) -> str:
        return Entity(entity).value

    def get_all(self, entity: EntityLike) -> List[Dict[str, Any]]:
        """Return every record of a collection in insertion order."""
        rows = self._get_connection().execute(
            "SELECT data_json FROM records WHERE entity = ? ORDER BY seq",
            [self._key(entity)],
        ).fetchall()
        return [json.loads(row["data_json"]) for row in rows]

    def get_by_id(self, entity: EntityLike, record_id: Any) -> Optional[Dict[str, Any]]:
        row = self._get_connection().execute(
            "SELECT data_json FROM records WHERE entity = ? AND record_id = ?",
            [self._key(entity), str(record_id)],
        ).fetchone()
        return json.loads(row["data_json"]) if row else None

    def get_by_student(self, entity: EntityLike, student_id: Any) -> List[Dict[str, Any]]:
        """Return the adaptations or reports that belong to a student."""
        rows = self._get_connection().execute(
            "SELECT data_json FROM records WHERE entity = ? AND student_id = ? ORDER BY seq",
            [self._key(entity), str(student_id)],
        ).fetchall()
        return [json.loads(row["data_json"]) for row in rows]

    def count(self, entity: EntityLike) -> int:
        row = self._get_connection().execute(
            "SELECT COUNT(*) AS count FROM records WHERE entity = ?",
            [self._key(entity)],
        ).fetchone()
        return row["count"] if row else 0

    def to_dataframe(self, entity: EntityLike) -> pd.DataFrame:
        """Load a collection into a DataFrame for list views."""
        return pd.DataFrame.from_records(self.get_all(entity))

    # =========================================================================
    # WRITES
    # =========================================================================

    def create(
        self,
        entity: EntityLike,
        partial: Mapping[str, Any],
        actor: Optional[User] = None,
    ) -> Dict[str, Any]:
        """
        Insert a new record.

        Args:
            entity: Target collection
            partial: Submitted fields; an ``id`` is kept, otherwise one is generated
            actor: Signed-in user, stamped as ``createdBy`` (and as the report author)

        Returns:
            The stored record

        Raises:
            LocalStoreError: If a record with the same id already exists
        """
        entity = Entity(entity)
        record = self._build_record(entity, partial, actor)

        try:
            with self.transaction() as conn:
                self._insert(conn, entity, record)
        except sqlite3.IntegrityError:
            raise LocalStoreError(
                "Record already exists",
                entity=entity.value,
                record_id=record["id"],
            )

        logger.debug(f"Created {entity.value}/{record['id']}")
        return record

    def _build_record(
        self,
        entity: Entity,
        partial: Mapping[str, Any],
        actor: Optional[User],
    ) -> Dict[str, Any]:
        record: Dict[str, Any] = dict(ENTITY_DEFAULTS.get(entity, {}))
        record.update({k: v for k, v in partial.items() if v is not None})
        record["id"] = str(partial.get("id") or generate_id())

        if entity is Entity.USERS:
            return record

        if entity in (Entity.ADAPTATIONS, Entity.REPORTS):
            record["date"] = partial.get("date") or today_iso()

        if entity is Entity.REPORTS:
            if not record.get("teacherId"):
                record["teacherId"] = actor.id if actor else ""
            if not record.get("teacherName"):
                record["teacherName"] = actor.name if actor else ""
        else:
            record["createdBy"] = actor.id if actor else partial.get("createdBy", "")

        record["createdAt"] = partial.get("createdAt") or now_iso()
        return record

    def _insert(self, conn: sqlite3.Connection, entity: Entity, record: Dict[str, Any]) -> None:
        conn.execute(
            """
            INSERT INTO records (entity, record_id, student_id, data_json)
            VALUES (?, ?, ?, ?)
            """,
            [
                entity.value,
                record["id"],
                student_id_of(record),
                json.dumps(record, default=str),
            ],
        )

    def update(
        self,
        entity: EntityLike,
        record_id: Any,
        partial: Mapping[str, Any],
        actor: Optional[User] = None,
    ) -> Optional[Dict[str, Any]]:
        """
        Merge ``partial`` into an existing record, keeping its id.

        Returns:
            The updated record, or None if no record has that id
        """
        entity = Entity(entity)
        current = self.get_by_id(entity, record_id)
        if current is None:
            return None

        updated = {**current, **dict(partial), "id": current["id"], "updatedAt": now_iso()}
        if entity is Entity.STUDENTS:
            updated["updatedBy"] = actor.id if actor else None

        with self.transaction() as conn:
            conn.execute(
                """
                UPDATE records SET data_json = ?, student_id = ?
                WHERE entity = ? AND record_id = ?
                """,
                [
                    json.dumps(updated, default=str),
                    student_id_of(updated),
                    entity.value,
                    current["id"],
                ],
            )

        return updated

    def delete(self, entity: EntityLike, record_id: Any) -> bool:
        """
        Delete a record; deleting a student also removes its adaptations and reports.

        Returns:
            False if no record has that id
        """
        entity = Entity(entity)
        with self.transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM records WHERE entity = ? AND record_id = ?",
                [entity.value, str(record_id)],
            )
            removed = cursor.rowcount > 0

            if removed and entity is Entity.STUDENTS:
                for child in CASCADE_CHILDREN:
                    self.delete_by_student(child, record_id, conn=conn)

        if removed:
            logger.debug(f"Deleted {entity.value}/{record_id}")
        return removed

    def delete_by_student(self, entity: EntityLike, student_id: Any, conn=None) -> int:
        """
        Remove a student's adaptations or reports; returns how many went.

        ``conn`` joins an open transaction (the student cascade runs this way).
        """
        if conn is None:
            with self.transaction() as conn:
                return self.delete_by_student(entity, student_id, conn=conn)
        cursor = conn.execute(
            "DELETE FROM records WHERE entity = ? AND student_id = ?",
            [self._key(entity), str(student_id)],
        )
        return cursor.rowcount

    def replace_all(self, entity: EntityLike, records: Iterable[Mapping[str, Any]]) -> int:
        """Swap a whole collection for ``records`` (ids are generated when missing)."""
        entity = Entity(entity)
        stored = 0
        with self.transaction() as conn:
            conn.execute("DELETE FROM records WHERE entity = ?", [entity.value])
            for data in records:
                record = dict(data)
                record["id"] = str(record.get("id") or generate_id())
                self._insert(conn, entity, record)
                stored += 1
        return stored

    # =========================================================================
    # SEEDING
    # =========================================================================

    def initialize_default_users(self) -> bool:
        """
        Seed one coordinator and one teacher when the user collection is empty.

        Returns:
            True if users were created
        """
        if self.count(Entity.USERS) > 0:
            return False

        with self.transaction() as conn:
            for user in (
                {"email": "coordenador@escola.com", "name": "Maria Silva",
                 "role": Role.COORDINATOR.value},
                {"email": "professor@escola.com", "name": "João Santos",
                 "role": Role.TEACHER.value},
            ):
                self._insert(conn, Entity.USERS, {"id": generate_id(), **user})

        logger.info("Seeded default users")
        return True

    def initialize_default_data(self) -> bool:
        """
        Seed two sample students, plus one adaptation and one report for the
        first of them, when the student collection is empty.

        Returns:
            True if sample data was created
        """
        if self.count(Entity.STUDENTS) > 0:
            return False

        users = self.get_all(Entity.USERS)
        coordinator = next((u for u in users if u.get("role") == Role.COORDINATOR.value), None)
        teacher = next((u for u in users if u.get("role") == Role.TEACHER.value), None)
        coordinator_id = coordinator["id"] if coordinator else ""
        created_at = now_iso()

        students = [
            {
                "id": generate_id(),
                "name": "Ana Pereira",
                "course": "Ensino Médio",
                "class": "2A",
                "birthDate": "2006-05-12",
                "registrationNumber": "2021001",
                "guardianName": "Carlos Pereira",
                "guardianContact": "11999998888",
                "createdAt": created_at,
                "createdBy": coordinator_id,
            },
            {
                "id": generate_id(),
                "name": "Bruno Costa",
                "course": "Ensino Médio",
                "class": "2B",
                "birthDate": "2005-08-20",
                "registrationNumber": "2021002",
                "guardianName": "Mariana Costa",
                "guardianContact": "11988887777",
                "createdAt": created_at,
                "createdBy": coordinator_id,
            },
        ]
        first_id = students[0]["id"]

        with self.transaction() as conn:
            for student in students:
                self._insert(conn, Entity.STUDENTS, student)

            self._insert(conn, Entity.ADAPTATIONS, {
                "id": generate_id(),
                "studentId": first_id,
                "description": "Tempo extra para provas",
                "justification": "Necessidade de processamento mais lento",
                "date": today_iso(),
                "createdAt": created_at,
                "createdBy": coordinator_id,
            })

            self._insert(conn, Entity.REPORTS, {
                "id": generate_id(),
                "studentId": first_id,
                "teacherId": teacher["id"] if teacher else "",
                "teacherName": teacher["name"] if teacher else "João Santos",
                "subject": "Matemática",
                "date": today_iso(),
                "result": ReportResult.NEUTRAL.value,
                "description": "Observações sobre rendimento",
                "createdAt": created_at,
            })

        logger.info("Seeded sample students, adaptation and report")
        return True

    def seed(self) -> None:
        """Run both seeders; users first so sample data can reference them."""
        self.initialize_default_users()
        self.initialize_default_data()

    # =========================================================================
    # SETTINGS
    # =========================================================================

    def get_setting(self, key: str, default: Any = None) -> Any:
        """Get an app setting."""
        row = self._get_connection().execute(
            "SELECT value FROM app_settings WHERE key = ?",
            [key],
        ).fetchone()
        if row is None:
            return default
        try:
            return json.loads(row["value"])
        except (TypeError, json.JSONDecodeError):
            return row["value"]

    def set_setting(self, key: str, value: Any) -> None:
        """Set an app setting."""
        value_str = json.dumps(value) if not isinstance(value, str) else value
        with self.transaction() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO app_settings (key, value, updated_at)
                VALUES (?, ?, ?)
                """,
                [key, value_str, now_iso()],
            )

    def delete_setting(self, key: str) -> None:
        with self.transaction() as conn:
            conn.execute("DELETE FROM app_settings WHERE key = ?", [key])

    def close(self) -> None:
        """Close this thread's connection."""
        if getattr(self._local, "connection", None) is not None:
            self._local.connection.close()
            self._local.connection = None


def open_local_database(db_path: Optional[Path] = None, seed: bool = True) -> LocalDatabase:
    """
    Open, initialize and (optionally) seed a LocalDatabase.

    Usage:
        store = open_local_database(config.db_path)
        students = store.get_all(Entity.STUDENTS)
    """
    database = LocalDatabase(db_path)
    database.initialize()
    if seed:
        database.seed()
    return database
