# =============================================================================
# adapta_core/offline/aggregator.py
# Merge-on-Read Aggregator for the student report view
# =============================================================================
"""
StudentReportAggregator - assembles ``{student, adaptations, reports}`` from
the remote API and the local store.

The remote aggregate endpoint answers in several shapes depending on the
deployment: the aggregate object itself, or a bare list of students, reports
or adaptations. Missing pieces are fetched in parallel, any remote failure
degrades that piece to an empty list, and the local records are merged on top
so that anything created offline shows up immediately.
"""

from __future__ import annotations
import json
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from adapta_core.errors import NotFoundError, RemoteError
from adapta_core.models import Entity, StudentReport

logger = logging.getLogger(__name__)

AGGREGATE_KEYS = ("student", "adaptations", "reports")

# Fields that identify what a bare list contains, checked in this order
STUDENT_MARKERS = ("registrationNumber", "birthDate", "course")
REPORT_MARKERS = ("subject", "teacherId", "result")
ADAPTATION_MARKERS = ("justification", "description")


def merge_key(record: Mapping[str, Any]) -> str:
    """id, then a local id marker, then the record's canonical JSON."""
    for field in ("id", "_localId"):
        value = record.get(field)
        if value not in (None, ""):
            return str(value)
    return json.dumps(record, sort_keys=True, default=str)


def merge_records(*sources: Iterable[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    """
    Merge record lists by key; later sources overwrite earlier ones while a
    key keeps the position where it was first seen.
    """
    merged: Dict[str, Dict[str, Any]] = {}
    for source in sources:
        for record in as_list(source):
            if isinstance(record, Mapping):
                merged[merge_key(record)] = dict(record)
    return list(merged.values())


def as_list(value: Any) -> List[Any]:
    if not value:
        return []
    if isinstance(value, list):
        return value
    if isinstance(value, dict):
        return [value]
    return []


def classify(records: List[Any]) -> Optional[Entity]:
    """Guess which collection a bare list holds from its first element."""
    first = records[0] if records else None
    if not isinstance(first, Mapping):
        return None
    if any(first.get(field) for field in STUDENT_MARKERS):
        return Entity.STUDENTS
    if any(first.get(field) for field in REPORT_MARKERS):
        return Entity.REPORTS
    if any(first.get(field) for field in ADAPTATION_MARKERS):
        return Entity.ADAPTATIONS
    return None


def find_student(students: Iterable[Any], student_id: Any) -> Optional[Dict[str, Any]]:
    wanted = str(student_id)
    for student in students or []:
        if isinstance(student, Mapping) and str(student.get("id")) == wanted:
            return dict(student)
    return None


class StudentReportAggregator:
    """
    Usage:
        aggregator = StudentReportAggregator(api_client, store)
        report = aggregator.get_student_report(student_id)
        report.adaptations, report.reports
    """

    MAX_WORKERS = 3

    def __init__(self, api_client, store):
        self.api = api_client
        self.store = store

    def get_student_report(self, student_id: Any) -> StudentReport:
        """Never raises for remote problems; unresolved pieces come back empty."""
        remote = self.fetch_remote(student_id)

        local_student = self.store.get_by_id(Entity.STUDENTS, student_id)
        local_adaptations = self.store.get_by_student(Entity.ADAPTATIONS, student_id)
        local_reports = self.store.get_by_student(Entity.REPORTS, student_id)

        return StudentReport(
            student=local_student or remote.student,
            adaptations=merge_records(remote.adaptations, local_adaptations),
            reports=merge_records(remote.reports, local_reports),
        )

    # =========================================================================
    # REMOTE SIDE
    # =========================================================================

    def fetch_remote(self, student_id: Any) -> StudentReport:
        try:
            body = self.api.get_student_report(student_id)
        except NotFoundError:
            logger.info(f"No aggregate endpoint for {student_id}, fetching pieces")
            return self._fetch_pieces(student_id, students=None, adaptations=None, reports=None)
        except RemoteError as e:
            logger.warning(f"Remote report for {student_id} unavailable: {e}")
            return StudentReport(student=None, adaptations=[], reports=[])

        if isinstance(body, dict) and any(key in body for key in AGGREGATE_KEYS):
            student = body.get("student")
            return StudentReport(
                student=student if isinstance(student, dict) else None,
                adaptations=as_list(body.get("adaptations")),
                reports=as_list(body.get("reports")),
            )

        records = body if isinstance(body, list) else []
        kind = classify(records)
        if kind is Entity.STUDENTS:
            return self._fetch_pieces(student_id, students=records, adaptations=None, reports=None)
        if kind is Entity.REPORTS:
            return self._fetch_pieces(student_id, students=None, adaptations=None, reports=records)
        if kind is Entity.ADAPTATIONS:
            return self._fetch_pieces(student_id, students=None, adaptations=records, reports=None)

        return self._fetch_pieces(student_id, students=None, adaptations=None, reports=None)

    def _fetch_pieces(
        self,
        student_id: Any,
        students: Optional[List[Any]],
        adaptations: Optional[List[Any]],
        reports: Optional[List[Any]],
    ) -> StudentReport:
        """Fetch, in parallel, every piece passed as None."""
        jobs: Dict[str, Callable[[], List[Any]]] = {}
        if students is None:
            jobs["students"] = self.api.list_students
        if adaptations is None:
            jobs["adaptations"] = lambda: self.api.list_adaptations(student_id)
        if reports is None:
            jobs["reports"] = lambda: self.api.list_reports(student_id)

        fetched: Dict[str, List[Any]] = {}
        if jobs:
            with ThreadPoolExecutor(max_workers=self.MAX_WORKERS) as pool:
                futures = {name: pool.submit(_tolerant, name, job) for name, job in jobs.items()}
                fetched = {name: future.result() for name, future in futures.items()}

        return StudentReport(
            student=find_student(students if students is not None else fetched["students"], student_id),
            adaptations=as_list(adaptations if adaptations is not None else fetched["adaptations"]),
            reports=as_list(reports if reports is not None else fetched["reports"]),
        )


def _tolerant(name: str, job: Callable[[], List[Any]]) -> List[Any]:
    try:
        return job() or []
    except RemoteError as e:
        logger.warning(f"Remote {name} unavailable: {e}")
        return []
