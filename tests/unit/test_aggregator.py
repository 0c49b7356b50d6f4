# =============================================================================
# tests/unit/test_aggregator.py
# Unit Tests for the Merge-on-Read Aggregator
# =============================================================================

import pytest

from adapta_core.errors import EnvelopeShapeError, HttpError, NetworkError, NotFoundError
from adapta_core.models import Entity
from adapta_core.offline.aggregator import (
    StudentReportAggregator,
    classify,
    merge_key,
    merge_records,
)


REMOTE_STUDENT = {
    "id": "s1", "name": "Ana", "course": "EM", "class": "2A",
    "birthDate": "2006-05-12", "registrationNumber": "2021001",
}
REMOTE_ADAPTATION = {"id": "a1", "studentId": "s1", "description": "Prova ampliada", "justification": "Baixa visão"}
REMOTE_REPORT = {"id": "r1", "studentId": "s1", "subject": "Química", "teacherId": "t1", "result": "positivo"}


@pytest.fixture
def aggregator(mock_api, store):
    return StudentReportAggregator(mock_api, store)


class TestMergeRecords:
    """Test the pure merge function"""

    def test_later_source_wins_first_position_kept(self):
        merged = merge_records(
            [{"id": "1", "v": "remote"}, {"id": "2", "v": "remote"}],
            [{"id": "2", "v": "local"}, {"id": "3", "v": "local"}, {"id": "1", "v": "local"}],
        )

        assert merged == [
            {"id": "1", "v": "local"},
            {"id": "2", "v": "local"},
            {"id": "3", "v": "local"},
        ]

    def test_idempotent(self):
        local = [{"id": "1"}, {"_localId": "tmp-1", "x": 1}]

        once = merge_records([{"id": "0"}], local)

        assert merge_records(once, local) == once

    def test_key_fallbacks(self):
        assert merge_key({"id": 5}) == "5"
        assert merge_key({"_localId": "tmp"}) == "tmp"
        assert merge_key({"b": 1, "a": 2}) == merge_key({"a": 2, "b": 1})

    def test_ignores_non_mappings(self):
        assert merge_records([{"id": "1"}, "junk", None], None) == [{"id": "1"}]


class TestClassify:

    def test_students(self):
        assert classify([REMOTE_STUDENT]) is Entity.STUDENTS

    def test_reports(self):
        assert classify([REMOTE_REPORT]) is Entity.REPORTS

    def test_adaptations(self):
        assert classify([REMOTE_ADAPTATION]) is Entity.ADAPTATIONS

    def test_unknown(self):
        assert classify([]) is None
        assert classify([{"id": "x"}]) is None
        assert classify(["text"]) is None


class TestRemoteShapes:
    """Test how each aggregate endpoint answer is resolved"""

    def test_aggregate_object(self, aggregator, mock_api):
        mock_api.get_student_report.return_value = {
            "student": REMOTE_STUDENT,
            "adaptations": [REMOTE_ADAPTATION],
            "reports": [REMOTE_REPORT],
        }

        report = aggregator.get_student_report("s1")

        assert report.student == REMOTE_STUDENT
        assert report.adaptations == [REMOTE_ADAPTATION]
        assert report.reports == [REMOTE_REPORT]
        mock_api.list_students.assert_not_called()

    def test_bare_report_list_fetches_the_rest(self, aggregator, mock_api):
        mock_api.get_student_report.return_value = [REMOTE_REPORT]
        mock_api.list_students.return_value = [{"id": "other"}, REMOTE_STUDENT]
        mock_api.list_adaptations.return_value = [REMOTE_ADAPTATION]

        report = aggregator.get_student_report("s1")

        assert report.student == REMOTE_STUDENT
        assert report.adaptations == [REMOTE_ADAPTATION]
        assert report.reports == [REMOTE_REPORT]
        mock_api.list_reports.assert_not_called()

    def test_bare_student_list(self, aggregator, mock_api):
        mock_api.get_student_report.return_value = [REMOTE_STUDENT]
        mock_api.list_reports.return_value = [REMOTE_REPORT]

        report = aggregator.get_student_report("s1")

        assert report.student == REMOTE_STUDENT
        assert report.reports == [REMOTE_REPORT]
        mock_api.list_students.assert_not_called()
        mock_api.list_adaptations.assert_called_once_with("s1")

    def test_bare_adaptation_list(self, aggregator, mock_api):
        mock_api.get_student_report.return_value = [REMOTE_ADAPTATION]

        report = aggregator.get_student_report("s1")

        assert report.adaptations == [REMOTE_ADAPTATION]
        mock_api.list_adaptations.assert_not_called()

    def test_404_fetches_all_pieces(self, aggregator, mock_api):
        mock_api.get_student_report.side_effect = NotFoundError()
        mock_api.list_students.return_value = [REMOTE_STUDENT]
        mock_api.list_adaptations.return_value = [REMOTE_ADAPTATION]
        mock_api.list_reports.return_value = [REMOTE_REPORT]

        report = aggregator.get_student_report("s1")

        assert report.to_dict() == {
            "student": REMOTE_STUDENT,
            "adaptations": [REMOTE_ADAPTATION],
            "reports": [REMOTE_REPORT],
        }

    def test_empty_list_fetches_all_pieces(self, aggregator, mock_api):
        mock_api.get_student_report.return_value = []
        mock_api.list_reports.return_value = [REMOTE_REPORT]

        report = aggregator.get_student_report("s1")

        assert report.reports == [REMOTE_REPORT]
        mock_api.list_students.assert_called_once()

    def test_failing_pieces_become_empty(self, aggregator, mock_api):
        mock_api.get_student_report.side_effect = NotFoundError()
        mock_api.list_students.side_effect = NetworkError("down")
        mock_api.list_adaptations.side_effect = EnvelopeShapeError("odd")
        mock_api.list_reports.return_value = [REMOTE_REPORT]

        report = aggregator.get_student_report("s1")

        assert report.student is None
        assert report.adaptations == []
        assert report.reports == [REMOTE_REPORT]

    def test_server_error_gives_empty_remote(self, aggregator, mock_api):
        mock_api.get_student_report.side_effect = HttpError("boom", status=500)

        report = aggregator.get_student_report("s1")

        assert report.student is None
        assert report.adaptations == [] and report.reports == []
        mock_api.list_students.assert_not_called()


class TestLocalMerge:
    """Local records are merged over remote ones"""

    def test_local_overrides_and_appends(self, aggregator, mock_api, store):
        store.create(Entity.STUDENTS, {**REMOTE_STUDENT, "name": "Ana (local)"})
        store.create(Entity.ADAPTATIONS, {**REMOTE_ADAPTATION, "description": "Editada offline"})
        store.create(Entity.REPORTS, {"id": "r-local", "studentId": "s1", "subject": "Arte"})
        mock_api.get_student_report.return_value = {
            "student": REMOTE_STUDENT,
            "adaptations": [REMOTE_ADAPTATION],
            "reports": [REMOTE_REPORT],
        }

        report = aggregator.get_student_report("s1")

        assert report.student["name"] == "Ana (local)"
        assert [a["description"] for a in report.adaptations] == ["Editada offline"]
        assert [r["id"] for r in report.reports] == ["r1", "r-local"]

    def test_repeated_reads_give_the_same_records(self, aggregator, mock_api, store):
        unkeyed = {"studentId": "s1", "description": "Leitura em voz alta", "justification": "Dislexia"}
        store.create(Entity.ADAPTATIONS, {**REMOTE_ADAPTATION, "description": "Editada offline"})
        store.create(Entity.ADAPTATIONS, {"id": "a-local", "studentId": "s1", "description": "Tempo extra"})
        mock_api.get_student_report.return_value = {
            "student": REMOTE_STUDENT,
            "adaptations": [REMOTE_ADAPTATION, unkeyed, dict(unkeyed)],
            "reports": [REMOTE_REPORT],
        }

        first = aggregator.get_student_report("s1")
        second = aggregator.get_student_report("s1")

        keys = [merge_key(a) for a in first.adaptations]
        assert len(keys) == len(set(keys)) == 3
        assert keys == [merge_key(a) for a in second.adaptations]
        assert first.adaptations == second.adaptations
        assert [r["id"] for r in first.reports] == [r["id"] for r in second.reports] == ["r1"]

    def test_fully_offline_uses_local(self, offline_api, seeded_store):
        student = seeded_store.get_all(Entity.STUDENTS)[0]

        report = StudentReportAggregator(offline_api, seeded_store).get_student_report(student["id"])

        assert report.student == student
        assert len(report.adaptations) == 1
        assert len(report.reports) == 1

    def test_unknown_student(self, aggregator):
        report = aggregator.get_student_report("nobody")

        assert report.student is None
        assert report.adaptations == [] and report.reports == []
