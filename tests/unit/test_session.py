# =============================================================================
# tests/unit/test_session.py
# Unit Tests for the Session Context
# =============================================================================

from unittest.mock import MagicMock

from adapta_core.models import Role, Session, User
from adapta_core.state.session import SESSION_KEY, SessionContext, session_key


def _session(role=Role.COORDINATOR):
    return Session(token="tok", user=User(id="1", email="c@escola.com", name="C", role=role))


class TestSessionContext:

    def test_starts_signed_out(self, session_context):
        assert session_context.session is None
        assert session_context.user is None
        assert session_context.token is None
        assert not session_context.is_authenticated
        assert not session_context.is_coordinator

    def test_set_persists(self, session_context, store):
        session_context.set(_session())

        assert session_context.token == "tok"
        assert session_context.is_coordinator
        assert store.get_setting(SESSION_KEY) == {
            "token": "tok",
            "user": {"id": "1", "email": "c@escola.com", "name": "C", "role": "coordinator"},
        }

    def test_restore_from_store(self, store):
        SessionContext(store).set(_session(Role.TEACHER))

        restored = SessionContext(store).restore()

        assert restored == _session(Role.TEACHER)

    def test_restore_nothing(self, session_context):
        assert session_context.restore() is None

    def test_restore_missing_token_clears(self, session_context, store):
        store.set_setting(SESSION_KEY, {"user": {"id": "1", "email": "c@escola.com"}})

        assert session_context.restore() is None
        assert store.get_setting(SESSION_KEY) is None

    def test_restore_garbage_clears(self, session_context, store):
        store.set_setting(SESSION_KEY, "not json {")

        assert session_context.restore() is None
        assert store.get_setting(SESSION_KEY) is None

    def test_restore_user_without_identity_clears(self, session_context, store):
        store.set_setting(SESSION_KEY, {"token": "t", "user": {"name": "Nobody"}})

        assert session_context.restore() is None
        assert not session_context.is_authenticated

    def test_restore_normalizes_portuguese_role(self, session_context, store):
        store.set_setting(SESSION_KEY, {"token": "t", "user": {"id": "2", "email": "p@e.com", "role": "professor"}})

        assert session_context.restore().user.role is Role.TEACHER

    def test_session_key(self):
        assert session_key() == SESSION_KEY
        assert session_key("abc123") == "currentSession:abc123"

    def test_clients_do_not_share_sessions(self, store):
        first = SessionContext(store, client_id="browser-a")
        first.set(_session())

        second = SessionContext(store, client_id="browser-b")
        assert second.restore() is None

        second.set(_session(Role.TEACHER))
        second.clear()

        assert SessionContext(store, client_id="browser-a").restore() == _session()
        assert SessionContext(store).restore() is None

    def test_clear_never_raises(self):
        broken_store = MagicMock()
        broken_store.delete_setting.side_effect = RuntimeError("disk gone")
        context = SessionContext(broken_store)

        context.clear()

        assert not context.is_authenticated
