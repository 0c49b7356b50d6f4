"""
Session context: the signed-in user and token, mirrored to local storage so a
restart can restore them without signing in again.
"""

from __future__ import annotations
import logging
from typing import Optional

from adapta_core.models import Session, User

logger = logging.getLogger(__name__)

SESSION_KEY = "currentSession"


def session_key(client_id: Optional[str] = None) -> str:
    """Settings key for one client's session; each browser gets its own row."""
    return f"{SESSION_KEY}:{client_id}" if client_id else SESSION_KEY


class SessionContext:
    """
    Holds the active session and persists it through the local store's settings.

    Pass ``client_id`` when several browsers share one store (the Streamlit
    server); without it the single ``currentSession`` row is used.

    Lifecycle:
        ctx = SessionContext(store, client_id=browser_id)
        ctx.restore()        # at startup
        ctx.set(session)     # after sign-in
        ctx.clear()          # on sign-out
    """

    def __init__(self, store, client_id: Optional[str] = None):
        self._store = store
        self.client_id = client_id
        self.key = session_key(client_id)
        self._session: Optional[Session] = None

    @property
    def session(self) -> Optional[Session]:
        return self._session

    @property
    def user(self) -> Optional[User]:
        return self._session.user if self._session else None

    @property
    def token(self) -> Optional[str]:
        return self._session.token if self._session else None

    @property
    def is_authenticated(self) -> bool:
        return self._session is not None

    @property
    def is_coordinator(self) -> bool:
        return bool(self.user and self.user.is_coordinator)

    def restore(self) -> Optional[Session]:
        """
        Load the persisted session.

        A missing token or user, or anything that does not parse, clears the
        stored value and leaves the context signed out.
        """
        raw = self._store.get_setting(self.key)
        if raw is None:
            self._session = None
            return None

        try:
            if not isinstance(raw, dict):
                raise ValueError(f"unexpected session payload: {type(raw).__name__}")
            self._session = Session.from_dict(raw)
        except (ValueError, TypeError) as e:
            logger.warning(f"Discarding stored session: {e}")
            self.clear()
            return None

        logger.info(f"Session restored for {self._session.user.email}")
        return self._session

    def set(self, session: Session) -> Session:
        self._store.set_setting(self.key, session.to_dict())
        self._session = session
        return session

    def clear(self) -> None:
        """Forget the session in memory and on disk; never raises."""
        self._session = None
        try:
            self._store.delete_setting(self.key)
        except Exception as e:
            logger.error(f"Could not clear stored session: {e}")
