from .session import SessionContext, SESSION_KEY, session_key

__all__ = ["SessionContext", "SESSION_KEY", "session_key"]
