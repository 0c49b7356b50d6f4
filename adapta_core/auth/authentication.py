"""
Sign-in for the curricular adaptations tracker.

⚠️ PROTOTYPE AUTH - tokens are opaque markers, not signed credentials.

Sign-in walks an ordered list of strategies and stops at the first one that
produces a session:

1. Supabase Auth session (only when Supabase credentials are configured)
2. API session: POST /auth, then GET /me with the access token
3. API user lookup by e-mail (no password check)
4. Local credential table checked against the local user collection

Each strategy is a callable ``(Credentials) -> Session`` that raises on
failure, so every stage can be tested on its own.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

import bcrypt

from adapta_core.config import AppConfig
from adapta_core.errors import AdaptaError, AuthenticationError
from adapta_core.models import Entity, Session, User

logger = logging.getLogger(__name__)


# ==================== LOCAL CREDENTIALS ====================
# Demo accounts that work without any network:
#   coordenador@escola.com / coord123
#   professor@escola.com   / prof123

LOCAL_CREDENTIALS: Dict[str, str] = {
    "coordenador@escola.com": "$2b$12$zcYny92tfg.K5Oi13pE86e8Xeq.ocJqVDm0c0o.YBlSjYLfhJzTS6",  # coord123
    "professor@escola.com": "$2b$12$dYbpiaJRCe22t4xu8ppzc.kipmy3BPBOjswzLn5yKbYKOarI7KFV2",  # prof123
}


@dataclass(frozen=True)
class Credentials:
    email: str
    password: str

    def __repr__(self) -> str:
        return f"Credentials(email={self.email!r})"


def _profile_from_body(body: Any) -> User:
    """``/me`` answers either ``{"user": {...}}`` or the profile itself."""
    if not isinstance(body, dict):
        raise AuthenticationError("Malformed profile response")
    profile = body.get("user") if isinstance(body.get("user"), dict) else body
    try:
        return User.from_dict(profile)
    except ValueError as e:
        raise AuthenticationError(f"Malformed profile response: {e}")


# ==================== STRATEGIES ====================

class SupabaseSessionStrategy:
    """Supabase Auth password sign-in followed by the API profile fetch."""

    name = "supabase_session"

    def __init__(self, config: AppConfig, api_client):
        self.config = config
        self.api = api_client
        self._client = None

    def _get_client(self):
        if self._client is None:
            from supabase import create_client
            self._client = create_client(self.config.supabase_url, self.config.supabase_key)
        return self._client

    def __call__(self, credentials: Credentials) -> Session:
        response = self._get_client().auth.sign_in_with_password(
            {"email": credentials.email, "password": credentials.password}
        )
        token = getattr(getattr(response, "session", None), "access_token", None)
        if not token:
            raise AuthenticationError("Supabase returned no session", strategy=self.name)
        return Session(token=token, user=_profile_from_body(self.api.get_me(token)))


class ApiSessionStrategy:
    """POST /auth for an access token, then GET /me for the profile."""

    name = "api_session"

    def __init__(self, api_client):
        self.api = api_client

    def __call__(self, credentials: Credentials) -> Session:
        body = self.api.authenticate(credentials.email, credentials.password)
        token = None
        if isinstance(body, dict):
            token = body.get("access_token") or body.get("accessToken") or body.get("token")
            if not token and isinstance(body.get("session"), dict):
                token = body["session"].get("access_token")
        if not token:
            raise AuthenticationError("No access token in /auth response", strategy=self.name)
        return Session(token=str(token), user=_profile_from_body(self.api.get_me(token)))


class RemoteUserLookupStrategy:
    """Accept any user the API knows by e-mail; the password is not checked remotely."""

    name = "api_user_lookup"

    def __init__(self, api_client):
        self.api = api_client

    def __call__(self, credentials: Credentials) -> Session:
        wanted = credentials.email.strip().lower()
        for candidate in self.api.list_users(email=credentials.email):
            if not isinstance(candidate, dict):
                continue
            email = str(candidate.get("email") or "")
            if email and email.lower() == wanted:
                return Session(token=f"mock-api-{email}", user=User.from_dict(candidate))
        raise AuthenticationError("User not found on the API", strategy=self.name)


class LocalCredentialStrategy:
    """Check the fixed credential table, then load the user from the local store."""

    name = "local_credentials"

    def __init__(self, store, credentials: Optional[Dict[str, str]] = None):
        self.store = store
        self.credentials = credentials if credentials is not None else LOCAL_CREDENTIALS

    def __call__(self, credentials: Credentials) -> Session:
        hashed = self.credentials.get(credentials.email)
        if not hashed or not bcrypt.checkpw(credentials.password.encode(), hashed.encode()):
            raise AuthenticationError("Invalid local credentials", strategy=self.name)

        record = next(
            (u for u in self.store.get_all(Entity.USERS) if u.get("email") == credentials.email),
            None,
        )
        if record is None:
            raise AuthenticationError("No local user for these credentials", strategy=self.name)

        user = User.from_dict(record)
        return Session(token=f"mock-token-{user.id}", user=user)


# ==================== AUTHENTICATOR ====================

class FallbackAuthenticator:
    """
    Runs the strategies in order and persists the first session obtained.

    Usage:
        auth = FallbackAuthenticator(build_strategies(config, api, store), session_ctx)
        session = auth.sign_in("professor@escola.com", "prof123")
    """

    def __init__(self, strategies: Sequence, session_context):
        self.strategies: List = list(strategies)
        self.session_context = session_context

    def sign_in(self, email: str, password: str) -> Session:
        """
        Raises:
            AuthenticationError: When no strategy succeeded
        """
        credentials = Credentials(email=(email or "").strip(), password=password or "")

        for strategy in self.strategies:
            name = getattr(strategy, "name", type(strategy).__name__)
            try:
                session = strategy(credentials)
            except AdaptaError as e:
                logger.info(f"Sign-in via {name} failed: {e.message}")
                continue
            except Exception as e:
                logger.warning(f"Sign-in via {name} failed unexpectedly: {e}")
                continue

            self.session_context.set(session)
            logger.info(f"Signed in {session.user.email} via {name}")
            return session

        raise AuthenticationError()

    def sign_out(self) -> None:
        self.session_context.clear()

    def check_session(self) -> Optional[Session]:
        """Restore the persisted session at startup."""
        return self.session_context.restore()


def build_strategies(config: AppConfig, api_client, store) -> List:
    """Default strategy order; Supabase is only tried when configured."""
    strategies: List = []
    if config.supabase_enabled:
        strategies.append(SupabaseSessionStrategy(config, api_client))
    strategies.extend([
        ApiSessionStrategy(api_client),
        RemoteUserLookupStrategy(api_client),
        LocalCredentialStrategy(store),
    ])
    return strategies
