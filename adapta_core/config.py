# =============================================================================
# adapta_core/config.py
# Application Configuration
# =============================================================================
"""
Configuration is resolved in three layers, highest priority first:

1. Environment variables (ADAPTA_API_URL, ADAPTA_REQUEST_TIMEOUT,
   ADAPTA_DB_PATH, ADAPTA_LOG_LEVEL, SUPABASE_URL, SUPABASE_KEY)
2. A secrets mapping, normally ``st.secrets``:

       [api]
       url = "https://adaptacoescurriculares-api.onrender.com"
       timeout = 10

       [supabase]
       url = "https://your-project.supabase.co"
       key = "your-anon-key"

3. Built-in defaults
"""

from __future__ import annotations
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional

from adapta_core.errors import ConfigurationError


DEFAULT_API_URL = "https://adaptacoescurriculares-api.onrender.com"
DEFAULT_TIMEOUT = 10.0
DEFAULT_DB_PATH = Path(__file__).parent.parent / "local_data" / "adaptacoes.db"


@dataclass(frozen=True)
class AppConfig:
    """Resolved application settings."""
    api_url: str = DEFAULT_API_URL
    request_timeout: float = DEFAULT_TIMEOUT
    db_path: Path = DEFAULT_DB_PATH
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    log_level: str = "INFO"

    @property
    def supabase_enabled(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)


def _section(secrets: Optional[Mapping[str, Any]], name: str) -> Mapping[str, Any]:
    if not secrets:
        return {}
    try:
        if name in secrets:
            return dict(secrets[name])
    except Exception:
        # st.secrets raises when no secrets.toml exists
        return {}
    return {}


def load_config(
    secrets: Optional[Mapping[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> AppConfig:
    """
    Build an AppConfig from environment variables and an optional secrets mapping.

    Args:
        secrets: Mapping shaped like ``st.secrets`` (``api`` and ``supabase`` sections)
        environ: Environment to read (defaults to ``os.environ``)

    Returns:
        AppConfig

    Raises:
        ConfigurationError: If the request timeout is not a positive number
    """
    env = os.environ if environ is None else environ
    api = _section(secrets, "api")
    supabase = _section(secrets, "supabase")

    api_url = env.get("ADAPTA_API_URL") or api.get("url") or DEFAULT_API_URL

    raw_timeout = env.get("ADAPTA_REQUEST_TIMEOUT") or api.get("timeout") or DEFAULT_TIMEOUT
    try:
        timeout = float(raw_timeout)
    except (TypeError, ValueError):
        raise ConfigurationError(
            f"Invalid request timeout: {raw_timeout!r}",
            config_key="ADAPTA_REQUEST_TIMEOUT",
            expected_type="float",
        )
    if timeout <= 0:
        raise ConfigurationError(
            "Request timeout must be positive",
            config_key="ADAPTA_REQUEST_TIMEOUT",
            expected_type="float > 0",
        )

    db_path = env.get("ADAPTA_DB_PATH") or api.get("db_path")

    return AppConfig(
        api_url=str(api_url).rstrip("/"),
        request_timeout=timeout,
        db_path=Path(db_path) if db_path else DEFAULT_DB_PATH,
        supabase_url=env.get("SUPABASE_URL") or supabase.get("url"),
        supabase_key=env.get("SUPABASE_KEY") or supabase.get("key"),
        log_level=env.get("ADAPTA_LOG_LEVEL") or "INFO",
    )
