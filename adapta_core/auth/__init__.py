"""
Authentication module for the curricular adaptations tracker.
Provides the fallback sign-in chain and sign-out.

⚠️ PROTOTYPE ONLY - session tokens are opaque markers with no cryptographic
value. Do not rely on them for access control outside this app.
"""

from .authentication import (
    Credentials,
    FallbackAuthenticator,
    SupabaseSessionStrategy,
    ApiSessionStrategy,
    RemoteUserLookupStrategy,
    LocalCredentialStrategy,
    LOCAL_CREDENTIALS,
    build_strategies,
)

__all__ = [
    "Credentials",
    "FallbackAuthenticator",
    "SupabaseSessionStrategy",
    "ApiSessionStrategy",
    "RemoteUserLookupStrategy",
    "LocalCredentialStrategy",
    "LOCAL_CREDENTIALS",
    "build_strategies",
]
