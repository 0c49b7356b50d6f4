"""
Remote API Module
HTTP client for the curricular adaptations REST API
"""

from .client import APIConfig, RemoteApiClient, normalize_list, parse_body

__all__ = [
    "APIConfig",
    "RemoteApiClient",
    "normalize_list",
    "parse_body",
]
