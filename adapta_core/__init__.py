"""
Core of the curricular adaptations tracker: local store, API client,
sign-in, dual writes and merged student reports.
"""

__version__ = "1.0.0"
