# =============================================================================
# adapta_core/errors/exceptions.py
# Exception hierarchy for the Curricular Adaptations Tracker
# =============================================================================
"""
AdaptaError
├── RemoteError                  anything that went wrong talking to the API
│   ├── NetworkError             no response at all
│   ├── RequestTimeoutError      deadline exceeded (status 408)
│   ├── HttpError                non-2xx answer
│   │   └── NotFoundError        404, triggers the nested-path retry
│   └── EnvelopeShapeError       list payload in an unknown wrapper
├── AuthenticationError          no sign-in strategy succeeded
├── ValidationError              required form fields missing
├── LocalStoreError              the on-device store refused a write
└── ConfigurationError           bad settings
"""

from typing import Any, Dict, Iterable, Optional


def _details(extra: Optional[Dict[str, Any]] = None, **fields: Any) -> Dict[str, Any]:
    """Merge caller-supplied details with the non-empty named fields."""
    details = dict(extra or {})
    details.update({key: value for key, value in fields.items() if value not in (None, "", [])})
    return details


class AdaptaError(Exception):
    """
    Base exception for the app.

    Attributes:
        message: Human-readable description
        code: Machine-readable code such as ``API_004``
        details: Extra context for logs
        recoverable: False when retrying cannot help
    """

    default_code = "AD_000"
    default_recoverable = True

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        recoverable: Optional[bool] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}
        self.recoverable = self.default_recoverable if recoverable is None else recoverable

    def __str__(self) -> str:
        if not self.details:
            return f"[{self.code}] {self.message}"
        return f"[{self.code}] {self.message} | Details: {self.details}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_type": type(self).__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
            "recoverable": self.recoverable,
        }


# =============================================================================
# REMOTE API
# =============================================================================

class RemoteError(AdaptaError):
    """
    Failure of a call to the REST API.

    ``status`` and ``body`` keep what the server answered, when it answered.
    """

    default_code = "API_000"
    default_status: Optional[int] = None

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        body: Any = None,
        url: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        **kwargs,
    ):
        self.status = status if status is not None else self.default_status
        self.body = body
        self.url = url
        super().__init__(message, details=_details(details, status=self.status, url=url), **kwargs)


class NetworkError(RemoteError):
    default_code = "API_001"


class RequestTimeoutError(RemoteError):
    default_code = "API_002"
    default_status = 408

    def __init__(self, message: str = "Request timed out", **kwargs):
        super().__init__(message, **kwargs)


class HttpError(RemoteError):
    default_code = "API_003"


class NotFoundError(HttpError):
    default_code = "API_004"
    default_status = 404

    def __init__(self, message: str = "Not found", **kwargs):
        super().__init__(message, **kwargs)


class EnvelopeShapeError(RemoteError):
    """``accepted`` lists the wrappers the client understands."""

    default_code = "API_005"

    def __init__(self, message: str, accepted: Optional[Iterable[str]] = None, **kwargs):
        details = _details(kwargs.pop("details", None), accepted_shapes=list(accepted or []))
        super().__init__(message, details=details, **kwargs)


# =============================================================================
# SIGN-IN
# =============================================================================

class AuthenticationError(AdaptaError):
    default_code = "AUTH_001"

    def __init__(
        self,
        message: str = "user not found or invalid credentials",
        strategy: Optional[str] = None,
        **kwargs,
    ):
        details = _details(kwargs.pop("details", None), strategy=strategy)
        super().__init__(message, details=details, **kwargs)


# =============================================================================
# DATA
# =============================================================================

class ValidationError(AdaptaError):
    """``missing`` holds the empty required fields, in form order."""

    default_code = "DATA_001"

    def __init__(
        self,
        message: str,
        entity: Optional[str] = None,
        missing: Optional[list] = None,
        **kwargs,
    ):
        details = _details(kwargs.pop("details", None), entity=entity, missing=missing)
        super().__init__(message, details=details, **kwargs)


class LocalStoreError(AdaptaError):
    default_code = "DATA_002"
    default_recoverable = False

    def __init__(
        self,
        message: str,
        entity: Optional[str] = None,
        record_id: Optional[str] = None,
        **kwargs,
    ):
        details = _details(kwargs.pop("details", None), entity=entity, record_id=record_id)
        super().__init__(message, details=details, **kwargs)


class ConfigurationError(AdaptaError):
    default_code = "CONFIG_001"
    default_recoverable = False

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        expected_type: Optional[str] = None,
        **kwargs,
    ):
        details = _details(kwargs.pop("details", None), config_key=config_key, expected_type=expected_type)
        super().__init__(message, details=details, **kwargs)
