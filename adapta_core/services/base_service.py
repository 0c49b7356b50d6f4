# =============================================================================
# adapta_core/services/base_service.py
# Shared plumbing for the data-layer services
# =============================================================================

from __future__ import annotations
from abc import ABC
from dataclasses import dataclass
from typing import Any, Callable, Optional

from adapta_core.errors import AdaptaError, RemoteError
from adapta_core.logging import LogContext, get_logger


@dataclass
class ServiceResult:
    """
    Outcome of one phase (remote or local) of a write.

    ``status`` is the HTTP status when a remote phase failed with one.
    """
    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    status: Optional[int] = None

    def __bool__(self) -> bool:
        return self.success

    @classmethod
    def ok(cls, data: Any = None) -> ServiceResult:
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str, error_code: str = "UNKNOWN", status: Optional[int] = None) -> ServiceResult:
        return cls(success=False, error=error, error_code=error_code, status=status)

    @classmethod
    def from_exception(cls, e: Exception) -> ServiceResult:
        if isinstance(e, AdaptaError):
            status = e.status if isinstance(e, RemoteError) else None
            return cls.fail(e.message, error_code=e.code, status=status)
        return cls.fail(str(e), error_code="EXCEPTION")


class BaseService(ABC):
    """
    Base for services that talk to both the API and the local store.

    Subclasses get a class-named logger, ``log_operation`` for timing a
    whole operation, and ``attempt`` for the best-effort remote half.
    """

    def __init__(self):
        self.logger = get_logger(self.__class__.__name__)

    def log_operation(self, operation: str) -> LogContext:
        return LogContext(self.logger, operation)

    def attempt(self, operation: str, func: Callable[..., Any], *args, **kwargs) -> ServiceResult:
        """
        Call ``func`` and capture the outcome instead of raising.

        API failures are expected while offline and are logged as warnings;
        anything else is logged with its traceback.
        """
        try:
            return ServiceResult.ok(func(*args, **kwargs))
        except AdaptaError as e:
            self.logger.warning(f"{operation} failed: {e}")
            return ServiceResult.from_exception(e)
        except Exception as e:
            self.logger.error(f"{operation} failed: {e}", exc_info=True)
            return ServiceResult.from_exception(e)
