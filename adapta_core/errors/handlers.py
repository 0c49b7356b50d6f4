# =============================================================================
# adapta_core/errors/handlers.py
# Streamlit-side error reporting
# =============================================================================
"""
Turns exceptions into messages for the teachers and coordinators using the
app. The core package never imports this module; only ``app.py`` does.
"""

from __future__ import annotations
import functools
from typing import Any, Callable, Optional

import streamlit as st

from adapta_core.logging import get_logger
from .exceptions import (
    AdaptaError,
    AuthenticationError,
    EnvelopeShapeError,
    LocalStoreError,
    NetworkError,
    RequestTimeoutError,
    ValidationError,
)

logger = get_logger(__name__)

DEBUG_FLAG = "debug_mode"

# Checked in order; the first matching class wins
FRIENDLY_MESSAGES = (
    (ValidationError, None),
    (AuthenticationError, "Usuário não encontrado. Verifique o e-mail ou senha."),
    (RequestTimeoutError, "O servidor demorou para responder. Tente novamente."),
    (NetworkError, "Sem conexão com o servidor."),
    (EnvelopeShapeError, "O servidor respondeu em um formato inesperado."),
    (LocalStoreError, "Não foi possível gravar os dados neste dispositivo."),
)


def friendly_message(error: Exception) -> str:
    """Portuguese message for the user; validation errors keep their own text."""
    for error_cls, message in FRIENDLY_MESSAGES:
        if isinstance(error, error_cls):
            return message or error.message
    if isinstance(error, AdaptaError):
        return error.message
    return "Ocorreu um erro inesperado."


def handle_error(
    error: Exception,
    show_user_message: bool = True,
    log_error: bool = True,
    user_message: Optional[str] = None,
) -> None:
    """
    Log an exception and show it with ``st.error``.

    Args:
        error: The exception to report
        show_user_message: Display it in the page
        log_error: Write it to the log
        user_message: Replaces the friendly message
    """
    message = user_message or friendly_message(error)
    recoverable = error.recoverable if isinstance(error, AdaptaError) else True

    if log_error:
        code = error.code if isinstance(error, AdaptaError) else type(error).__name__
        logger.error(f"[{code}] {message}: {error}", exc_info=error)

    if not show_user_message:
        return

    if recoverable:
        st.error(f"Erro: {message}")
    else:
        st.error(f"Erro crítico: {message.rstrip('.')}. Contate o suporte.")

    if isinstance(error, AdaptaError) and error.details and st.session_state.get(DEBUG_FLAG, False):
        with st.expander("Detalhes do erro", expanded=False):
            st.json(error.to_dict())


class ErrorContext:
    """
    Reports any exception raised inside the block.

    Usage:
        with ErrorContext("Excluindo estudante"):
            service.writes.delete_student(student_id)
        # On failure: "Erro: Falha em: Excluindo estudante"
    """

    def __init__(
        self,
        operation: str,
        recoverable: bool = True,
        show_success: bool = False,
        success_message: Optional[str] = None,
    ):
        self.operation = operation
        self.recoverable = recoverable
        self.show_success = show_success
        self.success_message = success_message

    def __enter__(self) -> ErrorContext:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        if exc_type is None:
            if self.show_success:
                st.success(self.success_message or f"{self.operation} concluído")
            return False

        # Streamlit's rerun/stop signals are not errors
        if not isinstance(exc_val, Exception):
            return False

        if isinstance(exc_val, AdaptaError):
            handle_error(exc_val)
        else:
            handle_error(exc_val, user_message=f"Falha em: {self.operation}")
        return self.recoverable


def error_boundary(
    default_return: Any = None,
    error_message: Optional[str] = None,
    log: bool = True,
):
    """
    Decorator for view functions: shows ``error_message`` instead of a traceback.

    Usage:
        @error_boundary(error_message="Erro ao carregar relatório")
        def render_report(service, student_id): ...
    """
    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except AdaptaError as e:
                handle_error(e, log_error=log, user_message=error_message)
                return default_return
            except Exception as e:
                if log:
                    logger.error(f"Error in {func.__name__}: {e}", exc_info=True)
                st.error(error_message or friendly_message(e))
                return default_return

        return wrapper

    return decorator
