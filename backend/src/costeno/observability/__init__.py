# backend/src/costeno/observability/__init__.py
"""
Paquete de observabilidad.
Exporta los helpers de contexto (correlation_id / session_id) para logging.
"""

from .logging_context import (
    clear_context,
    get_correlation_id,
    get_session_id,
    install_logrecord_factory,
    set_correlation_id,
    set_session_id,
)

__all__ = [
    "clear_context",
    "get_correlation_id",
    "get_session_id",
    "install_logrecord_factory",
    "set_correlation_id",
    "set_session_id",
]
