# backend/src/costeno/observability/logging_context.py
from __future__ import annotations

import logging
from contextvars import ContextVar
from typing import Optional

# Contexto por request: correlation_id (trazabilidad) y session_id (pestaña)
correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="-")
session_id_var: ContextVar[str] = ContextVar("session_id", default="-")

_CONTEXT_FIELDS = (
    ("correlation_id", correlation_id_var),
    ("session_id", session_id_var),
)


def set_correlation_id(cid: Optional[str]) -> None:
    """Establece el correlation_id del request actual."""
    correlation_id_var.set((cid or "").strip() or "-")


def get_correlation_id() -> str:
    return correlation_id_var.get()


def set_session_id(sid: Optional[str]) -> None:
    """Establece el id de sesión (pestaña) del request actual."""
    session_id_var.set((sid or "").strip() or "-")


def get_session_id() -> str:
    return session_id_var.get()


def clear_context() -> None:
    """Restablece ambos ids a '-' (útil en tareas fuera de un request)."""
    correlation_id_var.set("-")
    session_id_var.set("-")


def install_logrecord_factory() -> None:
    """
    Instala una LogRecordFactory que inyecta 'correlation_id' y 'session_id'
    en cada LogRecord **sin sobrescribir** valores pasados vía ``extra=``.
    Solo los completa cuando faltan, están vacíos o valen '-'.
    """
    old_factory = logging.getLogRecordFactory()

    def record_factory(*args, **kwargs):
        record = old_factory(*args, **kwargs)
        for name, var in _CONTEXT_FIELDS:
            current = record.__dict__.get(name)
            if not current or current == "-":
                record.__dict__[name] = var.get() or "-"
        return record

    logging.setLogRecordFactory(record_factory)
