"""Dependencias compartidas por los routers (sesión actual y conversiones).

La sesión se resuelve a partir de ``request.state.session_id``, que el
middleware de correlación completa desde el header ``X-Session-Id`` (o genera
uno nuevo). Cada pestaña del navegador debe reenviar el id recibido.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Request

from costeno.app.schemas.calendario import DateRangeModel
from costeno.dashboard.sesiones import DashboardSession, SessionRegistry, get_registry
from costeno.fechas.rango import DateRange, parse_iso
from costeno.observability.middleware_correlation import SESSION_HEADER


def current_session(
    request: Request,
    registry: SessionRegistry = Depends(get_registry),
) -> DashboardSession:
    sid = getattr(request.state, "session_id", None) or request.headers.get(SESSION_HEADER) or "-"
    return registry.get(sid)


def range_from_model(model: Optional[DateRangeModel]) -> Optional[DateRange]:
    """``DateRangeModel`` → ``DateRange``; fechas mal formadas quedan en None."""
    if model is None:
        return None
    return DateRange(parse_iso(model.from_), parse_iso(model.to))  # type: ignore[arg-type]


def range_to_model(range_: Optional[DateRange]) -> Optional[DateRangeModel]:
    if range_ is None:
        return None
    return DateRangeModel(**range_.to_dict())
