# backend/src/costeno/app/routers/calendario.py
"""Router del calendario principal (``/calendario/*``).

Expone la ``CalendarSelection`` de la sesión actual:

- Atajos de periodo: aplican el rango al Dashboard automáticamente.
- Clics de día: construyen la selección en dos pasos; nunca aplican solos.
- ``POST /aplicar``: confirma la selección manual como elegida por el usuario.

El router solo traduce HTTP ↔ dominio; la lógica vive en
``costeno.calendario``.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from costeno.app.dependencies import current_session, range_to_model
from costeno.app.schemas.calendario import (
    CalendarioEstado,
    DiaRequest,
    GrillaResponse,
    PeriodoRequest,
    PeriodosResponse,
)
from costeno.calendario.grilla import build_month_grid
from costeno.calendario.seleccion import CalendarSelection, Complete, PendingStart
from costeno.dashboard.sesiones import DashboardSession, SessionRegistry, get_registry
from costeno.fechas.periodos import CUSTOM_OPTION, PERIOD_GROUPS
from costeno.fechas.rango import DateRange, today

logger = logging.getLogger(__name__)

router = APIRouter()


def _estado(calendar: CalendarSelection, applied: Optional[DateRange] = None) -> CalendarioEstado:
    if isinstance(calendar.state, Complete):
        kind = "complete"
    elif isinstance(calendar.state, PendingStart):
        kind = "pending"
    else:
        kind = "empty"
    return CalendarioEstado(
        state=kind,
        temp_range=range_to_model(calendar.temp_range),
        selected_period=calendar.selected_period,
        current_month=calendar.current_month,
        current_year=calendar.current_year,
        applied=range_to_model(applied),
    )


@router.get("/estado", response_model=CalendarioEstado)
def calendario_estado(session: DashboardSession = Depends(current_session)) -> CalendarioEstado:
    return _estado(session.calendar)


@router.get("/periodos", response_model=PeriodosResponse)
def calendario_periodos() -> PeriodosResponse:
    """Opciones del desplegable de periodos (agrupadas) + opción personalizada."""
    return PeriodosResponse(groups=PERIOD_GROUPS, custom=CUSTOM_OPTION)


@router.get("/grilla", response_model=GrillaResponse)
def calendario_grilla(
    session: DashboardSession = Depends(current_session),
    registry: SessionRegistry = Depends(get_registry),
) -> GrillaResponse:
    """Grilla del mes visible con las marcas de la selección en curso."""
    cal = session.calendar
    grid = build_month_grid(cal.current_month, cal.current_year, cal.temp_range, today(registry.clock))
    return GrillaResponse(**grid)


@router.post("/periodo", response_model=CalendarioEstado)
def calendario_periodo(
    body: PeriodoRequest,
    session: DashboardSession = Depends(current_session),
) -> CalendarioEstado:
    applied = session.calendar.handle_period_change(body.period)
    return _estado(session.calendar, applied)


@router.post("/dia", response_model=CalendarioEstado)
def calendario_dia(
    body: DiaRequest,
    session: DashboardSession = Depends(current_session),
) -> CalendarioEstado:
    try:
        session.calendar.handle_day_click(body.day)
    except ValueError as e:
        # Día inexistente en el mes visible (p.ej. 31 de abril).
        raise HTTPException(status_code=422, detail=str(e)) from e
    return _estado(session.calendar)


@router.post("/mes/anterior", response_model=CalendarioEstado)
def calendario_mes_anterior(session: DashboardSession = Depends(current_session)) -> CalendarioEstado:
    session.calendar.handle_previous_month()
    return _estado(session.calendar)


@router.post("/mes/siguiente", response_model=CalendarioEstado)
def calendario_mes_siguiente(session: DashboardSession = Depends(current_session)) -> CalendarioEstado:
    session.calendar.handle_next_month()
    return _estado(session.calendar)


@router.post("/aplicar", response_model=CalendarioEstado)
def calendario_aplicar(session: DashboardSession = Depends(current_session)) -> CalendarioEstado:
    """Confirma la selección manual. Con selección pendiente no aplica nada."""
    applied = session.calendar.confirm()
    if applied is None:
        logger.info("Aplicar ignorado: la selección no está completa")
    return _estado(session.calendar, applied)
