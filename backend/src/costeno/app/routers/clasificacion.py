# backend/src/costeno/app/routers/clasificacion.py
"""Router de clasificación de rangos (``GET /clasificacion``).

Permite al frontend decidir qué widgets renderizar para un rango arbitrario
sin replicar las reglas de clasificación. Fechas mal formadas o ausentes
producen ``Invalid`` (200), nunca un 4xx.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from costeno.app.schemas.calendario import ClasificacionResponse, DateRangeModel
from costeno.dashboard.sesiones import SessionRegistry, get_registry
from costeno.fechas.clasificador import classify, contains_today, is_exact_week, visible_widgets
from costeno.fechas.rango import DateRange, today

router = APIRouter()


@router.get("/clasificacion", response_model=ClasificacionResponse)
def clasificacion(
    from_: Optional[str] = Query(None, alias="from", description="Fecha inicial ISO."),
    to: Optional[str] = Query(None, description="Fecha final ISO."),
    registry: SessionRegistry = Depends(get_registry),
) -> ClasificacionResponse:
    range_ = DateRange.of(from_, to)
    return ClasificacionResponse(
        range=DateRangeModel(**{"from": from_, "to": to}),
        classification=classify(range_).value,
        widgets=[w.value for w in visible_widgets(range_)],
        is_exact_week=is_exact_week(range_),
        contains_today=contains_today(range_, today(registry.clock)),
        days=range_.days,
    )
