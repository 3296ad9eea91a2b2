"""Esquemas (Pydantic) para la API del calendario y la clasificación.

Las fechas viajan como strings ISO-8601 (``YYYY-MM-DD``). El campo ``from``
es palabra reservada en Python, por eso el atributo se llama ``from_`` y se
expone con alias.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class DateRangeModel(BaseModel):
    """Rango de fechas tal como lo envía/recibe el frontend."""

    model_config = ConfigDict(populate_by_name=True)

    from_: Optional[str] = Field(None, alias="from", description="Fecha inicial ISO (YYYY-MM-DD).")
    to: Optional[str] = Field(None, description="Fecha final ISO (YYYY-MM-DD).")


class PeriodOption(BaseModel):
    value: str = Field(..., description="Clave del periodo (today, thisWeek, …).")
    label: str = Field(..., description="Etiqueta visible en español.")


class PeriodGroup(BaseModel):
    label: str
    options: List[PeriodOption] = Field(default_factory=list)


class PeriodosResponse(BaseModel):
    """Contrato para ``GET /calendario/periodos``."""

    groups: List[PeriodGroup] = Field(default_factory=list)
    custom: PeriodOption


class CalendarioEstado(BaseModel):
    """Estado del filtro de calendario de la sesión."""

    state: str = Field(..., description="empty | pending | complete.")
    temp_range: Optional[DateRangeModel] = Field(
        None,
        description="Selección en curso (puede estar pendiente).",
    )
    selected_period: str = Field(..., description="Periodo elegido en el desplegable.")
    current_month: int = Field(..., ge=1, le=12, description="Mes visible (1..12).")
    current_year: int = Field(..., description="Año visible.")
    applied: Optional[DateRangeModel] = Field(
        None,
        description="Rango aplicado al Dashboard por esta acción, si hubo.",
    )


class PeriodoRequest(BaseModel):
    period: str = Field(..., description="Clave de periodo; claves desconocidas se tratan como custom.")


class DiaRequest(BaseModel):
    day: int = Field(..., ge=1, le=31, description="Día del mes visible.")


class DayCellModel(BaseModel):
    day: int
    is_today: bool
    is_selected: bool
    is_range_start: bool
    is_range_end: bool
    is_in_range: bool
    is_pending_start: bool


class GrillaResponse(BaseModel):
    """Contrato para ``GET /calendario/grilla``."""

    month: int
    year: int
    title: str = Field(..., description="Título del mes, p.ej. 'septiembre 2025'.")
    weekdays: List[str] = Field(default_factory=list)
    leading_blanks: int = Field(..., ge=0, le=6, description="Celdas vacías antes del día 1.")
    days: List[DayCellModel] = Field(default_factory=list)


class ClasificacionResponse(BaseModel):
    """Contrato para ``GET /clasificacion``."""

    range: DateRangeModel
    classification: str = Field(..., description="SingleDay | CompleteWeek | CompleteMonth | CustomRange | Invalid.")
    widgets: List[str] = Field(default_factory=list, description="Widgets que deben renderizarse.")
    is_exact_week: bool = False
    contains_today: bool = False
    days: Optional[int] = Field(None, description="Días inclusivos del rango (si es válido).")
