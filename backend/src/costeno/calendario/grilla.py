"""costeno.calendario.grilla

Grilla mensual (lunes primero) con las marcas de selección de cada día.

El UI solo dibuja; qué día está seleccionado, es inicio/fin de rango o inicio
pendiente se decide aquí a partir del rango temporal del calendario.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date
from typing import Any, Dict, List, Optional

from costeno.fechas.periodos import SPANISH_DAYS, SPANISH_MONTHS
from costeno.fechas.rango import DateRange, days_in_month as _days_in_month, weekday_monday_first


@dataclass(frozen=True)
class DayCell:
    day: int
    is_today: bool
    is_selected: bool
    is_range_start: bool
    is_range_end: bool
    is_in_range: bool
    is_pending_start: bool


def days_in_month(month: int, year: int) -> int:
    """Días del mes (``month`` en 1..12)."""
    return _days_in_month(year, month)


def first_weekday_of_month(month: int, year: int) -> int:
    """Columna del día 1 en una grilla lunes-primero (0=lunes … 6=domingo)."""
    return weekday_monday_first(date(year, month, 1))


def _cell(day: date, temp_range: Optional[DateRange], today: date) -> DayCell:
    from_ = temp_range.from_ if temp_range else None
    to = temp_range.to if temp_range else None

    if from_ is None:
        return DayCell(day.day, day == today, False, False, False, False, False)

    if to is None:
        # Selección pendiente: solo el día inicial queda marcado.
        hit = day == from_
        return DayCell(day.day, day == today, hit, hit, False, False, hit)

    return DayCell(
        day=day.day,
        is_today=day == today,
        is_selected=from_ <= day <= to,
        is_range_start=day == from_,
        is_range_end=day == to,
        is_in_range=from_ < day < to,
        is_pending_start=False,
    )


def build_month_grid(
    month: int,
    year: int,
    temp_range: Optional[DateRange],
    today: date,
) -> Dict[str, Any]:
    """Construye la grilla del mes visible.

    Returns
    -------
    dict
        ``{"month", "year", "title", "weekdays", "leading_blanks", "days"}``;
        ``days`` contiene un dict por día con sus marcas.
    """
    cells: List[Dict[str, Any]] = [
        asdict(_cell(date(year, month, d), temp_range, today))
        for d in range(1, days_in_month(month, year) + 1)
    ]
    return {
        "month": month,
        "year": year,
        "title": f"{SPANISH_MONTHS[month - 1]} {year}",
        "weekdays": list(SPANISH_DAYS),
        "leading_blanks": first_weekday_of_month(month, year),
        "days": cells,
    }
