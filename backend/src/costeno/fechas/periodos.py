"""costeno.fechas.periodos

Atajos de periodo del filtro principal (``Hoy``, ``Esta semana``, …).

Cada clave distinta de ``custom`` se resuelve de forma determinista a un
``DateRange`` anclado en ``today`` con semana lunes–domingo.
"""

from __future__ import annotations

from datetime import date, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional

from costeno.fechas.rango import (
    DateRange,
    add_months,
    days_in_month,
    first_day_of_month,
    last_day_of_month,
    weekday_monday_first,
)


class PeriodKey(str, Enum):
    """Claves de periodo; el valor coincide con el string del UI."""

    TODAY = "today"
    YESTERDAY = "yesterday"
    THIS_WEEK = "thisWeek"
    LAST_WEEK = "lastWeek"
    THIS_MONTH = "thisMonth"
    LAST_MONTH = "lastMonth"
    CUSTOM = "custom"


SPANISH_MONTHS: List[str] = [
    "enero",
    "febrero",
    "marzo",
    "abril",
    "mayo",
    "junio",
    "julio",
    "agosto",
    "septiembre",
    "octubre",
    "noviembre",
    "diciembre",
]

# Cabeceras de la grilla, lunes primero.
SPANISH_DAYS: List[str] = ["lu", "ma", "mi", "ju", "vi", "sá", "do"]

PERIOD_GROUPS: List[Dict[str, Any]] = [
    {
        "label": "Diarios",
        "options": [
            {"value": PeriodKey.TODAY.value, "label": "Hoy"},
            {"value": PeriodKey.YESTERDAY.value, "label": "Ayer"},
        ],
    },
    {
        "label": "Semanales",
        "options": [
            {"value": PeriodKey.THIS_WEEK.value, "label": "Esta semana"},
            {"value": PeriodKey.LAST_WEEK.value, "label": "Semana pasada"},
        ],
    },
    {
        "label": "Mensuales",
        "options": [
            {"value": PeriodKey.THIS_MONTH.value, "label": "Este mes"},
            {"value": PeriodKey.LAST_MONTH.value, "label": "Mes pasado"},
        ],
    },
]

CUSTOM_OPTION: Dict[str, str] = {
    "value": PeriodKey.CUSTOM.value,
    "label": "Fechas personalizadas",
}


def parse_period_key(value: Any) -> Optional[PeriodKey]:
    """Convierte el string del UI en ``PeriodKey`` (``None`` si no existe)."""
    if isinstance(value, PeriodKey):
        return value
    try:
        return PeriodKey(str(value).strip())
    except ValueError:
        return None


def _monday_of(day: date) -> date:
    return day - timedelta(days=weekday_monday_first(day))


def get_date_range(period: PeriodKey, today: date) -> DateRange:
    """Calcula el rango de un atajo de periodo.

    Parameters
    ----------
    period:
        Clave del atajo.
    today:
        Día ancla. Se recibe explícito para que el resultado sea determinista.

    Returns
    -------
    DateRange
        Rango completo. ``custom`` (o cualquier clave no contemplada) devuelve
        el día de hoy; el UI espera clics manuales en ese caso.
    """
    if period is PeriodKey.YESTERDAY:
        return DateRange.single(today - timedelta(days=1))

    if period is PeriodKey.THIS_WEEK:
        monday = _monday_of(today)
        return DateRange(monday, monday + timedelta(days=6))

    if period is PeriodKey.LAST_WEEK:
        monday = _monday_of(today) - timedelta(days=7)
        return DateRange(monday, monday + timedelta(days=6))

    if period is PeriodKey.THIS_MONTH:
        return DateRange(first_day_of_month(today), last_day_of_month(today))

    if period is PeriodKey.LAST_MONTH:
        year, month = add_months(today.year, today.month, -1)
        return DateRange(date(year, month, 1), date(year, month, days_in_month(year, month)))

    return DateRange.single(today)
