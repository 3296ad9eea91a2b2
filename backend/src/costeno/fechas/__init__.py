"""costeno.fechas

Rangos de fechas, atajos de periodo y clasificación.

Es la hoja de dependencias del motor: el calendario y el estado del Dashboard
solo consumen lo que se exporta aquí.
"""

from .clasificador import (
    PeriodClassification,
    Widget,
    classify,
    contains_today,
    is_complete_month,
    is_complete_week,
    is_custom_range,
    is_exact_week,
    is_single_day,
    visible_widgets,
)
from .periodos import PeriodKey, get_date_range, parse_period_key
from .rango import Clock, DateRange, normalize_date, parse_iso, to_iso

__all__ = [
    "Clock",
    "DateRange",
    "PeriodClassification",
    "PeriodKey",
    "Widget",
    "classify",
    "contains_today",
    "get_date_range",
    "is_complete_month",
    "is_complete_week",
    "is_custom_range",
    "is_exact_week",
    "is_single_day",
    "normalize_date",
    "parse_iso",
    "parse_period_key",
    "to_iso",
    "visible_widgets",
]
