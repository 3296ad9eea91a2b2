"""costeno.fechas.clasificador

Clasificación de un ``DateRange`` en su categoría de periodo.

Cada widget del Dashboard (comparativos diarios, semanales, mensuales y
personalizados) se muestra solo cuando la clasificación del rango activo
coincide con la suya. Por eso la clasificación debe ser total (nunca lanza) y
mutuamente excluyente.

Orden de evaluación (la primera regla que aplica gana)
-----------------------------------------------------
1. Extremo ausente, fecha inválida o ``from > to`` → ``Invalid``.
2. Normalización de ambos extremos a medianoche.
3. ``from == to`` → ``SingleDay``.
4. 7 días inclusivos lunes→domingo o domingo→sábado → ``CompleteWeek``.
5. Primer día → último día del mismo mes/año → ``CompleteMonth``.
6. Entre 2 y 365 días inclusivos → ``CustomRange``.
7. Cualquier otro caso → ``Invalid``.

Se aceptan dos anclas de semana completa porque el UI admite ambas
convenciones de calendario.
"""

from __future__ import annotations

from datetime import date
from enum import Enum
from typing import Any, List, Optional

from costeno.fechas.rango import (
    DateRange,
    days_inclusive,
    last_day_of_month,
    normalize_date,
    weekday_monday_first,
)

_MONDAY = 0
_SATURDAY = 5
_SUNDAY = 6

CUSTOM_MIN_DAYS = 2
CUSTOM_MAX_DAYS = 365


class PeriodClassification(str, Enum):
    SINGLE_DAY = "SingleDay"
    COMPLETE_WEEK = "CompleteWeek"
    COMPLETE_MONTH = "CompleteMonth"
    CUSTOM_RANGE = "CustomRange"
    INVALID = "Invalid"


class Widget(str, Enum):
    """Familias de widgets por periodo que consumen la clasificación."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    CUSTOM = "custom"


_WIDGETS = {
    PeriodClassification.SINGLE_DAY: Widget.DAILY,
    PeriodClassification.COMPLETE_WEEK: Widget.WEEKLY,
    PeriodClassification.COMPLETE_MONTH: Widget.MONTHLY,
    PeriodClassification.CUSTOM_RANGE: Widget.CUSTOM,
}


def _endpoints(range_: Any) -> Optional[tuple[date, date]]:
    """Extrae y normaliza ambos extremos; ``None`` si el rango no es usable."""
    if not isinstance(range_, DateRange):
        return None
    from_ = normalize_date(range_.from_)
    to = normalize_date(range_.to)
    if from_ is None or to is None or from_ > to:
        return None
    return from_, to


def _is_week(from_: date, to: date) -> bool:
    if days_inclusive(from_, to) != 7:
        return False
    anchors = (weekday_monday_first(from_), weekday_monday_first(to))
    return anchors in ((_MONDAY, _SUNDAY), (_SUNDAY, _SATURDAY))


def _is_month(from_: date, to: date) -> bool:
    return from_.day == 1 and to == last_day_of_month(from_)


def classify(range_: Optional[DateRange]) -> PeriodClassification:
    """Clasifica ``range_``. Función pura y total.

    Parameters
    ----------
    range_:
        Rango a clasificar. ``None``, rangos pendientes o cualquier valor que
        no sea ``DateRange`` producen ``Invalid``.
    """
    endpoints = _endpoints(range_)
    if endpoints is None:
        return PeriodClassification.INVALID
    from_, to = endpoints

    if from_ == to:
        return PeriodClassification.SINGLE_DAY
    if _is_week(from_, to):
        return PeriodClassification.COMPLETE_WEEK
    if _is_month(from_, to):
        return PeriodClassification.COMPLETE_MONTH
    if CUSTOM_MIN_DAYS <= days_inclusive(from_, to) <= CUSTOM_MAX_DAYS:
        return PeriodClassification.CUSTOM_RANGE
    return PeriodClassification.INVALID


def is_single_day(range_: Optional[DateRange]) -> bool:
    return classify(range_) is PeriodClassification.SINGLE_DAY


def is_complete_week(range_: Optional[DateRange]) -> bool:
    return classify(range_) is PeriodClassification.COMPLETE_WEEK


def is_complete_month(range_: Optional[DateRange]) -> bool:
    return classify(range_) is PeriodClassification.COMPLETE_MONTH


def is_custom_range(range_: Optional[DateRange]) -> bool:
    return classify(range_) is PeriodClassification.CUSTOM_RANGE


def is_exact_week(range_: Optional[DateRange]) -> bool:
    """Semana lunes→domingo estricta (listado semanal por sucursal).

    A diferencia de ``is_complete_week`` no acepta el ancla domingo→sábado.
    """
    if not is_complete_week(range_):
        return False
    return weekday_monday_first(range_.from_) == _MONDAY  # type: ignore[union-attr,arg-type]


def contains_today(range_: Optional[DateRange], today: date) -> bool:
    """True si ``today`` cae dentro del rango (p.ej. cuentas abiertas del mes)."""
    endpoints = _endpoints(range_)
    if endpoints is None:
        return False
    from_, to = endpoints
    return from_ <= today <= to


def visible_widgets(range_: Optional[DateRange]) -> List[Widget]:
    """Widgets que deben renderizarse para ``range_``.

    Lista vacía cuando el rango es ``Invalid``: el widget no se muestra (no es
    un error, simplemente no se cumplen las condiciones de la vista).
    """
    widget = _WIDGETS.get(classify(range_))
    return [widget] if widget is not None else []
