"""costeno.calendario

Selección de rangos desde el calendario principal (clics y atajos de periodo)
y la grilla mensual que consume el UI.
"""

from .grilla import build_month_grid, days_in_month, first_weekday_of_month
from .seleccion import (
    CalendarSelection,
    Complete,
    DayClicked,
    Empty,
    PendingStart,
    PeriodShortcutSelected,
    transition,
)

__all__ = [
    "CalendarSelection",
    "Complete",
    "DayClicked",
    "Empty",
    "PendingStart",
    "PeriodShortcutSelected",
    "build_month_grid",
    "days_in_month",
    "first_weekday_of_month",
    "transition",
]
