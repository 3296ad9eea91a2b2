"""costeno.fechas.rango

Tipo ``DateRange`` y utilidades de fecha compartidas.

Todo el motor (clasificador, calendario y estado del Dashboard) opera sobre
``DateRange``. La normalización a día calendario (medianoche), el cálculo del
día de la semana y la aritmética de meses viven **solo** aquí para evitar
off-by-one por zona horaria repartidos en varios módulos.

Convenciones
------------
- Las fechas se comparan con granularidad de día: un ``datetime`` se trunca a
  su ``date``.
- La semana empieza en lunes (``weekday_monday_first``: 0=lunes … 6=domingo).
- Los valores mal formados nunca lanzan excepción: se normalizan a ``None``.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Callable, Optional

Clock = Callable[[], datetime]


def system_clock() -> datetime:
    """Reloj por defecto (hora local del proceso)."""
    return datetime.now()


def today(clock: Optional[Clock] = None) -> date:
    """Día calendario actual según ``clock``."""
    return (clock or system_clock)().date()


# ---------------------------------------------------------------------------
# Normalización y parsing
# ---------------------------------------------------------------------------

def parse_iso(value: str) -> Optional[date]:
    """Parsea un string ISO-8601 a día calendario.

    Acepta ``YYYY-MM-DD`` y timestamps completos (con o sin zona, incluyendo el
    sufijo ``Z`` que produce ``Date.toISOString()`` en el navegador).

    Returns
    -------
    datetime.date | None
        ``None`` si el string no es una fecha válida.
    """
    if not isinstance(value, str):
        return None
    s = value.strip()
    if not s:
        return None
    if s.endswith("Z") or s.endswith("z"):
        s = s[:-1] + "+00:00"
    try:
        if len(s) == 10:
            return date.fromisoformat(s)
        return datetime.fromisoformat(s).date()
    except ValueError:
        return None


def normalize_date(value: Any) -> Optional[date]:
    """Lleva ``value`` a un ``date`` (medianoche) o ``None`` si no es válido.

    - ``datetime`` → su día calendario (se descarta la hora).
    - ``date`` → tal cual.
    - ``str`` → ``parse_iso``.
    - Números NaN, ``None`` u otros tipos → ``None``.
    """
    # datetime es subclase de date: se evalúa primero.
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return parse_iso(value)
    return None


def to_iso(day: date) -> str:
    """Serializa un día calendario como ``YYYY-MM-DD``."""
    return day.isoformat()


# ---------------------------------------------------------------------------
# Aritmética de calendario
# ---------------------------------------------------------------------------

def days_inclusive(from_: date, to: date) -> int:
    """Cantidad de días del intervalo cerrado ``[from_, to]``."""
    return (to - from_).days + 1


def weekday_monday_first(day: date) -> int:
    """Día de la semana con lunes=0 y domingo=6."""
    return day.weekday()


def days_in_month(year: int, month: int) -> int:
    """Días del mes (28–31), considerando años bisiestos."""
    return calendar.monthrange(year, month)[1]


def first_day_of_month(day: date) -> date:
    return day.replace(day=1)


def last_day_of_month(day: date) -> date:
    return day.replace(day=days_in_month(day.year, day.month))


def add_months(year: int, month: int, delta: int) -> tuple[int, int]:
    """Desplaza ``(year, month)`` en ``delta`` meses con rollover de año."""
    idx = year * 12 + (month - 1) + delta
    return idx // 12, idx % 12 + 1


# ---------------------------------------------------------------------------
# DateRange
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DateRange:
    """Intervalo cerrado de días ``[from_, to]``.

    El constructor no valida el orden para poder representar (y clasificar como
    inválidos) rangos mal formados. Los consumidores deben usar ``is_complete``
    antes de operar sobre ambos extremos.
    """

    from_: Optional[date] = None
    to: Optional[date] = None

    @classmethod
    def of(cls, from_: Any, to: Any = None) -> "DateRange":
        """Construye un rango desde valores sueltos (date, datetime o ISO)."""
        return cls(normalize_date(from_), normalize_date(to))

    @classmethod
    def single(cls, day: date) -> "DateRange":
        return cls(day, day)

    @classmethod
    def ordered(cls, a: date, b: date) -> "DateRange":
        """Rango con los extremos ordenados (``from_ <= to``)."""
        return cls(a, b) if a <= b else cls(b, a)

    @property
    def is_pending(self) -> bool:
        """True si solo hay fecha inicial (selección en curso)."""
        return self.from_ is not None and self.to is None

    @property
    def is_complete(self) -> bool:
        """True si ambos extremos existen y ``from_ <= to``."""
        return self.from_ is not None and self.to is not None and self.from_ <= self.to

    is_valid = is_complete

    @property
    def days(self) -> Optional[int]:
        if not self.is_complete:
            return None
        return days_inclusive(self.from_, self.to)  # type: ignore[arg-type]

    def contains(self, day: date) -> bool:
        if not self.is_complete:
            return False
        return self.from_ <= day <= self.to  # type: ignore[operator]

    def shifted(self, days: int) -> "DateRange":
        delta = timedelta(days=days)
        return DateRange(
            self.from_ + delta if self.from_ else None,
            self.to + delta if self.to else None,
        )

    def to_dict(self) -> dict:
        """Forma serializable ``{"from": iso, "to": iso}``."""
        return {
            "from": to_iso(self.from_) if self.from_ else None,
            "to": to_iso(self.to) if self.to else None,
        }

    def __str__(self) -> str:
        return f"{self.from_ or '?'}..{self.to or '?'}"
