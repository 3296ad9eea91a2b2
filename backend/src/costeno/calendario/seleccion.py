"""costeno.calendario.seleccion

Máquina de estados de selección del calendario principal.

Protocolo de clics
------------------
- ``Empty`` o ``Complete`` + clic en un día → ``PendingStart(día)``. Todo clic
  posterior a un rango completo inicia una selección nueva (no se "extiende"
  el rango existente).
- ``PendingStart(inicio)`` + clic en el mismo día → ``Complete(inicio, inicio)``.
- ``PendingStart(inicio)`` + clic en otro día → ``Complete(min, max)``: los
  extremos se ordenan solos, el usuario puede empezar por la fecha final.

Los atajos de periodo (``PeriodShortcutSelected``) saltan el protocolo y pasan
directo a ``Complete``; ``custom`` deja el estado intacto.

La transición es una función pura (``transition``). ``CalendarSelection``
envuelve el estado junto con la vista del calendario (mes/año visibles) y los
callbacks de aplicación; es lo que consume el UI.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Optional, Union

from costeno.fechas.periodos import PeriodKey, get_date_range, parse_period_key
from costeno.fechas.rango import Clock, DateRange, add_months, today as clock_today

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Estados y eventos
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Empty:
    """Sin selección."""


@dataclass(frozen=True)
class PendingStart:
    """Primer extremo elegido; se espera el segundo clic."""

    start: date


@dataclass(frozen=True)
class Complete:
    """Rango completo; siempre ``from_ <= to``."""

    from_: date
    to: date

    @property
    def range(self) -> DateRange:
        return DateRange(self.from_, self.to)


SelectionState = Union[Empty, PendingStart, Complete]


@dataclass(frozen=True)
class DayClicked:
    day: date


@dataclass(frozen=True)
class PeriodShortcutSelected:
    key: PeriodKey


SelectionEvent = Union[DayClicked, PeriodShortcutSelected]


def transition(state: SelectionState, event: SelectionEvent, today: date) -> SelectionState:
    """Aplica ``event`` sobre ``state`` y devuelve el nuevo estado.

    Parameters
    ----------
    state:
        Estado actual.
    event:
        Clic de día o atajo de periodo.
    today:
        Día ancla para resolver atajos de periodo.
    """
    if isinstance(event, PeriodShortcutSelected):
        if event.key is PeriodKey.CUSTOM:
            return state
        rng = get_date_range(event.key, today)
        return Complete(rng.from_, rng.to)  # type: ignore[arg-type]

    if isinstance(event, DayClicked):
        if isinstance(state, PendingStart):
            ordered = DateRange.ordered(state.start, event.day)
            return Complete(ordered.from_, ordered.to)  # type: ignore[arg-type]
        return PendingStart(event.day)

    raise TypeError(f"Evento de calendario no soportado: {event!r}")


def state_to_range(state: SelectionState) -> Optional[DateRange]:
    """Rango temporal que representa ``state`` (``None`` si está vacío)."""
    if isinstance(state, Complete):
        return state.range
    if isinstance(state, PendingStart):
        return DateRange(state.start, None)
    return None


def state_from_range(range_: Optional[DateRange]) -> SelectionState:
    if range_ is None or range_.from_ is None:
        return Empty()
    if range_.to is None:
        return PendingStart(range_.from_)
    ordered = DateRange.ordered(range_.from_, range_.to)
    return Complete(ordered.from_, ordered.to)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Selección con vista de calendario
# ---------------------------------------------------------------------------

RangeCallback = Callable[[DateRange], Any]


class CalendarSelection:
    """Estado del filtro de calendario para una pestaña.

    Parameters
    ----------
    value:
        Rango externo inicial (uso controlado). Si no está completo se usa el
        periodo por defecto.
    default_period:
        Periodo inicial cuando no hay ``value`` (``today`` por defecto).
    on_auto_apply:
        Se invoca cuando un atajo de periodo completa la selección; los clics
        manuales nunca lo disparan.
    on_apply:
        Se invoca en ``confirm()`` (botón "Aplicar").
    clock:
        Reloj inyectable; por defecto la hora local.
    """

    def __init__(
        self,
        *,
        value: Optional[DateRange] = None,
        default_period: PeriodKey = PeriodKey.TODAY,
        on_auto_apply: Optional[RangeCallback] = None,
        on_apply: Optional[RangeCallback] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._clock = clock
        self.on_auto_apply = on_auto_apply
        self.on_apply = on_apply

        hoy = self._today()
        self.current_month = hoy.month
        self.current_year = hoy.year
        self.selected_period: str = default_period.value

        if value is not None and value.is_complete:
            self.state: SelectionState = state_from_range(value)
        else:
            self.state = transition(Empty(), PeriodShortcutSelected(default_period), hoy)
            if isinstance(self.state, Empty):
                # custom como periodo por defecto: se arranca con hoy.
                self.state = Complete(hoy, hoy)

    def _today(self) -> date:
        return clock_today(self._clock)

    @property
    def temp_range(self) -> Optional[DateRange]:
        return state_to_range(self.state)

    # -- Handlers del UI ----------------------------------------------------

    def handle_period_change(self, period: Any) -> Optional[DateRange]:
        """Atajo de periodo elegido en el desplegable.

        Returns
        -------
        DateRange | None
            El rango calculado, o ``None`` para ``custom`` (y claves
            desconocidas, que se tratan como ``custom``).
        """
        key = parse_period_key(period) or PeriodKey.CUSTOM
        self.selected_period = key.value
        if key is PeriodKey.CUSTOM:
            return None

        self.state = transition(self.state, PeriodShortcutSelected(key), self._today())
        if not isinstance(self.state, Complete):
            return None
        rng = self.state.range

        self.current_month = rng.from_.month
        self.current_year = rng.from_.year

        if self.on_auto_apply is not None:
            try:
                self.on_auto_apply(rng)
            except Exception as e:
                logger.warning("Fallo en callback on_auto_apply (periodo=%s): %s", key.value, e)
        return rng

    def sync(self, value: Optional[DateRange]) -> SelectionState:
        """Alinea la selección con un rango fijado desde fuera del calendario.

        No invoca callbacks. ``None`` deja la selección vacía; un rango con
        ``from`` reposiciona el mes visible en él y marca el periodo como
        ``custom``.
        """
        self.state = state_from_range(value)
        self.selected_period = PeriodKey.CUSTOM.value
        anchor = value.from_ if value is not None and value.from_ is not None else self._today()
        self.current_month = anchor.month
        self.current_year = anchor.year
        return self.state

    def handle_day_click(self, day: int) -> SelectionState:
        """Clic en el día ``day`` del mes visible.

        El número de día debe ser válido para el mes visible; la grilla solo
        emite días existentes.
        """
        clicked = date(self.current_year, self.current_month, day)
        self.selected_period = PeriodKey.CUSTOM.value
        self.state = transition(self.state, DayClicked(clicked), self._today())
        return self.state

    def handle_previous_month(self) -> None:
        self.current_year, self.current_month = add_months(self.current_year, self.current_month, -1)

    def handle_next_month(self) -> None:
        self.current_year, self.current_month = add_months(self.current_year, self.current_month, 1)

    def confirm(self) -> Optional[DateRange]:
        """Acción explícita "Aplicar" sobre la selección manual.

        Devuelve ``None`` (sin invocar ``on_apply``) mientras la selección no
        esté completa.
        """
        if not isinstance(self.state, Complete):
            return None
        rng = self.state.range
        if self.on_apply is not None:
            self.on_apply(rng)
        return rng

    def __repr__(self) -> str:
        return (
            f"CalendarSelection(state={self.state!r}, period={self.selected_period!r}, "
            f"view={self.current_year}-{self.current_month:02d})"
        )
