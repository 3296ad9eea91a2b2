"""costeno.dashboard.sesiones

Registro de sesiones (una por pestaña del navegador).

Cada sesión agrupa su ``DashboardStateStore`` y la ``CalendarSelection`` del
filtro principal, ya cableados:

- Un atajo de periodo aplica el rango automáticamente (``on_auto_apply``).
- "Aplicar" en el calendario lo guarda como elegido por el usuario, aunque sea
  el día de hoy (``force_user_selected=True``).

El registro se protege con un lock porque FastAPI ejecuta los endpoints
síncronos en un threadpool; cada store serializa además sus propias
mutaciones. Las sesiones inactivas se olvidan para que las peticiones sin
``X-Session-Id`` (que reciben un id nuevo) no hagan crecer el registro.
"""

from __future__ import annotations

import logging
import os
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime, timedelta
from threading import Lock
from typing import Dict, List, Optional

from costeno.calendario.seleccion import CalendarSelection
from costeno.dashboard.almacen import KeyValueStore, store_for_session
from costeno.dashboard.estado import USER_SELECTION_TTL, DashboardStateStore
from costeno.fechas.rango import Clock, DateRange, system_clock

logger = logging.getLogger(__name__)


@dataclass
class DashboardSession:
    session_id: str
    store: DashboardStateStore
    calendar: CalendarSelection


def open_session(session_id: str, storage: KeyValueStore, clock: Optional[Clock] = None) -> DashboardSession:
    """Construye una sesión sobre ``storage``, rehidratando el estado previo.

    Si el estado persistido trae un rango original vigente, el calendario
    arranca con ese rango. Si no, arranca en "hoy" y ese default se registra
    como rango automático (no elegido por el usuario).
    """
    store = DashboardStateStore(storage, clock=clock)

    def _auto_apply(range_: DateRange) -> None:
        store.set_original_date_range(range_)

    def _apply(range_: DateRange) -> None:
        store.set_original_date_range(range_, force_user_selected=True)

    calendar = CalendarSelection(
        value=store.original_date_range,
        on_auto_apply=_auto_apply,
        on_apply=_apply,
        clock=clock,
    )
    if store.original_date_range is None:
        store.set_original_date_range(calendar.temp_range)

    return DashboardSession(session_id=session_id, store=store, calendar=calendar)


MAX_SESSIONS = int(os.getenv("COSTENO_MAX_SESSIONS", "1000"))


class SessionRegistry:
    """Sesiones activas del proceso, indexadas por id de pestaña.

    Cada ``get`` registra el último acceso. Las sesiones sin uso por más de
    ``idle_ttl`` se olvidan en el siguiente ``get``; si aun así se supera
    ``max_sessions``, se olvidan las de acceso más antiguo (LRU). Olvidar una
    sesión solo libera memoria: su estado persistido se rehidrata (con la
    política de 24 h / "hoy") si la pestaña vuelve.

    Parameters
    ----------
    clock:
        Reloj compartido por todas las sesiones (inyectable en tests).
    backend:
        ``memory`` o ``file``; por defecto ``COSTENO_STATE_BACKEND``.
    idle_ttl:
        Inactividad tras la que se olvida una sesión (``USER_SELECTION_TTL``).
    max_sessions:
        Tope de sesiones en memoria; por defecto ``COSTENO_MAX_SESSIONS``.
    """

    def __init__(
        self,
        *,
        clock: Optional[Clock] = None,
        backend: Optional[str] = None,
        idle_ttl: Optional[timedelta] = None,
        max_sessions: Optional[int] = None,
    ) -> None:
        self._clock = clock
        self._backend = backend
        self._idle_ttl = idle_ttl if idle_ttl is not None else USER_SELECTION_TTL
        self._max_sessions = max(1, max_sessions if max_sessions is not None else MAX_SESSIONS)
        self._lock = Lock()
        # Orden de inserción = orden de último acceso (más antiguo primero).
        self._sessions: "OrderedDict[str, DashboardSession]" = OrderedDict()
        self._last_seen: Dict[str, datetime] = {}

    @property
    def clock(self) -> Optional[Clock]:
        return self._clock

    def _now(self) -> datetime:
        return (self._clock or system_clock)()

    def _evict_idle(self, now: datetime) -> None:
        # Las más antiguas van primero: se corta en la primera sesión vigente.
        for session_id in list(self._sessions):
            if now - self._last_seen[session_id] <= self._idle_ttl:
                break
            self._forget(session_id)
            logger.debug("Sesión inactiva olvidada: %s", session_id)

    def _evict_overflow(self) -> None:
        while len(self._sessions) > self._max_sessions:
            session_id = next(iter(self._sessions))
            self._forget(session_id)
            logger.info("Tope de %d sesiones alcanzado, se olvida %s", self._max_sessions, session_id)

    def _forget(self, session_id: str) -> bool:
        self._last_seen.pop(session_id, None)
        return self._sessions.pop(session_id, None) is not None

    def get(self, session_id: str) -> DashboardSession:
        """Devuelve la sesión ``session_id``, creándola si no existe."""
        with self._lock:
            now = self._now()
            self._evict_idle(now)
            session = self._sessions.get(session_id)
            if session is None:
                storage = store_for_session(session_id, self._backend)
                session = open_session(session_id, storage, self._clock)
                self._sessions[session_id] = session
                logger.debug("Sesión creada: %s", session_id)
            else:
                self._sessions.move_to_end(session_id)
            self._last_seen[session_id] = now
            self._evict_overflow()
            return session

    def discard(self, session_id: str) -> bool:
        """Olvida la sesión en memoria (el estado persistido se conserva)."""
        with self._lock:
            return self._forget(session_id)

    def ids(self) -> List[str]:
        with self._lock:
            return sorted(self._sessions)

    def reset(self) -> None:
        with self._lock:
            self._sessions.clear()
            self._last_seen.clear()

    def __len__(self) -> int:
        return len(self._sessions)


REGISTRY = SessionRegistry()


def get_registry() -> SessionRegistry:
    """Dependencia FastAPI; los tests la reemplazan vía ``dependency_overrides``."""
    return REGISTRY
