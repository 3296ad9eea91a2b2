"""costeno.dashboard.estado

Estado de sesión del Dashboard: rango activo + cache de respuestas de API.

Este módulo concentra la lógica que en el frontend vivía repartida en hooks:
qué rango está activo, cuál restaurar al volver de un detalle de sucursal y
qué respuestas de API siguen vigentes para cada widget.

Reglas de negocio
-----------------
- El estado es único por pestaña (sesión) y solo se modifica a través de los
  setters de ``DashboardStateStore``. Cada mutación recalcula ``last_updated``
  y persiste la estructura completa en el almacén, en el mismo turno.
- ``original_date_range`` es el rango a restaurar al volver de una vista de
  detalle; ``current_date_range`` es lo que se muestra y puede divergir.
- Un rango es *elegido por el usuario* salvo que sea exactamente hoy..hoy y no
  se fuerce lo contrario; así se distingue del default automático "hoy".
- Las entradas de cache se reemplazan completas, nunca se mutan, y se
  desalojan de forma perezosa al leerlas vencidas (sin barrido en background).
- Cada lectura-copia-actualización-persistencia se hace bajo el lock del
  store: los widgets de una pestaña escriben el cache en paralelo (threadpool
  de FastAPI) y dos claves distintas nunca se pisan.

Hidratación
-----------
Al construir el store se lee el JSON persistido y se descarta entero cuando:

1. No se puede parsear o le falta estructura (se registra un warning).
2. Fue elegido por el usuario hace más de 24 h.
3. No fue elegido por el usuario y su ``from`` no es el día de hoy (evita que
   un "hoy" automático represente ayer si la pestaña quedó abierta).

Formato persistido (clave ``dashboard_state``)
----------------------------------------------
::

    {
      "originalDateRange": {"from": "2025-09-01", "to": "2025-09-07"},
      "currentDateRange":  {"from": "2025-09-01", "to": "2025-09-07"},
      "apiResponses": [["ventas-diarias-2025-09-01-2025-09-07",
                        {"data": {...}, "timestamp": 1757000000000, "ttl": 1800000}]],
      "lastUpdated": 1757000000000,
      "isUserSelected": true,
      "userSelectionTimestamp": 1757000000000,
      "version": "1.0.0"
    }

Timestamps y TTL en milisegundos epoch; fechas en ISO-8601.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta, tzinfo
from threading import RLock
from typing import Any, Dict, List, Mapping, Optional

from costeno.dashboard.almacen import KeyValueStore, MemoryStore
from costeno.fechas.rango import Clock, DateRange, normalize_date, parse_iso, system_clock, to_iso

logger = logging.getLogger(__name__)


STORAGE_KEY = "dashboard_state"
# Clave heredada del cache de API separado; se borra junto con el estado.
LEGACY_API_CACHE_KEY = "dashboard_api_cache"
STATE_VERSION = "1.0.0"
NO_DATE_KEY = "no-date"

DEFAULT_CACHE_TTL = timedelta(minutes=int(os.getenv("COSTENO_CACHE_TTL_MIN", "30")))
USER_SELECTION_TTL = timedelta(hours=int(os.getenv("COSTENO_USER_SELECTION_TTL_H", "24")))
FUTURE_TOLERANCE = timedelta(days=1)


# ---------------------------------------------------------------------------
# Tipos
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CacheEntry:
    """Respuesta de API cacheada. ``data`` es opaco para el store."""

    data: Any
    timestamp: datetime
    ttl: timedelta

    def is_expired(self, now: datetime) -> bool:
        return now - self.timestamp >= self.ttl


@dataclass(frozen=True)
class DashboardState:
    original_date_range: Optional[DateRange] = None
    current_date_range: Optional[DateRange] = None
    api_responses: Mapping[str, CacheEntry] = field(default_factory=dict)
    last_updated: Optional[datetime] = None
    is_user_selected: bool = False
    user_selection_timestamp: Optional[datetime] = None


@dataclass(frozen=True)
class CacheStats:
    total_entries: int
    valid_entries: int
    expired_entries: int
    total_size: int


class StateCorruptError(ValueError):
    """El JSON persistido no respeta el formato esperado."""


# ---------------------------------------------------------------------------
# Validación y claves
# ---------------------------------------------------------------------------

def validate_date_range(range_: Optional[DateRange], today: date) -> Optional[DateRange]:
    """Valida un rango antes de guardarlo como activo.

    Returns
    -------
    DateRange | None
        El rango normalizado, o ``None`` si falta un extremo, ``from > to`` o
        ``from`` está más de un día en el futuro.
    """
    if not isinstance(range_, DateRange):
        return None
    from_ = normalize_date(range_.from_)
    to = normalize_date(range_.to)
    if from_ is None or to is None or from_ > to:
        return None
    if from_ > today + FUTURE_TOLERANCE:
        return None
    return DateRange(from_, to)


def generate_cache_key(
    component_name: str,
    range_: Optional[DateRange],
    extra: Optional[Mapping[str, Any]] = None,
) -> str:
    """Clave ``<componente>-<from ISO>-<to ISO>`` (``no-date`` sin rango).

    ``extra`` agrega parámetros adicionales como ``-clave:valor``.
    """
    if range_ is None:
        date_key = NO_DATE_KEY
    else:
        from_iso = to_iso(range_.from_) if range_.from_ else ""
        to_iso_ = to_iso(range_.to) if range_.to else ""
        date_key = f"{from_iso}-{to_iso_}"
    params = "".join(f"-{k}:{v}" for k, v in extra.items()) if extra else ""
    return f"{component_name}-{date_key}{params}"


# ---------------------------------------------------------------------------
# Serialización
# ---------------------------------------------------------------------------

def _to_ms(value: datetime) -> int:
    return int(round(value.timestamp() * 1000))


def _from_ms(value: Any, tz: Optional[tzinfo]) -> datetime:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise StateCorruptError(f"timestamp no numérico: {value!r}")
    try:
        return datetime.fromtimestamp(value / 1000.0, tz)
    except (OverflowError, OSError, ValueError) as e:
        raise StateCorruptError(f"timestamp fuera de rango: {value!r}") from e


def _range_to_json(range_: Optional[DateRange]) -> Optional[Dict[str, str]]:
    if range_ is None or not range_.is_complete:
        return None
    return {"from": to_iso(range_.from_), "to": to_iso(range_.to)}  # type: ignore[arg-type]


def _range_from_json(raw: Any) -> Optional[DateRange]:
    """Rango persistido → ``DateRange``; se descarta si algún extremo falla."""
    if not isinstance(raw, dict):
        return None
    from_ = parse_iso(raw.get("from"))
    to = parse_iso(raw.get("to"))
    if from_ is None or to is None or from_ > to:
        return None
    return DateRange(from_, to)


def serialize_state(state: DashboardState) -> str:
    """Serializa ``state`` al formato persistido (JSON)."""
    payload: Dict[str, Any] = {}

    original = _range_to_json(state.original_date_range)
    if original is not None:
        payload["originalDateRange"] = original
    current = _range_to_json(state.current_date_range)
    if current is not None:
        payload["currentDateRange"] = current

    payload["apiResponses"] = [
        [key, {"data": e.data, "timestamp": _to_ms(e.timestamp), "ttl": int(e.ttl / timedelta(milliseconds=1))}]
        for key, e in state.api_responses.items()
    ]
    payload["lastUpdated"] = _to_ms(state.last_updated) if state.last_updated else 0
    payload["isUserSelected"] = bool(state.is_user_selected)
    if state.user_selection_timestamp is not None:
        payload["userSelectionTimestamp"] = _to_ms(state.user_selection_timestamp)
    payload["version"] = STATE_VERSION

    return json.dumps(payload, ensure_ascii=False)


def deserialize_state(raw: str, tz: Optional[tzinfo] = None) -> DashboardState:
    """Parsea el JSON persistido.

    Raises
    ------
    StateCorruptError
        Si el JSON no se puede parsear o le falta estructura. Los rangos con
        fechas inválidas no levantan error: se descartan individualmente.
    """
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise StateCorruptError(f"JSON inválido: {e}") from e

    if not isinstance(data, dict):
        raise StateCorruptError("el estado persistido no es un objeto")

    version = data.get("version", STATE_VERSION)
    if version != STATE_VERSION:
        raise StateCorruptError(f"versión incompatible: {version!r}")

    if "lastUpdated" not in data:
        raise StateCorruptError("falta lastUpdated")
    last_updated = _from_ms(data["lastUpdated"], tz)

    raw_responses = data.get("apiResponses", [])
    if not isinstance(raw_responses, list):
        raise StateCorruptError("apiResponses no es una lista")

    responses: Dict[str, CacheEntry] = {}
    for item in raw_responses:
        if not (isinstance(item, (list, tuple)) and len(item) == 2):
            raise StateCorruptError(f"entrada de cache mal formada: {item!r}")
        key, entry = item
        if not isinstance(key, str) or not isinstance(entry, dict):
            raise StateCorruptError(f"entrada de cache mal formada: {item!r}")
        ttl_ms = entry.get("ttl")
        if isinstance(ttl_ms, bool) or not isinstance(ttl_ms, (int, float)):
            raise StateCorruptError(f"ttl inválido en {key!r}")
        responses[key] = CacheEntry(
            data=entry.get("data"),
            timestamp=_from_ms(entry.get("timestamp"), tz),
            ttl=timedelta(milliseconds=ttl_ms),
        )

    is_user_selected = data.get("isUserSelected", False)
    if not isinstance(is_user_selected, bool):
        raise StateCorruptError("isUserSelected no es booleano")

    raw_ts = data.get("userSelectionTimestamp")
    user_ts = _from_ms(raw_ts, tz) if raw_ts is not None else None

    return DashboardState(
        original_date_range=_range_from_json(data.get("originalDateRange")),
        current_date_range=_range_from_json(data.get("currentDateRange")),
        api_responses=responses,
        last_updated=last_updated,
        is_user_selected=is_user_selected,
        user_selection_timestamp=user_ts,
    )


def discard_reason(state: DashboardState, now: datetime) -> Optional[str]:
    """Motivo para descartar un estado hidratado, o ``None`` si sigue vigente."""
    if state.is_user_selected:
        ts = state.user_selection_timestamp
        if ts is None:
            return "selección de usuario sin timestamp"
        if now - ts > USER_SELECTION_TTL:
            return f"selección de usuario con más de {USER_SELECTION_TTL}"
        return None

    range_ = state.current_date_range or state.original_date_range
    if range_ is not None and range_.from_ != now.date():
        return f"rango automático de otro día ({range_.from_})"
    return None


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

class DashboardStateStore:
    """Dueño único del ``DashboardState`` de una pestaña.

    Parameters
    ----------
    storage:
        Almacén clave-valor donde se persiste el estado (memoria por defecto).
    clock:
        Reloj inyectable; los tests lo usan para simular el paso del tiempo.
    """

    def __init__(self, storage: Optional[KeyValueStore] = None, *, clock: Optional[Clock] = None) -> None:
        self._storage: KeyValueStore = storage if storage is not None else MemoryStore()
        self._clock: Clock = clock or system_clock
        self._lock = RLock()
        self._state: DashboardState = self._hydrate()

    # -- Internos -----------------------------------------------------------

    def _now(self) -> datetime:
        return self._clock()

    def _empty_state(self) -> DashboardState:
        return DashboardState(last_updated=self._now())

    def _hydrate(self) -> DashboardState:
        try:
            raw = self._storage.get(STORAGE_KEY)
        except OSError as e:
            logger.warning("No se pudo leer el estado del Dashboard: %s", e)
            return self._empty_state()
        if raw is None:
            return self._empty_state()

        now = self._now()
        try:
            state = deserialize_state(raw, now.tzinfo)
        except StateCorruptError as e:
            logger.warning("Estado del Dashboard corrupto, se descarta: %s", e)
            self._delete_persisted()
            return self._empty_state()

        reason = discard_reason(state, now)
        if reason is not None:
            logger.info("Limpiando estado del Dashboard: %s", reason)
            self._delete_persisted()
            return self._empty_state()
        return state

    def _delete_persisted(self) -> None:
        try:
            self._storage.delete(STORAGE_KEY)
            self._storage.delete(LEGACY_API_CACHE_KEY)
        except OSError as e:
            logger.warning("No se pudo limpiar el estado persistido: %s", e)

    def _persist(self, state: DashboardState) -> None:
        try:
            self._storage.set(STORAGE_KEY, serialize_state(state))
        except (OSError, TypeError, ValueError) as e:
            # El estado en memoria se conserva; la próxima carga rehidrata desde
            # el último snapshot persistido con éxito.
            logger.warning("No se pudo persistir el estado del Dashboard: %s", e)

    def _update(self, **changes: Any) -> DashboardState:
        self._state = replace(self._state, last_updated=self._now(), **changes)
        self._persist(self._state)
        return self._state

    # -- Lectura ------------------------------------------------------------

    @property
    def state(self) -> DashboardState:
        return self._state

    @property
    def original_date_range(self) -> Optional[DateRange]:
        return self._state.original_date_range

    @property
    def current_date_range(self) -> Optional[DateRange]:
        return self._state.current_date_range

    @property
    def last_updated(self) -> Optional[datetime]:
        return self._state.last_updated

    @property
    def is_user_selected(self) -> bool:
        return self._state.is_user_selected

    # -- Rangos -------------------------------------------------------------

    def set_original_date_range(
        self,
        range_: Optional[DateRange],
        force_user_selected: bool = False,
    ) -> Optional[DateRange]:
        """Fija el rango original (y actual) del Dashboard.

        Parameters
        ----------
        range_:
            Rango elegido. Si no pasa ``validate_date_range`` se guarda ``None``.
        force_user_selected:
            Marca el rango como elegido por el usuario aunque sea hoy..hoy.

        Returns
        -------
        DateRange | None
            El rango validado que quedó activo.
        """
        with self._lock:
            now = self._now()
            hoy = now.date()
            validated = validate_date_range(range_, hoy)

            is_today = validated is not None and validated.from_ == hoy and validated.to == hoy
            user_selected = validated is not None and (force_user_selected or not is_today)

            self._update(
                original_date_range=validated,
                current_date_range=validated,
                is_user_selected=user_selected,
                user_selection_timestamp=now if user_selected else None,
            )
        logger.debug("Rango original=%s (usuario=%s)", validated, user_selected)
        return validated

    def set_current_date_range(self, range_: Optional[DateRange]) -> Optional[DateRange]:
        """Actualiza solo el rango mostrado (navegación transitoria)."""
        with self._lock:
            validated = validate_date_range(range_, self._now().date())
            self._update(current_date_range=validated)
        return validated

    def restore_original_date_range(self) -> Optional[DateRange]:
        """Copia el rango original sobre el actual (volver de un detalle).

        Returns
        -------
        DateRange | None
            El rango restaurado, o ``None`` si no hay original completo. En ese
            caso no se modifica nada y el caller decide qué mostrar.
        """
        with self._lock:
            original = self._state.original_date_range
            if original is None or not original.is_complete:
                logger.warning("No hay rango original para restaurar")
                return None
            self._update(current_date_range=original)
        return original

    # -- Cache de API -------------------------------------------------------

    def get_cached_api_response(
        self,
        component_name: str,
        range_: Optional[DateRange],
        extra: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        """Payload cacheado vigente, o ``None``.

        Una entrada vencida se desaloja como efecto secundario de la lectura.
        """
        key = generate_cache_key(component_name, range_, extra)
        with self._lock:
            entry = self._state.api_responses.get(key)
            if entry is None:
                logger.debug("Cache miss: %s", key)
                return None

            if not entry.is_expired(self._now()):
                logger.debug("Cache hit: %s", key)
                return entry.data

            responses = dict(self._state.api_responses)
            responses.pop(key, None)
            self._update(api_responses=responses)
        logger.debug("Cache vencido, desalojado: %s", key)
        return None

    def set_cached_api_response(
        self,
        component_name: str,
        range_: Optional[DateRange],
        data: Any,
        ttl: Optional[timedelta] = None,
        extra: Optional[Mapping[str, Any]] = None,
    ) -> str:
        """Guarda (o reemplaza) la respuesta de ``component_name`` para el rango.

        Returns
        -------
        str
            La clave de cache usada.
        """
        key = generate_cache_key(component_name, range_, extra)
        with self._lock:
            responses = dict(self._state.api_responses)
            responses[key] = CacheEntry(
                data=data,
                timestamp=self._now(),
                ttl=ttl if ttl is not None else DEFAULT_CACHE_TTL,
            )
            self._update(api_responses=responses)
        return key

    def clear_api_cache(self, pattern: Optional[str] = None) -> int:
        """Desaloja las entradas cuya clave contiene ``pattern`` (o todas).

        Returns
        -------
        int
            Cantidad de entradas eliminadas.
        """
        with self._lock:
            current = self._state.api_responses
            if pattern:
                responses = {k: v for k, v in current.items() if pattern not in k}
            else:
                responses = {}
            removed = len(current) - len(responses)
            self._update(api_responses=responses)
        return removed

    def clear_expired_cache(self) -> int:
        """Purga explícita de entradas vencidas. Devuelve cuántas se eliminaron."""
        with self._lock:
            now = self._now()
            current = self._state.api_responses
            responses = {k: v for k, v in current.items() if not v.is_expired(now)}
            removed = len(current) - len(responses)
            if removed:
                self._update(api_responses=responses)
        if removed:
            logger.info("Se eliminaron %d entradas de cache vencidas", removed)
        return removed

    def cache_stats(self) -> CacheStats:
        with self._lock:
            now = self._now()
            entries: List[CacheEntry] = list(self._state.api_responses.values())
            try:
                raw = self._storage.get(STORAGE_KEY) or ""
            except OSError:
                raw = ""
        expired = sum(1 for e in entries if e.is_expired(now))
        return CacheStats(
            total_entries=len(entries),
            valid_entries=len(entries) - expired,
            expired_entries=expired,
            total_size=len(raw.encode("utf-8")),
        )

    # -- Utilidades ---------------------------------------------------------

    def clear_dashboard_state(self) -> None:
        """Borra el estado persistido y vuelve a los valores por defecto."""
        with self._lock:
            self._delete_persisted()
            self._state = self._empty_state()

    def is_state_valid(self, max_age: Optional[timedelta] = None) -> bool:
        """True si ``last_updated`` está dentro de ``max_age`` (30 min por defecto)."""
        last_updated = self._state.last_updated
        if last_updated is None:
            return False
        limit = max_age if max_age is not None else DEFAULT_CACHE_TTL
        return self._now() - last_updated < limit
