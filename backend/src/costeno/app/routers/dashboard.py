# backend/src/costeno/app/routers/dashboard.py
"""Router del estado de sesión del Dashboard (``/dashboard/*``).

Contrato de negocio
-------------------
- Cada pestaña (``X-Session-Id``) tiene su propio ``DashboardStateStore``.
- ``rango-original`` es el rango a restaurar al volver de un detalle de
  sucursal; ``rango-actual`` es el que se está mostrando.
- Fijar el rango original o borrar el estado re-sincroniza el calendario de
  la sesión; ``rango-actual`` no lo toca (navegación transitoria).
- El cache de API guarda payloads opacos por componente + rango. Una entrada
  vencida se desaloja al leerla y responde 404.

Los routers se mantienen delgados (HTTP/serialización); la lógica vive en
``costeno.dashboard.estado``.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from costeno.app.dependencies import current_session, range_from_model, range_to_model
from costeno.app.schemas.dashboard import (
    CacheClearResponse,
    CacheEntryResponse,
    CachePutRequest,
    CacheStatsResponse,
    DashboardEstado,
    RangoRequest,
)
from costeno.dashboard.estado import DashboardStateStore, generate_cache_key
from costeno.dashboard.sesiones import DashboardSession
from costeno.fechas.clasificador import classify, visible_widgets
from costeno.fechas.rango import DateRange, parse_iso

router = APIRouter()


def _estado(store: DashboardStateStore) -> DashboardEstado:
    state = store.state
    current = state.current_date_range
    return DashboardEstado(
        original_date_range=range_to_model(state.original_date_range),
        current_date_range=range_to_model(current),
        is_user_selected=state.is_user_selected,
        user_selection_timestamp=(
            state.user_selection_timestamp.isoformat() if state.user_selection_timestamp else None
        ),
        last_updated=state.last_updated.isoformat() if state.last_updated else None,
        cache_keys=sorted(state.api_responses),
        classification=classify(current).value,
        widgets=[w.value for w in visible_widgets(current)],
    )


def _query_range(from_: Optional[str], to: Optional[str]) -> Optional[DateRange]:
    if from_ is None and to is None:
        return None
    return DateRange(parse_iso(from_), parse_iso(to))  # type: ignore[arg-type]


def _parse_extra(items: List[str]) -> Optional[Dict[str, Any]]:
    """``["sucursal:12", "canal:web"]`` → ``{"sucursal": "12", "canal": "web"}``."""
    extra: Dict[str, Any] = {}
    for item in items:
        key, sep, value = item.partition(":")
        if not sep or not key:
            raise HTTPException(status_code=422, detail=f"Parámetro extra inválido: {item!r} (use clave:valor)")
        extra[key] = value
    return extra or None


# ---------------------------------------------------------------------------
# Estado y rangos
# ---------------------------------------------------------------------------

@router.get("/estado", response_model=DashboardEstado)
def dashboard_estado(session: DashboardSession = Depends(current_session)) -> DashboardEstado:
    return _estado(session.store)


@router.delete("/estado", response_model=DashboardEstado)
def dashboard_limpiar(session: DashboardSession = Depends(current_session)) -> DashboardEstado:
    """Borra el estado persistido de la sesión y vuelve a los defaults.

    El calendario de la sesión queda vacío, igual que el rango original.
    """
    session.store.clear_dashboard_state()
    session.calendar.sync(session.store.original_date_range)
    return _estado(session.store)


@router.put("/rango-original", response_model=DashboardEstado)
def dashboard_rango_original(
    body: RangoRequest,
    session: DashboardSession = Depends(current_session),
) -> DashboardEstado:
    """Fija el rango original. Rangos inválidos o futuros se guardan como null.

    El calendario de la sesión pasa a mostrar el rango guardado.
    """
    validated = session.store.set_original_date_range(range_from_model(body.range), body.force_user_selected)
    session.calendar.sync(validated)
    return _estado(session.store)


@router.put("/rango-actual", response_model=DashboardEstado)
def dashboard_rango_actual(
    body: RangoRequest,
    session: DashboardSession = Depends(current_session),
) -> DashboardEstado:
    session.store.set_current_date_range(range_from_model(body.range))
    return _estado(session.store)


@router.post("/restaurar", response_model=DashboardEstado)
def dashboard_restaurar(session: DashboardSession = Depends(current_session)) -> DashboardEstado:
    """Vuelve al rango original (al salir de un detalle de sucursal)."""
    if session.store.restore_original_date_range() is None:
        raise HTTPException(status_code=404, detail="No hay rango original para restaurar")
    return _estado(session.store)


# ---------------------------------------------------------------------------
# Cache de respuestas de API
# ---------------------------------------------------------------------------

@router.get("/cache/{componente}", response_model=CacheEntryResponse)
def dashboard_cache_get(
    componente: str,
    from_: Optional[str] = Query(None, alias="from", description="Fecha inicial ISO."),
    to: Optional[str] = Query(None, description="Fecha final ISO."),
    extra: List[str] = Query([], description="Parámetros extra como clave:valor."),
    session: DashboardSession = Depends(current_session),
) -> CacheEntryResponse:
    range_ = _query_range(from_, to)
    params = _parse_extra(extra)
    data = session.store.get_cached_api_response(componente, range_, params)
    key = generate_cache_key(componente, range_, params)
    if data is None:
        raise HTTPException(status_code=404, detail=f"Sin cache vigente para {key}")
    return CacheEntryResponse(key=key, data=data)


@router.put("/cache/{componente}", response_model=CacheEntryResponse)
def dashboard_cache_put(
    componente: str,
    body: CachePutRequest,
    session: DashboardSession = Depends(current_session),
) -> CacheEntryResponse:
    ttl = timedelta(milliseconds=body.ttl_ms) if body.ttl_ms else None
    key = session.store.set_cached_api_response(
        componente,
        range_from_model(body.range),
        body.data,
        ttl=ttl,
        extra=body.extra,
    )
    return CacheEntryResponse(key=key, data=body.data)


@router.delete("/cache", response_model=CacheClearResponse)
def dashboard_cache_clear(
    pattern: Optional[str] = Query(None, description="Subcadena de la clave; sin pattern se borra todo."),
    session: DashboardSession = Depends(current_session),
) -> CacheClearResponse:
    return CacheClearResponse(removed=session.store.clear_api_cache(pattern))


@router.post("/cache/purgar", response_model=CacheClearResponse)
def dashboard_cache_purgar(session: DashboardSession = Depends(current_session)) -> CacheClearResponse:
    """Purga explícita de entradas vencidas."""
    return CacheClearResponse(removed=session.store.clear_expired_cache())


@router.get("/cache-stats", response_model=CacheStatsResponse)
def dashboard_cache_stats(session: DashboardSession = Depends(current_session)) -> CacheStatsResponse:
    stats = session.store.cache_stats()
    return CacheStatsResponse(
        total_entries=stats.total_entries,
        valid_entries=stats.valid_entries,
        expired_entries=stats.expired_entries,
        total_size=stats.total_size,
    )
