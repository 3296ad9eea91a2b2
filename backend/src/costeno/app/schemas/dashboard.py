"""Esquemas (Pydantic) para la API ``/dashboard/*``.

Contratos estables para el estado de sesión del Dashboard: rangos activos y
cache de respuestas de API. Los timestamps se exponen en ISO-8601 y los TTL en
milisegundos, igual que en el formato persistido.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from costeno.app.schemas.calendario import DateRangeModel


class DashboardEstado(BaseModel):
    """Contrato para ``GET /dashboard/estado``."""

    original_date_range: Optional[DateRangeModel] = None
    current_date_range: Optional[DateRangeModel] = None
    is_user_selected: bool = False
    user_selection_timestamp: Optional[str] = None
    last_updated: Optional[str] = None
    cache_keys: List[str] = Field(default_factory=list, description="Claves presentes en el cache de API.")
    classification: str = Field(..., description="Clasificación del rango actual.")
    widgets: List[str] = Field(default_factory=list)


class RangoRequest(BaseModel):
    """Body de ``PUT /dashboard/rango-original`` y ``PUT /dashboard/rango-actual``."""

    range: Optional[DateRangeModel] = Field(None, description="Rango a fijar; null limpia.")
    force_user_selected: bool = Field(
        False,
        description="Solo rango original: marca el rango como elegido aunque sea hoy.",
    )


class CacheParams(BaseModel):
    """Identifica una entrada de cache (rango + parámetros extra)."""

    range: Optional[DateRangeModel] = None
    extra: Optional[Dict[str, Any]] = None


class CachePutRequest(CacheParams):
    data: Any = Field(..., description="Payload opaco a cachear.")
    ttl_ms: Optional[int] = Field(None, gt=0, description="TTL en milisegundos (default 30 min).")


class CacheEntryResponse(BaseModel):
    key: str
    data: Any = None


class CacheClearResponse(BaseModel):
    removed: int = Field(..., ge=0, description="Entradas eliminadas.")


class CacheStatsResponse(BaseModel):
    """Contrato para ``GET /dashboard/cache-stats``."""

    total_entries: int
    valid_entries: int
    expired_entries: int
    total_size: int = Field(..., description="Tamaño del estado persistido en bytes.")
