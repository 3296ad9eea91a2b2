"""costeno.dashboard

Estado de sesión del Dashboard: rango activo, cache de respuestas de API y el
registro de sesiones que expone la API.
"""

from .almacen import FileStore, KeyValueStore, MemoryStore, store_for_session
from .estado import (
    CacheEntry,
    CacheStats,
    DashboardState,
    DashboardStateStore,
    generate_cache_key,
    validate_date_range,
)
from .sesiones import DashboardSession, SessionRegistry, get_registry, open_session

__all__ = [
    "CacheEntry",
    "CacheStats",
    "DashboardSession",
    "DashboardState",
    "DashboardStateStore",
    "FileStore",
    "KeyValueStore",
    "MemoryStore",
    "SessionRegistry",
    "generate_cache_key",
    "get_registry",
    "open_session",
    "store_for_session",
    "validate_date_range",
]
