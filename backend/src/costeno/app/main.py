"""
Módulo principal de la API del Dashboard de ventas (Costeño).

Responsabilidades:
- Instanciación de FastAPI
- Registro de routers (rutas agrupadas por dominio)
- Endpoints globales mínimos (/health)
- Habilitar CORS para permitir acceso desde el frontend (Vite, puerto 5173)
- Inyectar middleware de Correlation-Id / Session-Id para trazabilidad y
  para identificar la pestaña dueña del estado del Dashboard
"""

from __future__ import annotations

import os
import logging
from fastapi import FastAPI

# Configuración de logging (dictConfig)
from costeno.app.logging_config import setup_logging

# Middleware de trazabilidad y LogRecordFactory contextual
from costeno.observability.middleware_correlation import CorrelationIdMiddleware
from costeno.observability.logging_context import install_logrecord_factory
from fastapi.middleware.cors import CORSMiddleware

# Routers del dominio
from .routers import calendario, clasificacion, dashboard

logger = logging.getLogger("costeno")

# Instancia de la aplicación (título visible en /docs y /openapi.json)
app = FastAPI(title="Costeño Dashboard API", version=os.getenv("API_VERSION", "0.1.0"))

# ---------------------------------------------------------------------------
# CORS (necesario para que el navegador permita las peticiones desde Vite)
#   - COSTENO_ALLOWED_ORIGINS tiene prioridad (coma-separados)
#   - CORS_ALLOW_ORIGINS se acepta como respaldo (compat)
#   - Si ninguno está definido, se usan los defaults locales
# ---------------------------------------------------------------------------
_default_origins = ["http://localhost:5173", "http://127.0.0.1:5173"]
_env_origins_app = os.getenv("COSTENO_ALLOWED_ORIGINS")
_env_origins_old = os.getenv("CORS_ALLOW_ORIGINS")  # compat retro

_raw_origins = _env_origins_app if _env_origins_app else _env_origins_old
ALLOWED_ORIGINS = (
    [o.strip() for o in _raw_origins.split(",") if o.strip()]
    if _raw_origins
    else _default_origins
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    # El frontend necesita leer X-Session-Id para reenviarlo
    expose_headers=["X-Session-Id", "X-Correlation-Id"],
    max_age=600,
)

# --- Correlation-Id / Session-Id Middleware ---
# Expone request.state.correlation_id y request.state.session_id
app.add_middleware(CorrelationIdMiddleware)


@app.on_event("startup")
def _startup_logging() -> None:
    """
    - Configura logging (dictConfig con filtro de contexto)
    - Instala LogRecordFactory que inyecta correlation_id y session_id
    """
    setup_logging()
    install_logrecord_factory()
    logger.info("API iniciada (orígenes CORS: %s)", ", ".join(ALLOWED_ORIGINS))


@app.get("/health")
def health() -> dict:
    """Endpoint de salud: permite saber si la API está arriba."""
    return {"status": "ok"}


# Registro de routers bajo prefijos. Cada router agrupa rutas por contexto
# y define su propia etiqueta (tags) para la documentación automática.
app.include_router(calendario.router,    prefix="/calendario", tags=["calendario"])
app.include_router(dashboard.router,     prefix="/dashboard",  tags=["dashboard"])
app.include_router(clasificacion.router,                       tags=["clasificacion"])
