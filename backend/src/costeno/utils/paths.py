"""
costeno.utils.paths
===================

Resolución de rutas para el estado persistido en disco.

Reglas de resolución
--------------------
- Si existe ``COSTENO_STATE_DIR``, ese directorio es la fuente de verdad.
- Si no, se usa ``<repo_root>/.state``.
- ``repo_root`` se infiere:
  1) ``COSTENO_PROJECT_ROOT`` si está definido.
  2) Subiendo desde este archivo buscando ``pyproject.toml`` o carpeta ``backend/``.
  3) Fallback: ``Path.cwd()``.

Este módulo no crea carpetas; quien escribe (``FileStore``) las crea cuando
corresponde.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any, Optional


_SEGMENT_RE = re.compile(r"[^a-zA-Z0-9._-]+")


def safe_segment(value: Any) -> str:
    """Convierte ``value`` en un segmento seguro de path.

    - Reemplaza separadores de path y caracteres raros por "_".
    - Evita ".." (traversal).

    Se usa para derivar nombres de archivo a partir de ids de sesión, que
    llegan desde un header HTTP.
    """
    s = str(value or "").strip()
    s = s.replace("\\", "_").replace("/", "_")
    s = s.replace("..", "_")
    s = _SEGMENT_RE.sub("_", s)
    s = s.strip("_")
    return s or "x"


def _find_project_root() -> Path:
    env_root = os.getenv("COSTENO_PROJECT_ROOT")
    if env_root:
        p = Path(env_root).expanduser().resolve()
        if p.exists():
            return p

    here = Path(__file__).resolve()
    for p in (here, *here.parents):
        if (p / "pyproject.toml").exists() or (p / "backend").is_dir():
            return p

    return Path.cwd().resolve()


_PROJECT_ROOT_CACHE: Optional[Path] = None


def project_root(*, refresh: bool = False) -> Path:
    """Retorna la raíz del repo (ver ``_find_project_root``)."""
    global _PROJECT_ROOT_CACHE
    if refresh or _PROJECT_ROOT_CACHE is None:
        _PROJECT_ROOT_CACHE = _find_project_root()
    return _PROJECT_ROOT_CACHE


def state_dir() -> Path:
    """Directorio base del estado de sesiones en disco.

    ``COSTENO_STATE_DIR`` se relee en cada llamada para que los tests puedan
    redirigirlo con ``monkeypatch.setenv``.
    """
    env_dir = os.getenv("COSTENO_STATE_DIR")
    if env_dir:
        return Path(env_dir).expanduser().resolve()
    return (project_root() / ".state").resolve()


def sessions_dir() -> Path:
    return state_dir() / "sessions"
