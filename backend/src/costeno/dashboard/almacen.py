"""costeno.dashboard.almacen

Capacidad clave-valor donde se persiste el estado del Dashboard.

El estado no conoce el mecanismo concreto: recibe cualquier objeto que cumpla
``KeyValueStore`` (``get``/``set``/``delete`` de strings).

Implementaciones
----------------
- ``MemoryStore``: diccionario en memoria. Equivale al ``sessionStorage`` de
  una pestaña y es el backend por defecto de la API.
- ``FileStore``: un JSON por clave dentro de un directorio. La escritura es
  **atómica** (tmp + ``os.replace``) y se protege con un lock en memoria,
  igual que el manifest del histórico.

Configuración
-------------
- ``COSTENO_STATE_BACKEND``: ``memory`` (default) o ``file``.
- ``COSTENO_STATE_DIR``: ver ``costeno.utils.paths``.
"""

from __future__ import annotations

import os
from pathlib import Path
from threading import Lock
from typing import Dict, Iterator, Optional, Protocol

from costeno.utils.paths import safe_segment, sessions_dir

STATE_BACKEND = os.getenv("COSTENO_STATE_BACKEND", "memory").strip().lower()


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryStore:
    """Almacén en memoria (por proceso)."""

    def __init__(self) -> None:
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> Iterator[str]:
        return iter(list(self._data))

    def __len__(self) -> int:
        return len(self._data)


_WRITE_LOCK: Lock = Lock()


class FileStore:
    """Almacén en disco: ``<root>/<clave>.json``.

    Parameters
    ----------
    root:
        Directorio de la sesión. Se crea en la primera escritura.
    """

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def _path(self, key: str) -> Path:
        return self.root / f"{safe_segment(key)}.json"

    def get(self, key: str) -> Optional[str]:
        try:
            return self._path(key).read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        with _WRITE_LOCK:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp = path.with_suffix(path.suffix + ".tmp")
            tmp.write_text(value, encoding="utf-8")
            os.replace(tmp, path)

    def delete(self, key: str) -> None:
        with _WRITE_LOCK:
            try:
                self._path(key).unlink()
            except FileNotFoundError:
                pass

    def keys(self) -> Iterator[str]:
        if not self.root.is_dir():
            return iter(())
        return iter(sorted(p.stem for p in self.root.glob("*.json")))


def store_for_session(session_id: str, backend: Optional[str] = None) -> KeyValueStore:
    """Crea el almacén de una sesión (pestaña) según la configuración."""
    kind = (backend or STATE_BACKEND).strip().lower()
    if kind == "file":
        return FileStore(sessions_dir() / safe_segment(session_id))
    return MemoryStore()
