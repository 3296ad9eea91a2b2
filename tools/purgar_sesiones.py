"""
tools/purgar_sesiones.py (Costeño Dashboard)
Mantenimiento del estado de sesiones persistido en disco (backend ``file``).

Modos:
  - Inventario:      python -m tools.purgar_sesiones --inventory
  - Dry-run:         python -m tools.purgar_sesiones --dry-run
  - Borrado real:    python -m tools.purgar_sesiones --force

Reglas (las mismas que aplica el store al hidratar):
  - Estado corrupto o de otra versión            → se elimina la sesión
  - Selección del usuario con más de 24 h        → se elimina la sesión
  - Rango automático ("hoy") de otro día         → se elimina la sesión
  - Sesión vigente                                → se purgan sus entradas de cache vencidas

El directorio base sale de ``COSTENO_STATE_DIR`` (ver ``costeno.utils.paths``).
"""

from __future__ import annotations
import argparse
import dataclasses
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from costeno.dashboard.almacen import FileStore
from costeno.dashboard.estado import (
    LEGACY_API_CACHE_KEY,
    STORAGE_KEY,
    DashboardStateStore,
    StateCorruptError,
    deserialize_state,
    discard_reason,
)
from costeno.fechas.rango import Clock, system_clock
from costeno.utils.paths import sessions_dir


@dataclasses.dataclass
class SessionInfo:
    session_id: str
    path: Path
    size: int
    status: str            # vigente | descartar | vacia
    reason: str = ""
    cache_entries: int = 0
    expired_entries: int = 0


def human(nbytes: int) -> str:
    units = ["B", "KB", "MB", "GB"]
    s = float(nbytes)
    for u in units:
        if s < 1024.0:
            return f"{s:.2f} {u}"
        s /= 1024.0
    return f"{s:.2f} TB"


def _dir_size(path: Path) -> int:
    total = 0
    for p in path.glob("*.json"):
        try:
            total += p.stat().st_size
        except FileNotFoundError:
            continue
    return total


def inspect_session(path: Path, now: datetime) -> SessionInfo:
    """Evalúa una sesión sin modificarla."""
    info = SessionInfo(session_id=path.name, path=path, size=_dir_size(path), status="vigente")
    raw = FileStore(path).get(STORAGE_KEY)
    if raw is None:
        info.status = "vacia"
        info.reason = "sin estado persistido"
        return info

    try:
        state = deserialize_state(raw, now.tzinfo)
    except StateCorruptError as e:
        info.status = "descartar"
        info.reason = f"corrupto: {e}"
        return info

    reason = discard_reason(state, now)
    if reason is not None:
        info.status = "descartar"
        info.reason = reason
        return info

    info.cache_entries = len(state.api_responses)
    info.expired_entries = sum(1 for e in state.api_responses.values() if e.is_expired(now))
    return info


def inventory(base: Path, now: datetime) -> List[SessionInfo]:
    if not base.is_dir():
        return []
    return [inspect_session(p, now) for p in sorted(base.iterdir()) if p.is_dir()]


def remove_session(path: Path) -> None:
    store = FileStore(path)
    store.delete(STORAGE_KEY)
    store.delete(LEGACY_API_CACHE_KEY)
    try:
        path.rmdir()
    except OSError:
        # Quedan otros archivos en la carpeta; no son nuestros.
        pass


def run_purge(*,
    base: Optional[Path] = None,
    force: bool = False,
    clock: Optional[Clock] = None,
):
    """
    Inventario + (opcional) purga. Devuelve un dict con resumen y acciones.
    Sin ``force`` no se modifica nada.
    """
    base = base or sessions_dir()
    clock = clock or system_clock
    sessions = inventory(base, clock())

    actions = []
    if force:
        for s in sessions:
            if s.status in ("descartar", "vacia"):
                remove_session(s.path)
                actions.append({"action": "removed", "session": s.session_id, "reason": s.reason})
            elif s.expired_entries:
                removed = DashboardStateStore(FileStore(s.path), clock=clock).clear_expired_cache()
                actions.append({"action": "purged_cache", "session": s.session_id, "entries": removed})

    return {
        "base": str(base),
        "total_sessions": len(sessions),
        "total_size_bytes": sum(s.size for s in sessions),
        "to_remove": [s.session_id for s in sessions if s.status != "vigente"],
        "expired_entries": sum(s.expired_entries for s in sessions),
        "force": force,
        "actions": actions,
    }


def main(argv: List[str]) -> int:
    parser = argparse.ArgumentParser(description="Costeño: purga del estado de sesiones del Dashboard")
    parser.add_argument("--inventory", action="store_true", help="Sólo mostrar inventario resumido.")
    parser.add_argument("--dry-run", action="store_true", help="Simular la purga sin borrar nada.")
    parser.add_argument("--force", action="store_true", help="Activar borrado real.")
    parser.add_argument("--sessions-dir", type=str, default=None, help="Directorio de sesiones (default: COSTENO_STATE_DIR/sessions).")
    args = parser.parse_args(argv)

    base = Path(args.sessions_dir).resolve() if args.sessions_dir else sessions_dir()
    sessions = inventory(base, system_clock())

    print("== Costeño :: Purga de sesiones ==")
    print(f"Directorio:     {base}")
    print(f"Sesiones:       {len(sessions)}")
    print(f"Total tamaño:   {human(sum(s.size for s in sessions))}")
    print(f"A eliminar:     {sum(1 for s in sessions if s.status != 'vigente')}")
    print(f"Cache vencido:  {sum(s.expired_entries for s in sessions)} entradas\n")

    for s in sessions:
        detail = s.reason or f"{s.cache_entries} entradas, {s.expired_entries} vencidas"
        print(f"  - {s.session_id} | {human(s.size)} | {s.status} | {detail}")

    if args.inventory:
        print("\nModo: INVENTORY (no se elimina nada).")
        return 0

    if args.dry_run or (not args.force):
        print("\nModo: DRY-RUN (no se elimina nada). Use --force para purgar.")
        return 0

    result = run_purge(base=base, force=True)
    print(f"\nBorrado real ACTIVADO (--force). Acciones: {len(result['actions'])}")
    for a in result["actions"]:
        print(f"  * {a['action']}: {a['session']}")
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
