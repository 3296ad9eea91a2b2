"""tests.unit.test_estado_dashboard

Contrato del ``DashboardStateStore``:

- Cada mutación persiste el estado completo en el almacén (clave
  ``dashboard_state``) con el formato camelCase esperado por el frontend.
- Las entradas de cache vencen por TTL y se desalojan al leerlas.
- Al hidratar se descartan estados corruptos, selecciones de usuario con más
  de 24 h y rangos automáticos ("hoy") de otro día.

Todas las pruebas usan un reloj falso (fixture ``clock``) y ``MemoryStore``.
"""

from __future__ import annotations

import json
import logging
import sys
import threading
from datetime import date, timedelta

import pytest

from costeno.dashboard.almacen import MemoryStore
from costeno.dashboard.estado import (
    LEGACY_API_CACHE_KEY,
    STATE_VERSION,
    STORAGE_KEY,
    DashboardStateStore,
    generate_cache_key,
    validate_date_range,
)
from costeno.fechas.rango import DateRange

HOY = date(2025, 9, 17)
SEMANA = DateRange(date(2025, 9, 15), date(2025, 9, 21))
MES_PASADO = DateRange(date(2025, 8, 1), date(2025, 8, 31))

LOGGER = "costeno.dashboard.estado"


@pytest.fixture
def storage() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def store(storage: MemoryStore, clock) -> DashboardStateStore:
    return DashboardStateStore(storage, clock=clock)


def _persisted(storage: MemoryStore) -> dict:
    raw = storage.get(STORAGE_KEY)
    assert raw is not None
    return json.loads(raw)


# ---------------------------------------------------------------------------
# Rangos
# ---------------------------------------------------------------------------

def test_estado_inicial(store: DashboardStateStore, storage: MemoryStore, clock) -> None:
    assert store.original_date_range is None
    assert store.current_date_range is None
    assert store.is_user_selected is False
    assert store.last_updated == clock.now
    # sin mutaciones no se persiste nada
    assert storage.get(STORAGE_KEY) is None


def test_rango_hoy_no_es_seleccion_de_usuario(store: DashboardStateStore) -> None:
    store.set_original_date_range(DateRange(HOY, HOY))
    assert store.is_user_selected is False
    assert store.state.user_selection_timestamp is None

    store.set_original_date_range(DateRange(HOY, HOY), force_user_selected=True)
    assert store.is_user_selected is True


def test_set_original_persiste_formato_camel_case(store: DashboardStateStore, storage: MemoryStore, clock) -> None:
    clock.advance(minutes=1)
    store.set_original_date_range(SEMANA)

    assert store.original_date_range == SEMANA
    assert store.current_date_range == SEMANA
    assert store.is_user_selected is True
    assert store.state.user_selection_timestamp == clock.now

    data = _persisted(storage)
    assert data["originalDateRange"] == {"from": "2025-09-15", "to": "2025-09-21"}
    assert data["currentDateRange"] == {"from": "2025-09-15", "to": "2025-09-21"}
    assert data["apiResponses"] == []
    assert data["isUserSelected"] is True
    assert data["userSelectionTimestamp"] == int(clock.now.timestamp() * 1000)
    assert data["lastUpdated"] == data["userSelectionTimestamp"]
    assert data["version"] == STATE_VERSION


@pytest.mark.parametrize(
    "rango, valido",
    [
        (DateRange(HOY + timedelta(days=1), HOY + timedelta(days=1)), True),
        (DateRange(HOY + timedelta(days=2), HOY + timedelta(days=3)), False),
        (DateRange(date(2025, 9, 20), date(2025, 9, 10)), False),
        (DateRange(HOY, None), False),
        (None, False),
    ],
)
def test_validacion_de_rangos(rango, valido: bool) -> None:
    assert (validate_date_range(rango, HOY) is not None) is valido


def test_rango_invalido_se_guarda_como_none(store: DashboardStateStore) -> None:
    store.set_original_date_range(SEMANA)
    store.set_original_date_range(DateRange(HOY + timedelta(days=5), HOY + timedelta(days=6)))
    assert store.original_date_range is None
    assert store.current_date_range is None
    assert store.is_user_selected is False


def test_set_current_no_toca_el_original(store: DashboardStateStore) -> None:
    store.set_original_date_range(SEMANA)
    store.set_current_date_range(MES_PASADO)
    assert store.original_date_range == SEMANA
    assert store.current_date_range == MES_PASADO


def test_restaurar_rango_original(store: DashboardStateStore) -> None:
    store.set_original_date_range(SEMANA)
    store.set_current_date_range(MES_PASADO)

    assert store.restore_original_date_range() == SEMANA
    assert store.current_date_range == SEMANA


def test_restaurar_sin_original_no_modifica_nada(
    store: DashboardStateStore, clock, caplog: pytest.LogCaptureFixture
) -> None:
    antes = store.state
    clock.advance(minutes=5)
    with caplog.at_level(logging.WARNING, logger=LOGGER):
        assert store.restore_original_date_range() is None
    assert store.state is antes
    assert "rango original" in caplog.text


# ---------------------------------------------------------------------------
# Cache de API
# ---------------------------------------------------------------------------

def test_generate_cache_key() -> None:
    assert generate_cache_key("ventas", SEMANA) == "ventas-2025-09-15-2025-09-21"
    assert generate_cache_key("ventas", None) == "ventas-no-date"
    assert generate_cache_key("ventas", DateRange(HOY, None)) == "ventas-2025-09-17-"
    assert (
        generate_cache_key("ventas", SEMANA, {"sucursal": 12, "canal": "web"})
        == "ventas-2025-09-15-2025-09-21-sucursal:12-canal:web"
    )


def test_cache_hit_y_miss(store: DashboardStateStore) -> None:
    assert store.get_cached_api_response("ventas", SEMANA) is None

    key = store.set_cached_api_response("ventas", SEMANA, {"total": 1500})

    assert key == "ventas-2025-09-15-2025-09-21"
    assert store.get_cached_api_response("ventas", SEMANA) == {"total": 1500}
    assert store.get_cached_api_response("ventas", MES_PASADO) is None
    assert store.get_cached_api_response("ventas", SEMANA, {"sucursal": 1}) is None


def test_entrada_vencida_se_desaloja_al_leer(store: DashboardStateStore, storage: MemoryStore, clock) -> None:
    store.set_cached_api_response("ventas", SEMANA, {"total": 1}, ttl=timedelta(milliseconds=100))
    key = generate_cache_key("ventas", SEMANA)
    assert key in store.state.api_responses

    clock.advance(milliseconds=150)

    assert store.get_cached_api_response("ventas", SEMANA) is None
    assert key not in store.state.api_responses
    assert _persisted(storage)["apiResponses"] == []


def test_ttl_exacto_ya_esta_vencido(store: DashboardStateStore, clock) -> None:
    store.set_cached_api_response("ventas", SEMANA, [1, 2], ttl=timedelta(seconds=10))
    clock.advance(seconds=9, milliseconds=999)
    assert store.get_cached_api_response("ventas", SEMANA) == [1, 2]
    clock.advance(milliseconds=1)
    assert store.get_cached_api_response("ventas", SEMANA) is None


def test_ttl_por_defecto_es_30_minutos(store: DashboardStateStore, clock) -> None:
    store.set_cached_api_response("ventas", None, "ok")
    clock.advance(minutes=29, seconds=59)
    assert store.get_cached_api_response("ventas", None) == "ok"
    clock.advance(seconds=1)
    assert store.get_cached_api_response("ventas", None) is None


def test_reemplazo_de_entrada(store: DashboardStateStore, clock) -> None:
    store.set_cached_api_response("ventas", SEMANA, "v1", ttl=timedelta(minutes=1))
    clock.advance(seconds=50)
    store.set_cached_api_response("ventas", SEMANA, "v2", ttl=timedelta(minutes=1))
    clock.advance(seconds=50)
    # el timestamp se renovó con el reemplazo
    assert store.get_cached_api_response("ventas", SEMANA) == "v2"


def test_clear_api_cache_por_patron(store: DashboardStateStore) -> None:
    store.set_cached_api_response("ventas-diarias", SEMANA, 1)
    store.set_cached_api_response("ventas-semanales", SEMANA, 2)
    store.set_cached_api_response("cuentas", SEMANA, 3)

    assert store.clear_api_cache("ventas") == 2
    assert sorted(store.state.api_responses) == ["cuentas-2025-09-15-2025-09-21"]

    assert store.clear_api_cache() == 1
    assert store.state.api_responses == {}


def test_clear_expired_cache_y_stats(store: DashboardStateStore, storage: MemoryStore, clock) -> None:
    store.set_cached_api_response("a", SEMANA, 1, ttl=timedelta(seconds=1))
    store.set_cached_api_response("b", SEMANA, 2, ttl=timedelta(minutes=10))
    clock.advance(seconds=2)

    stats = store.cache_stats()
    assert (stats.total_entries, stats.valid_entries, stats.expired_entries) == (2, 1, 1)
    assert stats.total_size == len(storage.get(STORAGE_KEY).encode("utf-8"))

    assert store.clear_expired_cache() == 1
    assert store.clear_expired_cache() == 0
    assert list(store.state.api_responses) == ["b-2025-09-15-2025-09-21"]


def test_escrituras_concurrentes_de_claves_distintas_no_se_pierden(clock) -> None:
    """Los widgets de una pestaña escriben el cache en paralelo (threadpool).

    Con un intervalo de cambio de hilo mínimo, 8 hilos liberados a la vez por
    una barrera escriben claves distintas sobre el mismo store; ninguna entrada
    puede perderse, ni en memoria ni en el almacén.
    """
    hilos = 8
    previo = sys.getswitchinterval()
    sys.setswitchinterval(1e-6)
    try:
        for _ in range(100):
            storage = MemoryStore()
            store = DashboardStateStore(storage, clock=clock)
            barrera = threading.Barrier(hilos)

            def _escribir(i: int) -> None:
                barrera.wait()
                store.set_cached_api_response(f"widget{i}", SEMANA, {"valor": i})

            workers = [threading.Thread(target=_escribir, args=(i,)) for i in range(hilos)]
            for w in workers:
                w.start()
            for w in workers:
                w.join()

            assert len(store.state.api_responses) == hilos
            assert len(_persisted(storage)["apiResponses"]) == hilos
    finally:
        sys.setswitchinterval(previo)


# ---------------------------------------------------------------------------
# Persistencia e hidratación
# ---------------------------------------------------------------------------

def test_round_trip(store: DashboardStateStore, storage: MemoryStore, clock) -> None:
    store.set_original_date_range(SEMANA)
    store.set_current_date_range(MES_PASADO)
    store.set_cached_api_response("ventas", SEMANA, {"serie": [1, 2, 3], "moneda": "PEN"})

    clock.advance(minutes=1)
    hidratado = DashboardStateStore(storage, clock=clock)

    assert hidratado.state == store.state


def test_seleccion_de_usuario_sobrevive_24_horas(storage: MemoryStore, clock) -> None:
    DashboardStateStore(storage, clock=clock).set_original_date_range(SEMANA)

    clock.advance(hours=24)
    assert DashboardStateStore(storage, clock=clock).original_date_range == SEMANA

    clock.advance(seconds=1)
    assert DashboardStateStore(storage, clock=clock).original_date_range is None
    assert storage.get(STORAGE_KEY) is None


def test_rango_automatico_de_otro_dia_se_descarta(storage: MemoryStore, clock) -> None:
    DashboardStateStore(storage, clock=clock).set_original_date_range(DateRange(HOY, HOY))

    clock.advance(hours=5)
    assert DashboardStateStore(storage, clock=clock).original_date_range == DateRange(HOY, HOY)

    clock.advance(days=1)
    nuevo = DashboardStateStore(storage, clock=clock)
    assert nuevo.original_date_range is None
    assert storage.get(STORAGE_KEY) is None


def test_hoy_forzado_como_usuario_sobrevive_al_cambio_de_dia(storage: MemoryStore, clock) -> None:
    DashboardStateStore(storage, clock=clock).set_original_date_range(DateRange(HOY, HOY), force_user_selected=True)
    clock.advance(hours=20)  # ya es 18/09
    assert DashboardStateStore(storage, clock=clock).original_date_range == DateRange(HOY, HOY)


@pytest.mark.parametrize(
    "raw",
    [
        "{no es json",
        "[]",
        json.dumps({"apiResponses": []}),
        json.dumps({"lastUpdated": 1, "apiResponses": {"k": 1}}),
        json.dumps({"lastUpdated": 1, "apiResponses": [["k"]]}),
        json.dumps({"lastUpdated": 1, "apiResponses": [["k", {"data": 1, "timestamp": "x", "ttl": 1}]]}),
        json.dumps({"lastUpdated": "ayer", "apiResponses": []}),
        json.dumps({"lastUpdated": 1, "apiResponses": [], "version": "0.9.0"}),
    ],
)
def test_estado_corrupto_se_descarta(
    storage: MemoryStore, clock, raw: str, caplog: pytest.LogCaptureFixture
) -> None:
    storage.set(STORAGE_KEY, raw)
    storage.set(LEGACY_API_CACHE_KEY, "[]")

    with caplog.at_level(logging.WARNING, logger=LOGGER):
        store = DashboardStateStore(storage, clock=clock)

    assert store.original_date_range is None
    assert store.state.api_responses == {}
    assert storage.get(STORAGE_KEY) is None
    assert storage.get(LEGACY_API_CACHE_KEY) is None
    assert "corrupto" in caplog.text


def test_rango_con_fecha_invalida_se_descarta_individualmente(storage: MemoryStore, clock) -> None:
    now_ms = int(clock.now.timestamp() * 1000)
    storage.set(
        STORAGE_KEY,
        json.dumps(
            {
                "originalDateRange": {"from": "2025-09-15", "to": "2025-09-21"},
                "currentDateRange": {"from": "2025-99-01", "to": "2025-09-21"},
                "apiResponses": [],
                "lastUpdated": now_ms,
                "isUserSelected": True,
                "userSelectionTimestamp": now_ms,
            }
        ),
    )
    store = DashboardStateStore(storage, clock=clock)
    assert store.original_date_range == SEMANA
    assert store.current_date_range is None


def test_fallo_al_persistir_conserva_el_estado_en_memoria(
    store: DashboardStateStore, storage: MemoryStore, caplog: pytest.LogCaptureFixture
) -> None:
    store.set_original_date_range(SEMANA)
    previo = storage.get(STORAGE_KEY)

    with caplog.at_level(logging.WARNING, logger=LOGGER):
        store.set_cached_api_response("ventas", SEMANA, object())

    assert "ventas-2025-09-15-2025-09-21" in store.state.api_responses
    assert storage.get(STORAGE_KEY) == previo
    assert "No se pudo persistir" in caplog.text


# ---------------------------------------------------------------------------
# Utilidades
# ---------------------------------------------------------------------------

def test_clear_dashboard_state(store: DashboardStateStore, storage: MemoryStore) -> None:
    store.set_original_date_range(SEMANA)
    store.set_cached_api_response("ventas", SEMANA, 1)
    storage.set(LEGACY_API_CACHE_KEY, "[]")

    store.clear_dashboard_state()

    assert store.original_date_range is None
    assert store.state.api_responses == {}
    assert storage.get(STORAGE_KEY) is None
    assert storage.get(LEGACY_API_CACHE_KEY) is None


def test_is_state_valid(store: DashboardStateStore, clock) -> None:
    store.set_original_date_range(SEMANA)
    clock.advance(minutes=29)
    assert store.is_state_valid()
    clock.advance(minutes=1)
    assert not store.is_state_valid()
    assert store.is_state_valid(max_age=timedelta(hours=1))
