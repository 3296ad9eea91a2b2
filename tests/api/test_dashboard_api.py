# tests/api/test_dashboard_api.py
"""Tests de API para ``/dashboard/*`` (rangos y cache de respuestas).

Herméticos: registro de sesiones en memoria y reloj falso (ver
``tests/conftest.py``). El reloj se avanza para simular vencimientos.
"""

from __future__ import annotations

from fastapi.testclient import TestClient

from costeno.app.main import app
from costeno.dashboard.sesiones import SessionRegistry, get_registry

H = {"X-Session-Id": "tab-dashboard"}
SEMANA = {"from": "2025-09-15", "to": "2025-09-21"}
MES = {"from": "2025-08-01", "to": "2025-08-31"}


def test_rangos_original_actual_y_restaurar(client: TestClient) -> None:
    data = client.put("/dashboard/rango-original", json={"range": SEMANA}, headers=H).json()
    assert data["original_date_range"] == SEMANA
    assert data["current_date_range"] == SEMANA
    assert data["classification"] == "CompleteWeek"
    assert data["is_user_selected"] is True
    assert data["user_selection_timestamp"].startswith("2025-09-17T10:30")

    data = client.put("/dashboard/rango-actual", json={"range": MES}, headers=H).json()
    assert data["original_date_range"] == SEMANA
    assert data["current_date_range"] == MES

    data = client.post("/dashboard/restaurar", headers=H).json()
    assert data["current_date_range"] == SEMANA


def test_rango_futuro_o_mal_formado_queda_en_null(client: TestClient) -> None:
    data = client.put(
        "/dashboard/rango-original",
        json={"range": {"from": "2025-09-20", "to": "2025-09-25"}},
        headers=H,
    ).json()
    assert data["original_date_range"] is None
    assert data["classification"] == "Invalid"
    assert data["widgets"] == []

    data = client.put("/dashboard/rango-original", json={"range": {"from": "xx", "to": "2025-09-01"}}, headers=H).json()
    assert data["original_date_range"] is None


def test_restaurar_sin_original_es_404(client: TestClient) -> None:
    client.put("/dashboard/rango-original", json={"range": None}, headers=H)
    assert client.post("/dashboard/restaurar", headers=H).status_code == 404


def test_hoy_forzado(client: TestClient) -> None:
    hoy = {"from": "2025-09-17", "to": "2025-09-17"}
    data = client.put("/dashboard/rango-original", json={"range": hoy}, headers=H).json()
    assert data["is_user_selected"] is False
    data = client.put(
        "/dashboard/rango-original", json={"range": hoy, "force_user_selected": True}, headers=H
    ).json()
    assert data["is_user_selected"] is True


def test_cache_put_get_y_vencimiento(client: TestClient, clock) -> None:
    r = client.put(
        "/dashboard/cache/ventas-diarias",
        json={"range": SEMANA, "data": {"total": 1500}, "ttl_ms": 1000},
        headers=H,
    )
    assert r.status_code == 200
    assert r.json()["key"] == "ventas-diarias-2025-09-15-2025-09-21"

    r = client.get("/dashboard/cache/ventas-diarias", params=SEMANA, headers=H)
    assert r.status_code == 200
    assert r.json()["data"] == {"total": 1500}

    clock.advance(milliseconds=1500)
    assert client.get("/dashboard/cache/ventas-diarias", params=SEMANA, headers=H).status_code == 404
    assert client.get("/dashboard/estado", headers=H).json()["cache_keys"] == []


def test_cache_con_parametros_extra_y_sin_rango(client: TestClient) -> None:
    body = {"range": SEMANA, "extra": {"sucursal": "12"}, "data": [1, 2]}
    key = client.put("/dashboard/cache/ventas", json=body, headers=H).json()["key"]
    assert key == "ventas-2025-09-15-2025-09-21-sucursal:12"

    params = {**SEMANA, "extra": ["sucursal:12"]}
    assert client.get("/dashboard/cache/ventas", params=params, headers=H).json()["data"] == [1, 2]
    assert client.get("/dashboard/cache/ventas", params=SEMANA, headers=H).status_code == 404
    assert client.get("/dashboard/cache/ventas", params={**SEMANA, "extra": ["malo"]}, headers=H).status_code == 422

    client.put("/dashboard/cache/kpis", json={"data": "ok"}, headers=H)
    r = client.get("/dashboard/cache/kpis", headers=H)
    assert r.json() == {"key": "kpis-no-date", "data": "ok"}


def test_limpieza_purga_y_stats(client: TestClient, clock) -> None:
    client.put("/dashboard/cache/ventas-a", json={"range": SEMANA, "data": 1, "ttl_ms": 100}, headers=H)
    client.put("/dashboard/cache/ventas-b", json={"range": SEMANA, "data": 2}, headers=H)
    client.put("/dashboard/cache/cuentas", json={"range": SEMANA, "data": 3}, headers=H)
    clock.advance(seconds=1)

    stats = client.get("/dashboard/cache-stats", headers=H).json()
    assert stats["total_entries"] == 3
    assert stats["expired_entries"] == 1
    assert stats["valid_entries"] == 2
    assert stats["total_size"] > 0

    assert client.post("/dashboard/cache/purgar", headers=H).json() == {"removed": 1}
    assert client.delete("/dashboard/cache", params={"pattern": "ventas"}, headers=H).json() == {"removed": 1}
    assert client.get("/dashboard/estado", headers=H).json()["cache_keys"] == [
        "cuentas-2025-09-15-2025-09-21"
    ]
    assert client.delete("/dashboard/cache", headers=H).json() == {"removed": 1}


def test_borrar_estado(client: TestClient) -> None:
    client.put("/dashboard/rango-original", json={"range": SEMANA}, headers=H)
    client.put("/dashboard/cache/ventas", json={"range": SEMANA, "data": 1}, headers=H)

    data = client.delete("/dashboard/estado", headers=H).json()
    assert data["original_date_range"] is None
    assert data["cache_keys"] == []
    assert data["is_user_selected"] is False


def test_body_invalido_es_422(client: TestClient) -> None:
    r = client.put("/dashboard/cache/ventas", json={"range": SEMANA, "data": 1, "ttl_ms": -5}, headers=H)
    assert r.status_code == 422


def test_peticiones_sin_sesion_no_acumulan_sesiones(client: TestClient, registry: SessionRegistry, clock) -> None:
    """Cada petición sin ``X-Session-Id`` recibe un id nuevo; las inactivas se olvidan."""
    for _ in range(50):
        assert client.get("/dashboard/estado").status_code == 200
    assert len(registry) == 50

    clock.advance(hours=25)
    r = client.get("/dashboard/estado")
    assert len(registry) == 1
    assert registry.ids() == [r.headers["X-Session-Id"]]


def test_tope_de_sesiones_en_memoria(clock) -> None:
    registry = SessionRegistry(clock=clock, backend="memory", max_sessions=10)
    app.dependency_overrides[get_registry] = lambda: registry
    try:
        client = TestClient(app)
        for _ in range(50):
            client.get("/dashboard/estado")
        r = client.get("/dashboard/estado", headers=H)
    finally:
        app.dependency_overrides.pop(get_registry, None)

    assert r.status_code == 200
    assert len(registry) == 10
    assert "tab-dashboard" in registry.ids()


def test_rango_original_y_borrado_sincronizan_el_calendario(client: TestClient) -> None:
    client.put("/dashboard/rango-original", json={"range": MES}, headers=H)
    cal = client.get("/calendario/estado", headers=H).json()
    assert cal["temp_range"] == MES
    assert (cal["current_year"], cal["current_month"]) == (2025, 8)

    # rango futuro: se guarda null y el calendario queda vacío
    client.put("/dashboard/rango-original", json={"range": {"from": "2030-01-01", "to": "2030-01-31"}}, headers=H)
    assert client.get("/calendario/estado", headers=H).json()["state"] == "empty"

    client.put("/dashboard/rango-original", json={"range": SEMANA}, headers=H)
    client.delete("/dashboard/estado", headers=H)
    cal = client.get("/calendario/estado", headers=H).json()
    assert cal["state"] == "empty"
    assert cal["temp_range"] is None
    assert client.get("/dashboard/estado", headers=H).json()["original_date_range"] is None

    grilla = client.get("/calendario/grilla", headers=H).json()
    assert (grilla["year"], grilla["month"]) == (2025, 9)
    assert not any(d["is_selected"] or d["is_in_range"] for d in grilla["days"])
