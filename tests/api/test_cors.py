# tests/api/test_cors.py
from fastapi.testclient import TestClient

from costeno.app.main import ALLOWED_ORIGINS


def test_cors_preflight_options(client: TestClient):
    headers = {
        "Origin": ALLOWED_ORIGINS[0],
        "Access-Control-Request-Method": "PUT",
    }
    r = client.options("/dashboard/rango-original", headers=headers)
    # CORSMiddleware responde 200 al preflight con cabeceras CORS
    assert r.status_code in (200, 204)
    assert r.headers["access-control-allow-origin"] == ALLOWED_ORIGINS[0]


def test_cors_expone_header_de_sesion(client: TestClient):
    r = client.get("/health", headers={"Origin": ALLOWED_ORIGINS[0]})
    expuestos = r.headers.get("access-control-expose-headers", "").lower()
    assert "x-session-id" in expuestos
