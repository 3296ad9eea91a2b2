# tests/conftest.py
from __future__ import annotations

import os
from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient

# Asegura que el código del backend esté en el path
os.environ.setdefault("PYTHONPATH", "backend/src")  # opcional, pyproject ya lo configura

from costeno.app.main import app  # noqa: E402
from costeno.dashboard.sesiones import SessionRegistry, get_registry  # noqa: E402


class FakeClock:
    """Reloj controlable: ``clock()`` devuelve ``now``; ``advance`` lo mueve."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    # Miércoles 17 de septiembre de 2025, 10:30 (semana lun 15 → dom 21)
    return FakeClock(datetime(2025, 9, 17, 10, 30))


@pytest.fixture
def registry(clock: FakeClock) -> SessionRegistry:
    return SessionRegistry(clock=clock, backend="memory")


@pytest.fixture
def client(registry: SessionRegistry):
    app.dependency_overrides[get_registry] = lambda: registry
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.pop(get_registry, None)
