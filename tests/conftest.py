"""
Shared pytest fixtures.

Each test gets its own file-backed SQLite database (aiosqlite) seeded with
the reference data and a known observer, and an application built from
test settings.
"""

import asyncio
from pathlib import Path
from typing import Iterable

import pytest
from fastapi.testclient import TestClient

from api.src.config import Settings
from api.src.database import (
    create_engine,
    create_schema,
    create_session_factory,
    ensure_seed_data,
)
from api.src.main import create_app
from api.src.models.entities import Ngo, NgoAdmin, Observer

OBSERVER_PHONE = "0722222222"
OBSERVER_PIN = "1234"

INACTIVE_OBSERVER_PHONE = "0733333333"
INACTIVE_OBSERVER_PIN = "1111"

ADMIN_ACCOUNT = "admin"
ADMIN_PASSWORD = "secret"

AUTHORIZE_URL = "/api/v1/access/authorize"
ADMIN_AUTHORIZE_URL = "/api/v1/access/admin"
TOKEN_TEST_URL = "/api/v1/access/test"


def make_settings(tmp_path: Path, **overrides) -> Settings:
    """Build settings pointing every resource at tmp_path."""
    storage = tmp_path / "wwwroot"
    values = dict(
        environment="development",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'votemonitor.db'}",
        database_seed=True,
        hash_options={"service_type": "ClearText"},
        application_cache={"implementation": "MemoryDistributedCache"},
        file_service={"type": "LocalFileService", "storage_path": str(storage)},
        static_files_root=str(storage),
        log_format="text",
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


async def seed_database(settings: Settings, entities: Iterable[object]) -> None:
    """Create the schema, insert seed data and the given entities."""
    engine = create_engine(settings)
    try:
        await create_schema(engine)
        session_factory = create_session_factory(engine)
        async with session_factory() as session:
            await ensure_seed_data(session)
            session.add_all(list(entities))
            await session.commit()
    finally:
        await engine.dispose()


def default_entities(pin: str = OBSERVER_PIN, password: str = ADMIN_PASSWORD) -> list:
    return [
        Observer(id=1, phone=OBSERVER_PHONE, pin=pin, id_ngo=1),
        Ngo(id=2, name="Inactive NGO", short_name="INA", organizer=False, is_active=False),
        Observer(id=2, phone=INACTIVE_OBSERVER_PHONE, pin=INACTIVE_OBSERVER_PIN, id_ngo=2),
        NgoAdmin(id=1, id_ngo=1, account=ADMIN_ACCOUNT, password=password),
    ]


@pytest.fixture
def settings(tmp_path) -> Settings:
    return make_settings(tmp_path)


@pytest.fixture
def seeded_settings(settings) -> Settings:
    asyncio.run(seed_database(settings, default_entities()))
    return settings


@pytest.fixture
def app(seeded_settings):
    return create_app(seeded_settings)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def observer_token(client) -> str:
    response = client.post(
        AUTHORIZE_URL,
        json={"user": OBSERVER_PHONE, "password": OBSERVER_PIN, "uniqueId": "device-1"}
    )
    assert response.status_code == 200
    return response.json()["access_token"]
