from collections.abc import Generator
from pathlib import Path

import pytest
from flask import Flask, g
from flask.testing import FlaskClient
from loguru import logger
from pytest_socket import disable_socket
from sqlalchemy.orm import Session

from recordcrate import config, database
from recordcrate.app import create_app
from recordcrate.catalog import SqlCatalogStore
from recordcrate.database import User, UserSession, create_tables, get_session
from recordcrate.providers import registry
from recordcrate.providers.registry import ProviderRegistry

FAKE_SESSION_TOKEN = "fake-session-token"  # noqa: S105


def pytest_runtest_setup() -> None:
    disable_socket()


@pytest.fixture(autouse=True)
def set_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("LOG_FILE", "/dev/null")  # DEBUG logs still written to stdout
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'recordcrate.db'}")
    for variable in (
        "SPOTIFY_CLIENT_ID",
        "SPOTIFY_CLIENT_SECRET",
        "APPLE_MUSIC_KEY_ID",
        "APPLE_MUSIC_TEAM_ID",
        "APPLE_MUSIC_PRIVATE_KEY",
        "APPLE_MUSIC_STOREFRONT",
        "PROVIDER_REQUEST_TIMEOUT",
    ):
        monkeypatch.delenv(variable, raising=False)


@pytest.fixture(autouse=True)
def reset_globals(
    monkeypatch: pytest.MonkeyPatch, set_env: None  # noqa: ARG001
) -> Generator[None, None, None]:
    monkeypatch.setattr(config, "_config", None)
    monkeypatch.setattr(database, "_database_engine", None)
    monkeypatch.setattr(registry, "_registry", None)
    yield
    if database._database_engine:
        database._database_engine.dispose()


@pytest.fixture
def catalog_db() -> None:
    create_tables()


@pytest.fixture
def db_session(catalog_db: None) -> Generator[Session, None, None]:  # noqa: ARG001
    with get_session() as sesh:
        yield sesh


@pytest.fixture
def store(catalog_db: None) -> SqlCatalogStore:  # noqa: ARG001
    return SqlCatalogStore()


@pytest.fixture
def user_id(catalog_db: None) -> int:  # noqa: ARG001
    with get_session() as db_session:
        user = User(username="fake-user")
        db_session.add(user)
        db_session.flush()
        db_session.add(UserSession(token=FAKE_SESSION_TOKEN, user_id=user.id))
        return user.id


@pytest.fixture
def session_token(user_id: int) -> str:  # noqa: ARG001
    return FAKE_SESSION_TOKEN


@pytest.fixture
def install_registry(monkeypatch: pytest.MonkeyPatch) -> ProviderRegistry:
    """Make the app use an empty registry the test fills with fakes."""
    fake_registry = ProviderRegistry()
    monkeypatch.setattr(registry, "_registry", fake_registry)
    return fake_registry


@pytest.fixture
def app() -> Flask:
    flask_app = create_app()
    flask_app.config.update({"TESTING": True})  # pyright: ignore[reportUnknownMemberType]
    return flask_app


@pytest.fixture
def client(app: Flask) -> Generator[FlaskClient, None, None]:
    with app.app_context():
        g.logger = logger.bind()
        yield app.test_client()
