from __future__ import annotations

import os
import uuid
from contextlib import suppress
from pathlib import Path

import pytest
from alembic.config import Config
from sqlalchemy import Engine, create_engine, text
from sqlalchemy.engine.url import URL, make_url
from sqlalchemy.orm import Session

from alembic import command

_LOCAL_HOSTS = {"localhost", "127.0.0.1", None}
_INGEST_ENV = {
    "APP_ENV": "test",
    "WEBHOOK_SECRET": "",
    "TRACKED_CHANNEL": "whatsapp",
    "LOCAL_TIMEZONE": "America/Argentina/Tucuman",
    "OPEN_DEDUP_WINDOW_SECONDS": "60",
}


def _base_url() -> URL:
    raw = os.environ.get("DATABASE_URL")
    if raw is None:
        from app.core.config import get_settings

        raw = get_settings().DATABASE_URL
    url = make_url(raw)
    if url.host not in _LOCAL_HOSTS:
        raise RuntimeError(
            f"Refusing to create a throwaway database on {url.host!r}; "
            "point DATABASE_URL at a local PostgreSQL."
        )
    return url


def _reset_cached_state() -> None:
    from app.core.config import get_settings
    from app.db.session import get_engine, get_sessionmaker

    get_settings.cache_clear()
    get_engine.cache_clear()
    get_sessionmaker.cache_clear()


def _migrate_to_head() -> None:
    cfg = Config(str(Path(__file__).resolve().parents[1] / "alembic.ini"))
    command.upgrade(cfg, "head")


def _drop_database(admin_engine: Engine, db_name: str) -> None:
    with admin_engine.connect() as conn:
        conn.execute(
            text(
                """
                SELECT pg_terminate_backend(pid)
                FROM pg_stat_activity
                WHERE datname = :db_name AND pid <> pg_backend_pid();
                """
            ),
            {"db_name": db_name},
        )
        conn.execute(text(f'DROP DATABASE IF EXISTS "{db_name}"'))


@pytest.fixture(scope="session", autouse=True)
def _casemetrics_database() -> None:
    url = _base_url()
    db_name = f"casemetrics_test_{uuid.uuid4().hex}"
    admin_engine = create_engine(url.set(database="postgres"), isolation_level="AUTOCOMMIT", pool_pre_ping=True)
    with admin_engine.connect() as conn:
        conn.execute(text(f'CREATE DATABASE "{db_name}"'))

    os.environ["DATABASE_URL"] = url.set(database=db_name).render_as_string(hide_password=False)
    os.environ.update(_INGEST_ENV)
    _reset_cached_state()
    _migrate_to_head()

    yield

    from app.db.session import get_engine

    with suppress(Exception):
        get_engine().dispose()
    _reset_cached_state()
    _drop_database(admin_engine, db_name)
    admin_engine.dispose()


@pytest.fixture()
def db_session() -> Session:
    from app.db.session import get_sessionmaker

    session = get_sessionmaker()()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture()
def conversation_href() -> str:
    return f"https://dash.callbell.eu/chat/{uuid.uuid4().hex}"


@pytest.fixture()
def team() -> dict[str, str]:
    suffix = uuid.uuid4().hex[:10]
    return {"uuid": f"team-{suffix}", "name": f"Support {suffix}"}


@pytest.fixture()
def agent() -> str:
    return f"agent-{uuid.uuid4().hex[:10]}@example.com"
