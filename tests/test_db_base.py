"""Engine and session factory tests."""

import pytest

from heartbeat.db_base import create_engine_from_env, get_session_factory


def test_missing_database_url(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    with pytest.raises(RuntimeError):
        create_engine_from_env()


def test_reads_database_url(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "sqlite:///:memory:")
    engine = create_engine_from_env()
    assert engine.url.drivername == "sqlite"
    engine.dispose()


def test_session_factory_keeps_objects_after_commit():
    engine = create_engine_from_env("sqlite:///:memory:")
    Session = get_session_factory(engine)
    assert Session.kw["expire_on_commit"] is False
    engine.dispose()
