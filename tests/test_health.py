def test_health(client):
    r = client.get("/healthz")
    assert r.status_code == 200 and r.json()["ok"] is True


def test_migrations_create_tables_on_empty_database(tmp_path, monkeypatch):
    from sqlalchemy import create_engine, inspect

    from app.core.config import settings
    from app.main import run_migrations

    url = f"sqlite:///{tmp_path / 'migrated.db'}"
    monkeypatch.setenv("DATABASE_URL", url)
    monkeypatch.setattr(settings, "DATABASE_URL", url)
    monkeypatch.setattr(settings, "RUN_MIGRATIONS", True)

    run_migrations()
    # A second run is a no-op
    run_migrations()

    engine = create_engine(url)
    tables = set(inspect(engine).get_table_names())
    engine.dispose()
    assert {"users", "uploads", "payments", "alembic_version"} <= tables
