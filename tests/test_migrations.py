from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect, text

from app.core.db import Base

ROOT = Path(__file__).resolve().parents[1]


def _alembic_config(database_url: str) -> Config:
    cfg = Config()
    cfg.set_main_option("script_location", str(ROOT / "alembic"))
    cfg.set_main_option("sqlalchemy.url", database_url)
    return cfg


def test_upgrade_creates_every_model_table(tmp_path) -> None:
    db_file = tmp_path / "migrated.db"

    command.upgrade(_alembic_config(f"sqlite+aiosqlite:///{db_file}"), "head")

    engine = create_engine(f"sqlite:///{db_file}")
    try:
        tables = set(inspect(engine).get_table_names())
        with engine.connect() as conn:
            journal_mode = conn.execute(text("PRAGMA journal_mode")).scalar()
    finally:
        engine.dispose()

    assert set(Base.metadata.tables) <= tables
    assert "alembic_version" in tables
    # the migration engine is the app's, with its SQLite pragmas
    assert journal_mode == "wal"


def test_downgrade_to_base_drops_everything(tmp_path) -> None:
    db_file = tmp_path / "migrated.db"
    cfg = _alembic_config(f"sqlite+aiosqlite:///{db_file}")
    command.upgrade(cfg, "head")

    command.downgrade(cfg, "base")

    engine = create_engine(f"sqlite:///{db_file}")
    try:
        tables = set(inspect(engine).get_table_names())
    finally:
        engine.dispose()
    assert tables <= {"alembic_version"}
