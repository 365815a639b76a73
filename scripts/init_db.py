"""Migrate the configured database and report what the draw engine will load."""

from __future__ import annotations

import sys
from pathlib import Path

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from sqlalchemy import inspect, select

from fairdraw.config import Settings
from fairdraw.db.engine import get_sessionmaker, make_engine
from fairdraw.models import DrawStateSnapshot

PROJECT_ROOT = Path(__file__).resolve().parents[1]


def migrate(revision: str = "head") -> None:
    cfg = Config(str(PROJECT_ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(PROJECT_ROOT / "alembic"))
    command.upgrade(cfg, revision)


def report(database_url: str) -> None:
    engine = make_engine(database_url)
    with engine.connect() as connection:
        current = MigrationContext.configure(connection).get_current_revision()
    tables = sorted(inspect(engine).get_table_names())
    print(f"Revision: {current or '(none)'}")
    print("Tables:", ", ".join(tables) or "(none)")

    if DrawStateSnapshot.__tablename__ not in tables:
        return
    with get_sessionmaker(engine)() as session:
        rows = session.scalars(select(DrawStateSnapshot).order_by(DrawStateSnapshot.key)).all()
        if not rows:
            print("No draw snapshots yet; the engine will start a new audit chain.")
        for row in rows:
            meta = row.to_json()
            print(
                f"Snapshot '{meta['key']}': {meta['session_count']} sessions, "
                f"{meta['chain_length']} blocks, saved {meta['saved_at']}"
            )


def main(argv: list[str]) -> None:
    revision = argv[1] if len(argv) > 1 else "head"
    migrate(revision)
    report(Settings.from_env().database_url)


if __name__ == "__main__":
    main(sys.argv)
