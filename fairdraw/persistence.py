"""Snapshot stores used by the draw engine.

A store is anything with ``load() -> dict | None`` and ``save(dict)``. The
engine calls ``save`` after every mutation and waits for it; a store signals
failure by raising :class:`~fairdraw.errors.PersistenceFailure`.
"""

from __future__ import annotations

import copy
import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Protocol, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from .errors import PersistenceFailure
from .models.snapshot import DrawStateSnapshot

logger = logging.getLogger(__name__)


class SnapshotStore(Protocol):
    def load(self) -> Optional[dict[str, Any]]: ...

    def save(self, snapshot: dict[str, Any]) -> None: ...


class MemorySnapshotStore:
    """Keeps the latest snapshot in memory. Useful for tests and dry runs."""

    def __init__(self, initial: Optional[dict[str, Any]] = None) -> None:
        self._snapshot = copy.deepcopy(initial) if initial is not None else None
        self.saves = 0

    def load(self) -> Optional[dict[str, Any]]:
        return copy.deepcopy(self._snapshot)

    def save(self, snapshot: dict[str, Any]) -> None:
        self._snapshot = copy.deepcopy(snapshot)
        self.saves += 1


class SqlSnapshotStore:
    """Stores the snapshot as a single ``draw_state_snapshots`` row.

    Parameters
    ----------
    session_factory : sessionmaker
        Factory from :func:`fairdraw.db.engine.get_sessionmaker`.
    key : str, default: "default"
        Row key; separate deployments sharing a database use distinct keys.
    """

    def __init__(self, session_factory: sessionmaker, key: str = "default") -> None:
        self._session_factory = session_factory
        self.key = key

    def load(self) -> Optional[dict[str, Any]]:
        try:
            with self._session_factory() as session:
                row = DrawStateSnapshot.get_by_key(session, self.key)
                return copy.deepcopy(row.payload) if row is not None else None
        except SQLAlchemyError as exc:
            logger.critical(f"Failed to load draw snapshot '{self.key}': {exc}")
            raise PersistenceFailure(f"Failed to load draw state: {exc}") from exc

    def save(self, snapshot: dict[str, Any]) -> None:
        now = datetime.now(timezone.utc)
        chain_length = len(snapshot.get("chain") or [])
        session_count = len(snapshot.get("sessions") or {})
        try:
            with self._session_factory.begin() as session:
                row = DrawStateSnapshot.get_by_key(session, self.key)
                if row is None:
                    session.add(
                        DrawStateSnapshot(
                            key=self.key,
                            payload=snapshot,
                            chain_length=chain_length,
                            session_count=session_count,
                            saved_at=now,
                        )
                    )
                else:
                    row.payload = snapshot
                    row.chain_length = chain_length
                    row.session_count = session_count
                    row.saved_at = now
        except SQLAlchemyError as exc:
            logger.critical(f"Failed to save draw snapshot '{self.key}': {exc}")
            raise PersistenceFailure(f"Failed to persist draw state: {exc}") from exc
        logger.debug("Saved draw snapshot '%s' (%d blocks)", self.key, chain_length)


class JsonFileSnapshotStore:
    """Stores the snapshot in a JSON file, replaced atomically on each save.

    Also reads ``data.json`` files written by the legacy lottery server,
    which share the ``sessions``/``participants``/``winners`` layout.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)

    def load(self) -> Optional[dict[str, Any]]:
        if not self.path.exists():
            return None
        try:
            with self.path.open("r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError) as exc:
            logger.critical(f"Failed to read state file {self.path}: {exc}")
            raise PersistenceFailure(f"Failed to load draw state: {exc}") from exc

    def save(self, snapshot: dict[str, Any]) -> None:
        directory = self.path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=directory, prefix=".snapshot-", suffix=".json")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(snapshot, f, ensure_ascii=False, indent=2)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp_name, self.path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as exc:
            logger.critical(f"Failed to write state file {self.path}: {exc}")
            raise PersistenceFailure(f"Failed to persist draw state: {exc}") from exc


__all__ = [
    "JsonFileSnapshotStore",
    "MemorySnapshotStore",
    "SnapshotStore",
    "SqlSnapshotStore",
]
