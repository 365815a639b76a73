import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

_RELATIVE_SQLITE = re.compile(r"^(sqlite(?:\+\w+)?):///(\./|~/)(.*)$")


def resolve_sqlite_url(url: str, project_root: Path) -> str:
    """Make a relative SQLite URL absolute.

    ``sqlite:///./draws.db`` resolves against ``project_root`` and
    ``sqlite:///~/draws.db`` against the home directory. A driver suffix such
    as ``sqlite+pysqlite`` is kept. Every other URL is returned unchanged.
    """
    match = _RELATIVE_SQLITE.match(url)
    if match is None:
        return url
    dialect, anchor, rel = match.groups()
    base = Path.home() if anchor == "~/" else project_root
    return f"{dialect}:///{(base / rel).resolve()}"


def dt_iso(dt: Optional[datetime]) -> Optional[str]:
    """Convert a datetime to an ISO 8601 string in UTC, or return None.

    Naive datetimes (SQLite drops tzinfo) are treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat()
