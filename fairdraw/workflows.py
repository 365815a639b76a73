from typing import TYPE_CHECKING, Optional

from .config import Settings
from .db.engine import get_sessionmaker, make_engine
from .draw.engine import DrawEngine
from .models import Base
from .persistence import SqlSnapshotStore

if TYPE_CHECKING:
    from .seeds import SeedPair, SeedProvider


def open_engine(settings: Optional[Settings] = None, *, create_tables: bool = True) -> DrawEngine:
    """Build a :class:`DrawEngine` backed by the configured database.

    Parameters
    ----------
    settings : Optional[Settings], default: None
        Settings to use. When omitted they are read from the environment.
    create_tables : bool, default: True
        Create missing tables before loading. Deployments managed by Alembic
        can pass ``False``.

    Returns
    -------
    DrawEngine
        Engine restored from the latest snapshot, or a fresh one with a new
        genesis block when the database holds none.
    """

    settings = settings or Settings.from_env()
    db_engine = make_engine(settings.database_url)
    if create_tables:
        Base.metadata.create_all(db_engine)
    store = SqlSnapshotStore(get_sessionmaker(db_engine), key=settings.snapshot_key)
    return DrawEngine(store, tiers=settings.tiers)


def new_committed_session(
    engine: DrawEngine,
    name: str,
    provider: Optional["SeedProvider"] = None,
) -> tuple[str, "SeedPair"]:
    """Generate a seed, commit to its hash and open a session.

    The returned :class:`~fairdraw.seeds.SeedPair` holds the secret; the
    caller must keep ``seed`` private until it reveals it.

    Returns
    -------
    tuple[str, SeedPair]
        The new session identifier and the seed pair it is bound to.
    """

    if provider is None:
        from .seeds import LocalSeedProvider

        provider = LocalSeedProvider()
    pair = provider.new_seed()
    session_id = engine.create_session(name, pair.seed_hash)
    return session_id, pair


def draw_all_tiers(engine: DrawEngine, session_id: str) -> dict[str, list[str]]:
    """Draw every configured tier that has not been drawn yet, in order.

    Tiers are skipped once nobody is left to win, so a small session still
    completes the tiers it can fill.
    """

    from .errors import NoParticipantsRemaining

    results: dict[str, list[str]] = {}
    drawn = engine.get_winners(session_id)["tiers"]
    for tier in engine.tiers:
        if tier.name in drawn:
            continue
        try:
            results[tier.name] = engine.draw_tier(session_id, tier.name)
        except NoParticipantsRemaining:
            break
    return results
