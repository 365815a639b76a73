"""Reset the development database and run a demonstration draw."""

from __future__ import annotations

import json
import logging

from fairdraw.config import Settings
from fairdraw.db.engine import make_engine
from fairdraw.models import Base
from fairdraw.seeds import provider_from_settings
from fairdraw.verification import verify_draws
from fairdraw.workflows import draw_all_tiers, new_committed_session, open_engine

DEMO_PARTICIPANTS = [f"user_{i:02d}" for i in range(1, 41)]


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    settings = Settings.from_env()

    db_engine = make_engine(settings.database_url)
    Base.metadata.drop_all(db_engine)
    Base.metadata.create_all(db_engine)

    engine = open_engine(settings)
    provider = provider_from_settings(settings.seed_provider)
    session_id, pair = new_committed_session(engine, "Demo draw", provider)
    print(f"Session {session_id} committed to {pair.seed_hash}")

    engine.import_participants(session_id, DEMO_PARTICIPANTS)
    engine.reveal_seed(session_id, pair.seed)
    results = draw_all_tiers(engine, session_id)
    print(json.dumps(results, indent=2, ensure_ascii=False))

    replays = verify_draws(engine.get_chain(), engine.tiers)
    print(f"Chain valid: {engine.verify_chain()}; {len(replays)} draws recomputed")


if __name__ == "__main__":
    main()
