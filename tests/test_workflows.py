import tempfile
import unittest
from pathlib import Path

from fairdraw.config import Settings
from fairdraw.draw import TierConfig, hash_seed
from fairdraw.seeds import SeedPair
from fairdraw.verification import verify_draws
from fairdraw.workflows import draw_all_tiers, new_committed_session, open_engine


class FixedSeedProvider:
    def __init__(self, seed):
        self.seed = seed

    def new_seed(self):
        return SeedPair.from_seed(self.seed)


class TestWorkflows(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        db_path = Path(self.tmpdir.name) / "draws.db"
        self.settings = Settings(
            database_url=f"sqlite:///{db_path}",
            tiers=TierConfig.parse("special:1,first:2,second:3"),
        )

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_new_committed_session(self):
        engine = open_engine(self.settings)
        session_id, pair = new_committed_session(engine, "Gala", FixedSeedProvider("seed-1"))
        self.assertEqual(pair.seed_hash, hash_seed("seed-1"))
        self.assertEqual(engine.get_sessions()[session_id]["seedHash"], pair.seed_hash)

    def test_default_provider_is_local(self):
        engine = open_engine(self.settings)
        session_id, pair = new_committed_session(engine, "Gala")
        self.assertEqual(len(pair.seed), 64)
        engine.reveal_seed(session_id, pair.seed)

    def test_draw_all_tiers_and_reopen(self):
        engine = open_engine(self.settings)
        session_id, pair = new_committed_session(engine, "Gala", FixedSeedProvider("seed-2"))
        engine.import_participants(session_id, [f"guest{i}" for i in range(10)])
        engine.reveal_seed(session_id, pair.seed)

        results = draw_all_tiers(engine, session_id)
        self.assertEqual(list(results), ["special", "first", "second"])
        self.assertEqual([len(w) for w in results.values()], [1, 2, 3])
        self.assertTrue(engine.get_sessions()[session_id]["drawn"])

        reopened = open_engine(self.settings)
        self.assertEqual(reopened.get_winners(session_id), engine.get_winners(session_id))
        self.assertEqual(len(verify_draws(reopened.get_chain())), 3)

    def test_draw_all_tiers_stops_when_exhausted(self):
        engine = open_engine(self.settings)
        session_id, pair = new_committed_session(engine, "Gala", FixedSeedProvider("seed-3"))
        engine.import_participants(session_id, ["p1", "p2"])
        engine.reveal_seed(session_id, pair.seed)

        results = draw_all_tiers(engine, session_id)
        self.assertEqual(list(results), ["special", "first"])
        self.assertEqual(len(results["first"]), 1)
        self.assertFalse(engine.get_sessions()[session_id]["drawn"])

    def test_draw_all_tiers_skips_drawn(self):
        engine = open_engine(self.settings)
        session_id, pair = new_committed_session(engine, "Gala", FixedSeedProvider("seed-4"))
        engine.import_participants(session_id, [f"guest{i}" for i in range(10)])
        engine.reveal_seed(session_id, pair.seed)
        engine.draw_tier(session_id, "first")

        self.assertEqual(list(draw_all_tiers(engine, session_id)), ["special", "second"])


if __name__ == "__main__":
    unittest.main()
