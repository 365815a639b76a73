import unittest

from fairdraw.draw import DEFAULT_TIERS, DrawSession, PrizeTier, SeedCommitment, SessionState, TierConfig, hash_seed
from fairdraw.draw.session import generate_session_id
from fairdraw.errors import SeedHashMismatch


class TestTierConfig(unittest.TestCase):
    def test_defaults(self):
        config = TierConfig()
        self.assertEqual(list(config), list(DEFAULT_TIERS))
        self.assertEqual(len(config), 4)
        self.assertIn("special", config)
        self.assertNotIn("default", config)
        self.assertIsNone(config.quota("bonus"))

    def test_is_complete(self):
        config = TierConfig.parse("a:1,b:2")
        self.assertFalse(config.is_complete(["a"]))
        self.assertTrue(config.is_complete(["b", "a", "extra"]))

    def test_parse_keeps_order(self):
        config = TierConfig.parse(" grand:1 ,, consolation:0 ")
        self.assertEqual(list(config), [PrizeTier("grand", 1), PrizeTier("consolation", 0)])

    def test_rejects_invalid(self):
        with self.assertRaises(ValueError):
            TierConfig([PrizeTier("", 1)])
        with self.assertRaises(ValueError):
            TierConfig([PrizeTier("a", 1), PrizeTier("a", 2)])
        with self.assertRaises(ValueError):
            TierConfig.parse("a:one")
        with self.assertRaises(ValueError):
            TierConfig([])


class TestDrawSession(unittest.TestCase):
    def make_session(self, participants=("a", "b", "c")):
        return DrawSession(
            id="S-1",
            name="Raffle",
            commitment=SeedCommitment(hash_seed("s3cr3t")),
            participants=participants,
        )

    def test_state_progression(self):
        session = self.make_session()
        self.assertEqual(session.state, SessionState.OPEN)
        session.commitment.reveal("s3cr3t")
        self.assertEqual(session.state, SessionState.SEED_REVEALED)
        session.record_tier("first", ["b"])
        self.assertEqual(session.state, SessionState.DRAWING)
        session.draw_complete = True
        self.assertEqual(session.state, SessionState.COMPLETED)

    def test_remaining_excludes_winners(self):
        session = self.make_session()
        session.record_tier("first", ["b"])
        self.assertEqual(session.remaining(), ["a", "c"])
        self.assertEqual(session.winner_set, {"b"})

    def test_record_tier_guards(self):
        session = self.make_session()
        session.record_tier("first", ["a"])
        with self.assertRaises(ValueError):
            session.record_tier("first", ["b"])
        with self.assertRaises(ValueError):
            session.record_tier("second", ["a"])
        with self.assertRaises(ValueError):
            session.record_tier("second", ["zed"])
        with self.assertRaises(ValueError):
            session.record_tier("second", ["b", "b"])
        self.assertEqual(session.all_winners, ["a"])

    def test_add_participant(self):
        session = self.make_session(participants=())
        self.assertTrue(session.add_participant("a"))
        self.assertFalse(session.add_participant("a"))
        self.assertEqual(session.participants, ["a"])

    def test_copy_is_deep(self):
        session = self.make_session()
        clone = session.copy()
        clone.add_participant("d")
        clone.record_tier("first", ["a"])
        clone.commitment.reveal("s3cr3t")
        self.assertEqual(session.participants, ["a", "b", "c"])
        self.assertEqual(session.tier_winners, {})
        self.assertFalse(session.commitment.is_revealed)

    def test_json_round_trip(self):
        session = self.make_session()
        session.commitment.reveal("s3cr3t")
        session.record_tier("first", ["c", "a"])
        summary = session.summary_json()
        self.assertEqual(summary["state"], "drawing")
        self.assertEqual(summary["revealedSeed"], "s3cr3t")

        restored = DrawSession.from_json(summary, session.participants, session.winners_json())
        self.assertEqual(restored.summary_json(), summary)
        self.assertEqual(restored.winners_json(), {"all": ["c", "a"], "tiers": {"first": ["c", "a"]}})

    def test_from_json_rejects_bad_reveal(self):
        summary = {"id": "S-1", "name": "Raffle", "seedHash": hash_seed("s3cr3t"), "revealedSeed": "guess"}
        with self.assertRaises(SeedHashMismatch):
            DrawSession.from_json(summary)


class TestGenerateSessionId(unittest.TestCase):
    def test_format(self):
        session_id = generate_session_id()
        self.assertTrue(session_id.startswith("S-"))
        self.assertEqual(len(session_id), 14)
        self.assertTrue(session_id[2:].isalnum())

    def test_avoids_existing(self):
        taken = {generate_session_id() for _ in range(5)}
        self.assertNotIn(generate_session_id(taken), taken)

    def test_gives_up_when_space_exhausted(self):
        with self.assertRaises(RuntimeError):
            generate_session_id(existing=_Everything(), max_attempts=3)


class _Everything:
    def __contains__(self, item):
        return True


if __name__ == "__main__":
    unittest.main()
