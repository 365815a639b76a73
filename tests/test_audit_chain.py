from __future__ import annotations

import threading
import unittest
from dataclasses import replace

from fairdraw.audit import AuditChain, MonotonicClock, UserEntered
from fairdraw.audit.chain import GENESIS_PREVIOUS_HASH, canonical_json, compute_hash
from fairdraw.audit.payloads import SessionCreated, TierDrawn, payload_from_json
from fairdraw.errors import ChainIntegrityError


def _ticker(start: int = 1_000):
    values = iter(range(start, start + 10_000))
    return lambda: next(values)


class CanonicalJsonTests(unittest.TestCase):
    def test_matches_json_stringify_layout(self) -> None:
        blob = canonical_json(1, 5, {"type": "USER_ENTERED", "sessionId": "s", "user": "ü"}, "abc")
        self.assertEqual(
            blob,
            '{"index":1,"timestamp":5,"data":{"type":"USER_ENTERED","sessionId":"s","user":"ü"},'
            '"previousHash":"abc"}',
        )


class MonotonicClockTests(unittest.TestCase):
    def test_never_goes_backwards(self) -> None:
        readings = iter([10, 5, 20])
        clock = MonotonicClock(lambda: next(readings))
        self.assertEqual([clock(), clock(), clock()], [10, 10, 20])

    def test_observe_raises_floor(self) -> None:
        clock = MonotonicClock(lambda: 3)
        clock.observe(50)
        self.assertEqual(clock(), 50)


class AuditChainTests(unittest.TestCase):
    def setUp(self) -> None:
        self.chain = AuditChain(clock=_ticker())
        self.chain.create_genesis()

    def test_genesis_block(self) -> None:
        genesis = self.chain.blocks[0]
        self.assertEqual(genesis.index, 0)
        self.assertEqual(genesis.previous_hash, GENESIS_PREVIOUS_HASH)
        self.assertEqual(genesis.data.to_json(), {"message": "Genesis Block"})
        self.assertEqual(genesis.hash, genesis.compute_hash())

    def test_genesis_only_once(self) -> None:
        with self.assertRaises(RuntimeError):
            self.chain.create_genesis()

    def test_append_links_to_tail(self) -> None:
        tip = self.chain.latest_hash()
        block = self.chain.append(UserEntered(session_id="S-1", user="alice"))
        self.assertEqual(block.index, 1)
        self.assertEqual(block.previous_hash, tip)
        self.assertEqual(self.chain.latest_hash(), block.hash)
        self.assertEqual(len(self.chain), 2)
        self.assertEqual(
            block.hash,
            compute_hash(1, block.timestamp, block.data.to_json(), tip),
        )

    def test_verify_detects_payload_tampering(self) -> None:
        for user in ("a", "b", "c"):
            self.chain.append(UserEntered(session_id="S-1", user=user))
        self.assertTrue(self.chain.verify())

        forged = replace(self.chain._blocks[2], data=UserEntered(session_id="S-1", user="mallory"))
        self.chain._blocks[2] = forged
        self.assertFalse(self.chain.verify())
        self.assertEqual(self.chain.first_invalid_index(), 2)

    def test_verify_detects_broken_link(self) -> None:
        self.chain.append(UserEntered(session_id="S-1", user="a"))
        second = self.chain.append(UserEntered(session_id="S-1", user="b"))
        relinked = replace(second, previous_hash="f" * 64)
        self.chain._blocks[2] = replace(relinked, hash=relinked.compute_hash())
        self.assertFalse(self.chain.verify())

    def test_commit_rejects_stale_block(self) -> None:
        prepared = self.chain.prepare(UserEntered(session_id="S-1", user="a"))
        self.chain.append(UserEntered(session_id="S-1", user="b"))
        with self.assertRaises(ChainIntegrityError):
            self.chain.commit(prepared)
        self.assertEqual(len(self.chain), 2)

    def test_prepare_does_not_publish(self) -> None:
        self.chain.prepare(UserEntered(session_id="S-1", user="a"))
        self.assertEqual(len(self.chain), 1)

    def test_round_trip_through_json(self) -> None:
        self.chain.append(SessionCreated(session_id="S-1", name="Raffle", seed_hash="a" * 64))
        self.chain.append(
            TierDrawn(session_id="S-1", tier="first", winners=("x", "y"), rand_base="ab")
        )
        restored = AuditChain.from_list(self.chain.to_list())
        self.assertEqual(restored.to_list(), self.chain.to_list())
        self.assertTrue(restored.verify())

    def test_from_list_rejects_tampered_chain(self) -> None:
        self.chain.append(UserEntered(session_id="S-1", user="a"))
        self.chain.append(UserEntered(session_id="S-1", user="b"))
        raw = self.chain.to_list()
        raw[1]["data"]["user"] = "mallory"
        with self.assertRaises(ChainIntegrityError) as ctx:
            AuditChain.from_list(raw)
        self.assertEqual(ctx.exception.index, 1)

    def test_from_list_rejects_empty_and_misnumbered(self) -> None:
        with self.assertRaises(ChainIntegrityError):
            AuditChain.from_list([])
        raw = self.chain.to_list()
        raw[0]["index"] = 3
        with self.assertRaises(ChainIntegrityError):
            AuditChain.from_list(raw)

    def test_from_list_rejects_non_object_entries(self) -> None:
        self.chain.append(UserEntered(session_id="S-1", user="a"))
        for bad_data in (None, ["x"], "text"):
            with self.subTest(data=bad_data):
                raw = self.chain.to_list()
                raw[1]["data"] = bad_data
                with self.assertRaises(ChainIntegrityError):
                    AuditChain.from_list(raw)
        raw = self.chain.to_list()
        raw[1] = None
        with self.assertRaises(ChainIntegrityError):
            AuditChain.from_list(raw)

    def test_from_list_rejects_unencodable_text(self) -> None:
        self.chain.append(UserEntered(session_id="S-1", user="a"))
        raw = self.chain.to_list()
        raw[1]["data"]["user"] = "bob\ud800"
        with self.assertRaises(ChainIntegrityError):
            AuditChain.from_list(raw)

    def test_verify_while_appending(self) -> None:
        results: list[bool] = []

        def writer() -> None:
            for i in range(200):
                self.chain.append(UserEntered(session_id="S-1", user=f"u{i}"))

        thread = threading.Thread(target=writer)
        thread.start()
        while thread.is_alive():
            results.append(self.chain.verify())
        thread.join()
        results.append(self.chain.verify())
        self.assertTrue(all(results))
        self.assertEqual(len(self.chain), 201)


class PayloadTests(unittest.TestCase):
    def test_unknown_type_raises(self) -> None:
        with self.assertRaises(ValueError):
            payload_from_json({"type": "DRAWN", "sessionId": "x"})

    def test_non_object_raises(self) -> None:
        for data in (None, [], 3):
            with self.assertRaises(ValueError):
                payload_from_json(data)  # type: ignore[arg-type]

    def test_missing_field_raises(self) -> None:
        with self.assertRaises(ValueError):
            payload_from_json({"type": "USER_ENTERED", "sessionId": "x"})

    def test_field_order_is_fixed(self) -> None:
        payload = TierDrawn(session_id="S", tier="t", winners=("a",), rand_base="00")
        self.assertEqual(
            list(payload.to_json()), ["type", "sessionId", "tier", "winners", "randBase"]
        )


if __name__ == "__main__":
    unittest.main()
