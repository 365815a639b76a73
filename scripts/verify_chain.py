"""Verify the stored audit chain and recompute every recorded draw."""

from __future__ import annotations

import sys

from fairdraw.errors import ChainIntegrityError
from fairdraw.verification import replay_chain
from fairdraw.workflows import open_engine


def main(argv: list[str]) -> int:
    """Exit 0 when every draw reproduces, 1 otherwise.

    ``--quotas`` also requires each configured tier to hold its full quota;
    use it only when draws were made with the configured counts.
    """
    try:
        engine = open_engine(create_tables=False)
        tiers = engine.tiers if "--quotas" in argv[1:] else None
        replays = replay_chain(engine.get_chain(), tiers)
    except ChainIntegrityError as exc:
        print(f"Chain verification FAILED: {exc}", file=sys.stderr)
        return 1

    failures = [replay for replay in replays if not replay.ok]
    for replay in replays:
        status = "ok" if replay.ok else "MISMATCH"
        print(
            f"[{status}] block {replay.block_index} session {replay.session_id} "
            f"tier {replay.tier}: {', '.join(replay.recorded_winners) or '(none)'}"
        )
    if failures:
        print(f"{len(failures)} of {len(replays)} draws do not match", file=sys.stderr)
        return 1
    print(f"Chain valid; {len(replays)} draws recomputed")
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv))
