#!/usr/bin/env python3
"""
Verify a certified election result (local check)

Copy the values from the certified election page (GET /cik/elections/<id>)
into the variables below. This script re-computes the result fingerprint and
compares it to the published one.

Algorithm: SHA-256 over
"election_id|winner1:votes|winner2:votes|...|total_votes|certified_at",
winners in rank order, certified_at in UTC with millisecond precision and a
"Z" suffix (same as cik_app/electoral/fingerprints.py result_fingerprint).
This script runs locally and does not contact the election server.
"""

# ===== PUBLISHED RESULT =====

election_id = 1

# Winners in the published order, as (candidate_id, vote_count) pairs.
winners = [
    ("alice", 3),
]

total_votes = 5
certified_at = "2026-03-08T18:00:00.000Z"
expected_result_fingerprint = "published-result-fingerprint"

# ===== END OF INPUT =====


import datetime
import hashlib
from collections.abc import Iterable


def format_timestamp(value: datetime.datetime) -> str:
    if value.tzinfo is None:
        raise ValueError("timestamps must be timezone-aware")
    utc = value.astimezone(datetime.UTC)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def compute_result_fingerprint(
    *,
    election_id: int | str,
    winners: Iterable[tuple[str, int]],
    total_votes: int,
    certified_at: datetime.datetime,
) -> str:
    winners_payload = "|".join(f"{cid}:{int(votes)}" for cid, votes in winners)
    payload = "|".join([str(election_id), winners_payload, str(int(total_votes)), format_timestamp(certified_at)])
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


if __name__ == "__main__":
    if not isinstance(election_id, int) or election_id <= 0:
        raise SystemExit("election_id must be a positive integer")
    if not isinstance(total_votes, int) or total_votes < 0:
        raise SystemExit("total_votes must be a non-negative integer")
    for pair in winners:
        if len(pair) != 2 or not isinstance(pair[1], int) or pair[1] < 0:
            raise SystemExit("winners must be (candidate_id, vote_count) pairs")
    if sum(votes for _cid, votes in winners) > total_votes:
        raise SystemExit("winner votes cannot exceed total_votes")

    try:
        certified_at_value = datetime.datetime.fromisoformat(certified_at.strip().replace("Z", "+00:00"))
    except ValueError as exc:
        raise SystemExit(f"certified_at is not a valid timestamp: {exc}")
    if certified_at_value.tzinfo is None:
        raise SystemExit("certified_at must include a timezone")

    expected = str(expected_result_fingerprint or "").strip().lower()
    if len(expected) != 64:
        raise SystemExit("expected_result_fingerprint must be 64 characters")

    computed = compute_result_fingerprint(
        election_id=election_id,
        winners=winners,
        total_votes=total_votes,
        certified_at=certified_at_value,
    )

    print("Result Fingerprint Verification")
    print("=" * 60)
    print(f"Election ID:     {election_id}")
    print(f"Winners:         {', '.join(f'{cid} ({votes})' for cid, votes in winners) or '(none)'}")
    print(f"Total votes:     {total_votes}")
    print(f"Certified at:    {format_timestamp(certified_at_value)}")
    print()
    print(f"Computed:        {computed}")
    print(f"Expected:        {expected}")
    print()

    if computed == expected:
        print("✓ MATCH: The published result is consistent with its fingerprint.")
        raise SystemExit(0)

    print("✗ MISMATCH: Fingerprint does not match. Double-check the values you entered above.")
    raise SystemExit(2)
