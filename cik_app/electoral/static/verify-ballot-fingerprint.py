#!/usr/bin/env python3
"""
Verify your ballot fingerprint (local check)

Copy the values from your ballot receipt into the variables below. This script
re-computes the ballot fingerprint and compares it to the one on your receipt.
A match means the receipt details you entered produce the same fingerprint the
commission recorded.

To check that the fingerprint is stored, paste it into the public
"Verify ballot" page (GET /cik/ballots/verify?fingerprint=...).
This script runs locally and does not contact the election server.

Algorithm: SHA-256 over "election_id|voter_id|candidate_id|cast_at", where
cast_at is UTC with millisecond precision and a "Z" suffix
(same as cik_app/electoral/fingerprints.py leaf_fingerprint).
"""

# ===== YOUR BALLOT DETAILS =====

election_id = 1
voter_id = "your-principal-id"
candidate_id = "the-candidate-principal-id"
cast_at = "2026-03-01T09:30:00.125Z"  # The cast_at value from your receipt
expected_fingerprint = "your-ballot-fingerprint-from-receipt"

# ===== END OF USER INPUT =====


import datetime
import hashlib


def format_timestamp(value: datetime.datetime) -> str:
    if value.tzinfo is None:
        raise ValueError("timestamps must be timezone-aware")
    utc = value.astimezone(datetime.UTC)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def compute_leaf_fingerprint(
    *,
    election_id: int | str,
    voter_id: str,
    candidate_id: str,
    cast_at: datetime.datetime,
) -> str:
    payload = "|".join([str(election_id), str(voter_id), str(candidate_id), format_timestamp(cast_at)])
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def parse_timestamp(value: str) -> datetime.datetime:
    parsed = datetime.datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        raise ValueError("cast_at must include a timezone (use the value from your receipt)")
    return parsed


if __name__ == "__main__":
    if not isinstance(election_id, int) or election_id <= 0:
        raise SystemExit("election_id must be a positive integer")
    if not str(voter_id or "").strip():
        raise SystemExit("voter_id must be set")
    if not str(candidate_id or "").strip():
        raise SystemExit("candidate_id must be set")

    try:
        cast_at_value = parse_timestamp(cast_at)
    except ValueError as exc:
        raise SystemExit(f"cast_at is not a valid timestamp: {exc}")

    expected = str(expected_fingerprint or "").strip()
    if len(expected) != 64:
        raise SystemExit("expected_fingerprint must be 64 characters")
    try:
        int(expected, 16)
    except ValueError:
        raise SystemExit("expected_fingerprint must be hex")

    computed = compute_leaf_fingerprint(
        election_id=election_id,
        voter_id=voter_id,
        candidate_id=candidate_id,
        cast_at=cast_at_value,
    )

    print("Ballot Fingerprint Verification")
    print("=" * 60)
    print(f"Election ID:     {election_id}")
    print(f"Voter:           {voter_id}")
    print(f"Candidate:       {candidate_id}")
    print(f"Cast at:         {format_timestamp(cast_at_value)}")
    print()
    print(f"Computed:        {computed}")
    print(f"Expected:        {expected}")
    print()

    if computed == expected.lower():
        print("✓ MATCH: Fingerprint verified. This confirms the ballot receipt is correct.")
        raise SystemExit(0)

    print("✗ MISMATCH: Fingerprint does not match. Double-check the values you entered above.")
    raise SystemExit(2)
