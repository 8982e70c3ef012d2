"""Ballot and result fingerprints.

Both formats are public: anyone holding the published fields can recompute
them, so field order, the ``|`` delimiter and the timestamp format must never
change. ``static/verify-ballot-fingerprint.py`` and
``static/verify-result-fingerprint.py`` carry copies of these functions.
"""

import datetime
import hashlib
from collections.abc import Iterable

FINGERPRINT_DELIMITER = "|"


def truncate_to_milliseconds(value: datetime.datetime) -> datetime.datetime:
    return value.replace(microsecond=(value.microsecond // 1000) * 1000)


def iso8601_utc(value: datetime.datetime) -> str:
    """Format as UTC with millisecond precision and a ``Z`` suffix.

    Example: ``2026-03-01T09:30:00.125Z``.
    """
    if value.tzinfo is None:
        raise ValueError("fingerprint timestamps must be timezone-aware")
    utc = value.astimezone(datetime.UTC)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _sha256_hex(payload: str) -> str:
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def leaf_fingerprint(
    *,
    election_id: int | str,
    voter_id: str,
    candidate_id: str,
    cast_at: datetime.datetime,
) -> str:
    payload = FINGERPRINT_DELIMITER.join(
        [str(election_id), str(voter_id), str(candidate_id), iso8601_utc(cast_at)]
    )
    return _sha256_hex(payload)


def result_fingerprint(
    *,
    election_id: int | str,
    winners: Iterable[tuple[str, int]],
    total_votes: int,
    certified_at: datetime.datetime,
) -> str:
    # Winners only, in rank order. No winners yields an empty middle segment.
    winners_payload = FINGERPRINT_DELIMITER.join(f"{cid}:{int(votes)}" for cid, votes in winners)
    payload = FINGERPRINT_DELIMITER.join(
        [str(election_id), winners_payload, str(int(total_votes)), iso8601_utc(certified_at)]
    )
    return _sha256_hex(payload)
