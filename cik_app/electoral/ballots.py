"""The ballot ledger: one final ballot per voter per election.

A cast inserts the ballot and bumps the candidacy's ``vote_count`` in one
transaction, under a row lock on the election, after re-checking the phase
and the voting window. The ``(election, voter_id)`` unique constraint is the
last word on double voting.
"""

import hmac
import logging
import re
from dataclasses import dataclass

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from electoral.eligibility import require_can_vote
from electoral.errors import (
    AlreadyVotedError,
    InvalidArgumentError,
    InvalidStateError,
    NotFoundError,
    OutsideWindowError,
)
from electoral.fingerprints import leaf_fingerprint, truncate_to_milliseconds
from electoral.lifecycle import get_election
from electoral.models import AuditLogEntry, Ballot, Candidacy, Election

logger = logging.getLogger(__name__)

_FINGERPRINT_RE = re.compile(r"^[0-9a-f]{64}$")


@dataclass(frozen=True)
class TallyLine:
    candidate_id: str
    vote_count: int


def has_voted(*, election: Election, voter_id: str) -> bool:
    return Ballot.objects.for_voter(election=election, voter_id=voter_id).exists()


def ballot_count(*, election: Election) -> int:
    return Ballot.objects.for_election(election=election).count()


def tally(*, election: Election) -> list[TallyLine]:
    """Candidates by vote count, highest first; ties go to the earliest registration."""
    rows = (
        Candidacy.objects.for_election(election=election)
        .tally_order()
        .values_list("candidate_id", "vote_count")
    )
    return [TallyLine(candidate_id=str(cid), vote_count=int(votes)) for cid, votes in rows]


def _require_votable(election: Election, *, now) -> None:
    if election.status != Election.Status.voting:
        raise InvalidStateError("Election is not in the voting phase.")
    if not election.voting_window_contains(now):
        raise OutsideWindowError("Outside the voting window.")


def _candidacy_for(*, election: Election, candidate_id: str) -> Candidacy:
    candidacy = Candidacy.objects.filter(election=election, candidate_id=candidate_id).first()
    if candidacy is None:
        raise NotFoundError("Candidate not found in this election.")
    return candidacy


def _existing_ballot(*, election: Election, voter_id: str) -> Ballot | None:
    return Ballot.objects.for_voter(election=election, voter_id=voter_id).first()


def _cast_once(*, voter_id: str, election_id: int, candidate_id: str) -> Ballot:
    with transaction.atomic():
        # Certification takes the same lock, so no ballot lands after a
        # certification transaction has observed the close of voting.
        election = Election.objects.select_for_update().get(pk=election_id)
        now = timezone.now()
        _require_votable(election, now=now)
        candidacy = _candidacy_for(election=election, candidate_id=candidate_id)

        if _existing_ballot(election=election, voter_id=voter_id) is not None:
            raise AlreadyVotedError("Already voted in this election.")

        cast_at = truncate_to_milliseconds(now)
        fingerprint = leaf_fingerprint(
            election_id=election.pk,
            voter_id=voter_id,
            candidate_id=candidate_id,
            cast_at=cast_at,
        )
        ballot = Ballot.objects.create(
            election=election,
            voter_id=voter_id,
            candidacy=candidacy,
            candidate_id=candidate_id,
            leaf_fingerprint=fingerprint,
            cast_at=cast_at,
        )
        Candidacy.objects.filter(pk=candidacy.pk).update(vote_count=F("vote_count") + 1)

        AuditLogEntry.objects.create(
            election=election,
            event_type="ballot_cast",
            payload={"leaf_fingerprint": fingerprint},
            is_public=False,
        )
        return ballot


def cast_ballot(*, voter_id: str, election_id: int, candidate_id: str) -> Ballot:
    voter_id = str(voter_id or "").strip()
    candidate_id = str(candidate_id or "").strip()
    if not voter_id:
        raise InvalidArgumentError("voter_id is required.")
    if not candidate_id:
        raise InvalidArgumentError("candidate_id is required.")

    election = get_election(election_id)
    _require_votable(election, now=timezone.now())
    _candidacy_for(election=election, candidate_id=candidate_id)

    # Registry lookups complete before the write transaction opens.
    require_can_vote(voter_id, election=election)

    attempts = max(1, int(settings.ELECTORAL_CAST_CONFLICT_RETRIES) + 1)
    for attempt in range(1, attempts + 1):
        try:
            ballot = _cast_once(voter_id=voter_id, election_id=election.pk, candidate_id=candidate_id)
        except IntegrityError:
            # Lost a race against a concurrent cast. Re-read: if the other
            # cast belongs to this voter, this one is the duplicate.
            duplicate = Ballot.objects.for_voter(election=election, voter_id=voter_id).exists()
            AuditLogEntry.objects.create(
                election=election,
                event_type="ballot_cast_conflict",
                payload={"attempt": attempt, "duplicate": duplicate},
                is_public=False,
            )
            if duplicate:
                logger.info(
                    "Concurrent duplicate ballot rejected election_id=%s attempt=%d",
                    election.pk,
                    attempt,
                )
                raise AlreadyVotedError("Already voted in this election.") from None
            logger.warning("Ballot insert conflict election_id=%s attempt=%d", election.pk, attempt)
            continue

        logger.info(
            "Ballot cast election_id=%s ballot_id=%s",
            election.pk,
            ballot.pk,
            extra={"event": "electoral.ballot.cast", "component": "ballots"},
        )
        return ballot

    raise AlreadyVotedError("Could not record the ballot: conflicting concurrent ballots.")


def verify_leaf(ballot: Ballot) -> bool:
    return hmac.compare_digest(ballot.compute_fingerprint(), str(ballot.leaf_fingerprint))


def find_ballot_by_fingerprint(fingerprint: str) -> Ballot | None:
    normalized = str(fingerprint or "").strip().lower()
    if not _FINGERPRINT_RE.fullmatch(normalized):
        raise InvalidArgumentError("A fingerprint is 64 lowercase hex characters.")
    return Ballot.objects.select_related("election").filter(leaf_fingerprint=normalized).first()
