"""Certification: freeze the tally, pick winners, commit the result fingerprint.

Certification is write-once. A second call fails with AlreadyCertified and
never recomputes anything.
"""

import datetime
import hmac
import logging
from dataclasses import dataclass

from django.db import DatabaseError, transaction
from django.db.models import Sum
from django.utils import timezone

from electoral import authority
from electoral.ballots import ballot_count, tally
from electoral.errors import AlreadyCertifiedError, ElectoralError, InvalidStateError, NotFoundError
from electoral.fingerprints import result_fingerprint, truncate_to_milliseconds
from electoral.lifecycle import assert_transition
from electoral.models import AuditLogEntry, Candidacy, Election
from electoral.signals import election_certified, send_on_commit

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Winner:
    candidate_id: str
    vote_count: int


@dataclass(frozen=True)
class CertificationRecord:
    election_id: int
    winners: tuple[Winner, ...]
    total_votes: int
    result_fingerprint: str
    certified_at: datetime.datetime

    @property
    def winner_ids(self) -> list[str]:
        return [w.candidate_id for w in self.winners]


def _winner_vote_counts(election: Election) -> tuple[Winner, ...]:
    counts = dict(
        Candidacy.objects.for_election(election=election)
        .filter(candidate_id__in=list(election.winner_ids or []))
        .values_list("candidate_id", "vote_count")
    )
    return tuple(Winner(candidate_id=str(cid), vote_count=int(counts.get(cid, 0))) for cid in election.winner_ids or [])


def certification_record(election: Election) -> CertificationRecord:
    if election.status != Election.Status.certified or election.certified_at is None:
        raise InvalidStateError("Election has not been certified.")
    return CertificationRecord(
        election_id=election.pk,
        winners=_winner_vote_counts(election),
        total_votes=int(election.total_votes or 0),
        result_fingerprint=election.result_fingerprint,
        certified_at=election.certified_at,
    )


def verify_result(election: Election) -> bool:
    """Recompute the result fingerprint from the published fields."""
    record = certification_record(election)
    expected = result_fingerprint(
        election_id=record.election_id,
        winners=[(w.candidate_id, w.vote_count) for w in record.winners],
        total_votes=record.total_votes,
        certified_at=record.certified_at,
    )
    return hmac.compare_digest(expected, record.result_fingerprint)


def _record_certification_failure(*, election_id: int, requester_id: str, exc: Exception) -> None:
    election = Election.objects.filter(pk=election_id).first()
    try:
        with transaction.atomic():
            AuditLogEntry.objects.create(
                election=election,
                event_type="certification_failed",
                payload={
                    "election_id": election_id,
                    "actor": requester_id,
                    "error_type": type(exc).__name__,
                    "error": str(exc),
                },
                is_public=False,
            )
    except DatabaseError:
        logger.exception("Could not record certification failure election_id=%s", election_id)


def certify_election(*, requester_id: str, election_id: int) -> CertificationRecord:
    authority.require_active_member(requester_id)

    try:
        return _certify(requester_id=requester_id, election_id=election_id)
    except ElectoralError as exc:
        if not isinstance(exc, NotFoundError):
            _record_certification_failure(election_id=election_id, requester_id=requester_id, exc=exc)
        raise
    except Exception as exc:
        logger.exception(
            "Certification failed election_id=%s",
            election_id,
            extra={"event": "electoral.certification.failed", "component": "certification"},
        )
        _record_certification_failure(election_id=election_id, requester_id=requester_id, exc=exc)
        raise


def _certify(*, requester_id: str, election_id: int) -> CertificationRecord:
    with transaction.atomic():
        try:
            election = Election.objects.select_for_update().get(pk=election_id)
        except Election.DoesNotExist as exc:
            raise NotFoundError("Election not found.") from exc

        if election.status == Election.Status.certified:
            raise AlreadyCertifiedError("Election is already certified.")
        if election.status != Election.Status.voting:
            raise InvalidStateError("Election must be in the voting phase to certify.")
        now = timezone.now()
        if now < election.voting_end:
            raise InvalidStateError("Voting period has not ended yet.")
        assert_transition(election, Election.Status.certified)

        lines = tally(election=election)
        winners = tuple(
            Winner(candidate_id=line.candidate_id, vote_count=line.vote_count)
            for line in lines[: election.seat_count]
        )
        # Counted independently of vote_count so increment skew shows up.
        total_votes = ballot_count(election=election)
        counted = int(
            Candidacy.objects.for_election(election=election).aggregate(total=Sum("vote_count"))["total"] or 0
        )
        if counted != total_votes:
            logger.warning(
                "Tally mismatch election_id=%s ballots=%d vote_count_sum=%d",
                election.pk,
                total_votes,
                counted,
                extra={"event": "electoral.certification.tally_mismatch", "component": "certification"},
            )
            AuditLogEntry.objects.create(
                election=election,
                event_type="tally_mismatch",
                payload={"ballots": total_votes, "vote_count_sum": counted},
                is_public=False,
            )

        certified_at = truncate_to_milliseconds(now)
        fingerprint = result_fingerprint(
            election_id=election.pk,
            winners=[(w.candidate_id, w.vote_count) for w in winners],
            total_votes=total_votes,
            certified_at=certified_at,
        )

        election.status = Election.Status.certified
        election.total_votes = total_votes
        election.certified_at = certified_at
        election.result_fingerprint = fingerprint
        election.winner_ids = [w.candidate_id for w in winners]
        election.save(
            update_fields=[
                "status",
                "total_votes",
                "certified_at",
                "result_fingerprint",
                "winner_ids",
                "updated_at",
            ]
        )

        AuditLogEntry.objects.create(
            election=election,
            event_type="election_certified",
            payload={
                "actor": requester_id,
                "winners": [{"candidate_id": w.candidate_id, "vote_count": w.vote_count} for w in winners],
                "total_votes": total_votes,
                "result_fingerprint": fingerprint,
                "tally": [{"candidate_id": line.candidate_id, "vote_count": line.vote_count} for line in lines],
            },
            is_public=True,
        )
        send_on_commit(election_certified, sender=Election, election=election)

    logger.info(
        "Election certified election_id=%s rung=%s branch=%s winners=%s total_votes=%d fingerprint=%s",
        election.pk,
        election.rung.key,
        election.branch,
        ",".join(election.winner_ids),
        total_votes,
        fingerprint,
        extra={"event": "electoral.election.certified", "component": "certification"},
    )
    return CertificationRecord(
        election_id=election.pk,
        winners=winners,
        total_votes=total_votes,
        result_fingerprint=fingerprint,
        certified_at=certified_at,
    )
