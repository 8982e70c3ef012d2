"""Election state machine: nomination -> voting -> certified | cancelled.

Voting opens only through an explicit ``open_voting`` call by an authority
member; casting a ballot never advances the phase.
"""

import datetime
import logging
from dataclasses import dataclass

from django.db import IntegrityError, transaction
from django.db.models import Count
from django.utils import timezone

from electoral import authority
from electoral.eligibility import discover_candidates, require_can_stand
from electoral.errors import InvalidArgumentError, InvalidStateError, NotFoundError
from electoral.ladder import LEGAL_RUNGS, RANK_ORDER, Branch, Rung, default_election_title, is_legal_rung
from electoral.models import AuditLogEntry, Candidacy, Election, ElectionQuerySet
from electoral.signals import election_cancelled, election_created, send_on_commit, voting_opened

logger = logging.getLogger(__name__)

_TRANSITIONS: dict[str, frozenset[str]] = {
    Election.Status.nomination: frozenset({Election.Status.voting, Election.Status.cancelled}),
    Election.Status.voting: frozenset({Election.Status.certified, Election.Status.cancelled}),
    Election.Status.certified: frozenset(),
    Election.Status.cancelled: frozenset(),
}


@dataclass(frozen=True)
class ElectionScope:
    scope_id: str
    scope_name: str = ""


@dataclass(frozen=True)
class ElectionWindow:
    nomination_deadline: datetime.datetime
    voting_start: datetime.datetime
    voting_end: datetime.datetime

    def validate(self) -> None:
        for value in (self.nomination_deadline, self.voting_start, self.voting_end):
            if not isinstance(value, datetime.datetime) or timezone.is_naive(value):
                raise InvalidArgumentError("Election window datetimes must be timezone-aware.")
        if self.nomination_deadline >= self.voting_start:
            raise InvalidArgumentError("Nomination deadline must be before voting start.")
        if self.voting_start >= self.voting_end:
            raise InvalidArgumentError("Voting end must be after voting start.")


@dataclass(frozen=True)
class LadderRung:
    rung_key: str
    from_rank: str
    to_rank: str
    elections: dict[str, Election | None]


def assert_transition(election: Election, target: str) -> None:
    allowed = _TRANSITIONS.get(election.status, frozenset())
    if target not in allowed:
        raise InvalidStateError(f"Election cannot move from {election.status} to {target}.")


def _lock_election(election_id: int) -> Election:
    try:
        return Election.objects.select_for_update().get(pk=election_id)
    except Election.DoesNotExist as exc:
        raise NotFoundError("Election not found.") from exc


def get_election(election_id: int) -> Election:
    try:
        return Election.objects.get(pk=election_id)
    except (Election.DoesNotExist, ValueError, TypeError) as exc:
        raise NotFoundError("Election not found.") from exc


def create_election(
    *,
    requester_id: str,
    rung: Rung,
    scope: ElectionScope,
    window: ElectionWindow,
    seat_count: int = 1,
    title: str | None = None,
    description: str = "",
) -> Election:
    authority.require_active_member(requester_id)

    if not is_legal_rung(rung.from_rank, rung.to_rank, rung.branch):
        raise InvalidArgumentError(
            f"Illegal rung {rung.from_rank}->{rung.to_rank} ({rung.branch}): "
            "to_rank must be exactly one step above from_rank."
        )
    window.validate()
    if int(seat_count) < 1:
        raise InvalidArgumentError("seat_count must be at least 1.")
    scope_id = str(scope.scope_id or "").strip()
    if not scope_id:
        raise InvalidArgumentError("scope_id is required.")

    # Registry lookups happen before the write transaction opens.
    discovered = discover_candidates(rung=rung, scope_id=scope_id)

    with transaction.atomic():
        authority.require_active_member(requester_id)

        election = Election.objects.create(
            from_rank=rung.from_rank,
            to_rank=rung.to_rank,
            branch=rung.branch,
            scope_id=scope_id,
            scope_name=str(scope.scope_name or "").strip(),
            title=str(title or "").strip() or default_election_title(rung),
            description=description,
            created_by=requester_id,
            nomination_deadline=window.nomination_deadline,
            voting_start=window.voting_start,
            voting_end=window.voting_end,
            seat_count=int(seat_count),
            status=Election.Status.nomination,
        )
        for candidate_id in discovered:
            Candidacy.objects.create(
                election=election,
                candidate_id=candidate_id,
                source=Candidacy.Source.discovered,
            )

        AuditLogEntry.objects.create(
            election=election,
            event_type="election_created",
            payload={
                "actor": requester_id,
                "rung": rung.key,
                "branch": rung.branch,
                "scope_id": scope_id,
                "seat_count": election.seat_count,
                "nomination_deadline": window.nomination_deadline.isoformat(),
                "voting_start": window.voting_start.isoformat(),
                "voting_end": window.voting_end.isoformat(),
                "discovered_candidates": discovered,
            },
            is_public=True,
        )
        send_on_commit(election_created, sender=Election, election=election)

    logger.info(
        "Election created election_id=%s rung=%s branch=%s scope_id=%s discovered=%d",
        election.pk,
        rung.key,
        rung.branch,
        scope_id,
        len(discovered),
        extra={"event": "electoral.election.created", "component": "lifecycle"},
    )
    return election


def _require_nominations_open(election: Election, *, now: datetime.datetime) -> None:
    if election.status != Election.Status.nomination:
        raise InvalidStateError("Nominations are closed.")
    if now >= election.nomination_deadline:
        raise InvalidStateError("Nomination deadline has passed.")


def register_candidacy(*, candidate_id: str, election_id: int, platform: str | None = None) -> Candidacy:
    """Register ``candidate_id``; re-registering returns the existing record unchanged."""
    candidate_id = str(candidate_id or "").strip()
    if not candidate_id:
        raise InvalidArgumentError("candidate_id is required.")

    election = get_election(election_id)
    _require_nominations_open(election, now=timezone.now())

    existing = Candidacy.objects.filter(election=election, candidate_id=candidate_id).first()
    if existing is not None:
        return existing

    require_can_stand(candidate_id, election=election)

    with transaction.atomic():
        election = _lock_election(election.pk)
        _require_nominations_open(election, now=timezone.now())

        try:
            with transaction.atomic():
                candidacy = Candidacy.objects.create(
                    election=election,
                    candidate_id=candidate_id,
                    platform=str(platform or "").strip(),
                    source=Candidacy.Source.self_registered,
                )
        except IntegrityError:
            return Candidacy.objects.get(election=election, candidate_id=candidate_id)

        AuditLogEntry.objects.create(
            election=election,
            event_type="candidacy_registered",
            payload={"candidate_id": candidate_id},
            is_public=True,
        )

    logger.info("Candidacy registered election_id=%s candidate_id=%s", election.pk, candidate_id)
    return candidacy


@transaction.atomic
def open_voting(*, requester_id: str, election_id: int) -> Election:
    authority.require_active_member(requester_id)

    election = _lock_election(election_id)
    if election.status != Election.Status.nomination:
        raise InvalidStateError("Only elections in nomination can open voting.")
    now = timezone.now()
    if now < election.nomination_deadline:
        raise InvalidStateError("Nominations are still open.")
    assert_transition(election, Election.Status.voting)

    election.status = Election.Status.voting
    election.save(update_fields=["status", "updated_at"])

    AuditLogEntry.objects.create(
        election=election,
        event_type="voting_opened",
        payload={
            "actor": requester_id,
            "candidates": list(
                Candidacy.objects.for_election(election=election).order_by("id").values_list("candidate_id", flat=True)
            ),
        },
        is_public=True,
    )
    send_on_commit(voting_opened, sender=Election, election=election)
    logger.info(
        "Voting opened election_id=%s actor=%s",
        election.pk,
        requester_id,
        extra={"event": "electoral.election.voting_opened", "component": "lifecycle"},
    )
    return election


@transaction.atomic
def cancel_election(*, requester_id: str, election_id: int, reason: str = "") -> Election:
    authority.require_active_member(requester_id)

    election = _lock_election(election_id)
    assert_transition(election, Election.Status.cancelled)

    previous_status = election.status
    election.status = Election.Status.cancelled
    election.cancelled_at = timezone.now()
    election.save(update_fields=["status", "cancelled_at", "updated_at"])

    AuditLogEntry.objects.create(
        election=election,
        event_type="election_cancelled",
        payload={"actor": requester_id, "previous_status": previous_status, "reason": reason},
        is_public=True,
    )
    send_on_commit(election_cancelled, sender=Election, election=election)
    logger.info(
        "Election cancelled election_id=%s actor=%s previous_status=%s",
        election.pk,
        requester_id,
        previous_status,
        extra={"event": "electoral.election.cancelled", "component": "lifecycle"},
    )
    return election


def list_elections(
    *,
    status: str | None = None,
    branch: str | None = None,
    from_rank: str | None = None,
    to_rank: str | None = None,
    scope_id: str | None = None,
) -> ElectionQuerySet:
    if status and status not in Election.Status.values:
        raise InvalidArgumentError(f"Unknown status: {status}")
    if branch and branch not in Branch.values:
        raise InvalidArgumentError(f"Unknown branch: {branch}")
    for rank in (from_rank, to_rank):
        if rank and rank not in RANK_ORDER:
            raise InvalidArgumentError(f"Unknown rank: {rank}")

    return (
        Election.objects.matching(
            status=status,
            branch=branch,
            from_rank=from_rank,
            to_rank=to_rank,
            scope_id=scope_id,
        )
        .annotate(ballot_count=Count("ballots"))
        .order_by("-voting_start", "id")
    )


def ladder_status(*, scope_id: str) -> list[LadderRung]:
    """Every rung of the ladder for one scope, with the latest election per branch."""
    latest: dict[tuple[str, str], Election] = {}
    for election in Election.objects.filter(scope_id=scope_id).order_by("created_at", "id"):
        latest[(election.rung.key, election.branch)] = election

    rows: list[LadderRung] = []
    seen_keys: list[str] = []
    for rung in LEGAL_RUNGS:
        if rung.key in seen_keys:
            continue
        seen_keys.append(rung.key)
        rows.append(
            LadderRung(
                rung_key=rung.key,
                from_rank=rung.from_rank,
                to_rank=rung.to_rank,
                elections={branch: latest.get((rung.key, branch)) for branch in Branch.values},
            )
        )
    return rows
