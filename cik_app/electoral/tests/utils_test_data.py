from __future__ import annotations

import datetime

from django.utils import timezone

from electoral import authority
from electoral.models import Candidacy, Election, ElectoralAuthority
from electoral.tests.fakes import FakeDirectory

FOUNDER = "founder"
COMMISSIONERS = ["cik-chair", "cik-2", "cik-3"]
SCOPE_ID = "arban-7"


def seat_provisional_authority() -> ElectoralAuthority:
    return authority.appoint_provisional(requester_id=FOUNDER, member_ids=COMMISSIONERS)


def make_election(
    *,
    status: str = Election.Status.voting,
    from_rank: str = "arban",
    to_rank: str = "zun",
    branch: str = "executive",
    scope_id: str = SCOPE_ID,
    seat_count: int = 1,
    now: datetime.datetime | None = None,
    voting_open: bool = True,
) -> Election:
    """An election row with a window placed around ``now``.

    ``voting_open=True`` puts now inside the voting window; otherwise the
    voting window has already ended.
    """
    now = now or timezone.now()
    if voting_open:
        deadline = now - datetime.timedelta(days=2)
        start = now - datetime.timedelta(days=1)
        end = now + datetime.timedelta(days=1)
    else:
        deadline = now - datetime.timedelta(days=3)
        start = now - datetime.timedelta(days=2)
        end = now - datetime.timedelta(hours=1)
    return Election.objects.create(
        from_rank=from_rank,
        to_rank=to_rank,
        branch=branch,
        scope_id=scope_id,
        title=f"{to_rank} {branch}",
        created_by=COMMISSIONERS[0],
        nomination_deadline=deadline,
        voting_start=start,
        voting_end=end,
        seat_count=seat_count,
        status=status,
    )


def add_candidates(election: Election, *candidate_ids: str) -> list[Candidacy]:
    return [Candidacy.objects.create(election=election, candidate_id=cid) for cid in candidate_ids]


def add_voters(election: Election, *voter_ids: str) -> None:
    for voter_id in voter_ids:
        FakeDirectory.add_citizen(voter_id, scope_id=election.scope_id, rank=election.from_rank)
