import logging
from collections.abc import Callable
from typing import TypeVar

from electoral.directory import Directory, get_directory
from electoral.directory.exceptions import DirectoryMisconfiguredError, DirectoryUnavailableError
from electoral.errors import AlreadyVotedError, ForbiddenError, ServiceUnavailableError
from electoral.ladder import Rung
from electoral.models import Election

DIRECTORY_UNAVAILABLE_MESSAGE = "The identity and hierarchy registry is currently unavailable. Try again later."

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _ask(fn: Callable[[Directory], T], *, directory: Directory | None = None) -> T:
    try:
        return fn(directory if directory is not None else get_directory())
    except (DirectoryUnavailableError, DirectoryMisconfiguredError) as exc:
        logger.warning("Eligibility lookup failed error=%s", exc)
        raise ServiceUnavailableError(DIRECTORY_UNAVAILABLE_MESSAGE) from exc


def can_stand(principal_id: str, *, scope_id: str, rank: str, directory: Directory | None = None) -> bool:
    """Whether ``principal_id`` may stand for election from ``scope_id`` at ``rank``.

    ``rank`` is the rung's *from* rank: candidates are drawn from the
    constituency that votes.
    """
    facts = _ask(lambda d: d.identity_facts(principal_id), directory=directory)
    if not facts.may_hold_office:
        return False
    return _ask(lambda d: d.is_scope_member(principal_id, scope_id=scope_id, rank=rank), directory=directory)


def require_can_stand(principal_id: str, *, election: Election, directory: Directory | None = None) -> None:
    facts = _ask(lambda d: d.identity_facts(principal_id), directory=directory)
    if not facts.may_hold_office:
        raise ForbiddenError("Must be a verified legal subject to stand as a candidate.")

    member = _ask(
        lambda d: d.is_scope_member(principal_id, scope_id=election.scope_id, rank=election.from_rank),
        directory=directory,
    )
    if not member:
        raise ForbiddenError("Candidates must belong to the election's constituency.")


def discover_candidates(*, rung: Rung, scope_id: str, directory: Directory | None = None) -> list[str]:
    """Leaders of ``scope_id`` at the rung's from rank who may stand.

    Order follows the registry's answer, so discovered candidacies are
    registered (and tie-broken) in a reproducible order.
    """
    directory = directory if directory is not None else _ask(lambda d: d)
    leaders = _ask(
        lambda d: d.scope_leaders(scope_id=scope_id, rank=rung.from_rank, branch=rung.branch),
        directory=directory,
    )
    eligible = [
        leader
        for leader in leaders
        if can_stand(leader, scope_id=scope_id, rank=rung.from_rank, directory=directory)
    ]
    if len(eligible) != len(leaders):
        logger.info(
            "Skipped ineligible scope leaders scope_id=%s rung=%s branch=%s skipped=%d",
            scope_id,
            rung.key,
            rung.branch,
            len(leaders) - len(eligible),
        )
    return eligible


def is_in_voting_scope(principal_id: str, *, election: Election, directory: Directory | None = None) -> bool:
    return _ask(
        lambda d: d.is_scope_member(principal_id, scope_id=election.scope_id, rank=election.from_rank),
        directory=directory,
    )


def can_vote(principal_id: str, *, election: Election, directory: Directory | None = None) -> bool:
    from electoral.ballots import has_voted

    if not is_in_voting_scope(principal_id, election=election, directory=directory):
        return False
    return not has_voted(election=election, voter_id=principal_id)


def require_can_vote(principal_id: str, *, election: Election, directory: Directory | None = None) -> None:
    from electoral.ballots import has_voted

    if not is_in_voting_scope(principal_id, election=election, directory=directory):
        raise ForbiddenError("Not eligible to vote in this election.")
    if has_voted(election=election, voter_id=principal_id):
        raise AlreadyVotedError("Already voted in this election.")
