"""The hierarchy ladder: ranks, power branches and the legal election rungs.

Leaders at one rank elect the branch authority of the rank directly above it.
Every branch runs its own election on every rung, so the ladder has
``len(RANK_ORDER) - 1`` rank pairs and ``4`` branches per pair.
"""

from dataclasses import dataclass

from django.db import models


class Rank(models.TextChoices):
    family = "family", "Family"
    arban = "arban", "Arban"
    zun = "zun", "Zun"
    myangan = "myangan", "Myangan"
    tumen = "tumen", "Tumen"
    republic = "republic", "Republic"
    confederation = "confederation", "Confederation"


class Branch(models.TextChoices):
    executive = "executive", "Executive"
    legislative = "legislative", "Legislative"
    judicial = "judicial", "Judicial"
    banking = "banking", "Banking"


# Bottom to top.
RANK_ORDER: tuple[str, ...] = (
    Rank.family,
    Rank.arban,
    Rank.zun,
    Rank.myangan,
    Rank.tumen,
    Rank.republic,
    Rank.confederation,
)


@dataclass(frozen=True)
class Rung:
    from_rank: str
    to_rank: str
    branch: str

    @property
    def key(self) -> str:
        return rung_key(from_rank=self.from_rank, to_rank=self.to_rank)


LEGAL_RUNGS: tuple[Rung, ...] = tuple(
    Rung(from_rank=str(lower), to_rank=str(upper), branch=str(branch))
    for lower, upper in zip(RANK_ORDER, RANK_ORDER[1:], strict=False)
    for branch in Branch.values
)

_LEGAL_RUNG_SET: frozenset[tuple[str, str, str]] = frozenset(
    (r.from_rank, r.to_rank, r.branch) for r in LEGAL_RUNGS
)


def is_legal_rung(from_rank: str, to_rank: str, branch: str) -> bool:
    return (str(from_rank), str(to_rank), str(branch)) in _LEGAL_RUNG_SET


def next_rank(rank: str) -> str | None:
    try:
        idx = RANK_ORDER.index(rank)
    except ValueError:
        return None
    if idx + 1 >= len(RANK_ORDER):
        return None
    return str(RANK_ORDER[idx + 1])


def rank_label(rank: str) -> str:
    try:
        return str(Rank(rank).label)
    except ValueError:
        return str(rank)


def branch_label(branch: str) -> str:
    try:
        return str(Branch(branch).label)
    except ValueError:
        return str(branch)


def rung_key(*, from_rank: str, to_rank: str) -> str:
    return f"{from_rank}->{to_rank}"


def default_election_title(rung: Rung) -> str:
    return (
        f"{rank_label(rung.to_rank)} election: {branch_label(rung.branch)} branch"
        f" - candidates from {rank_label(rung.from_rank)}"
    )
