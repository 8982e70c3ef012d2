from __future__ import annotations

import datetime
import logging
from typing_extensions import override

from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import F, Q

from electoral.fingerprints import leaf_fingerprint
from electoral.ladder import Branch, Rank, Rung

logger = logging.getLogger(__name__)


class ElectoralAuthorityQuerySet(models.QuerySet["ElectoralAuthority"]):
    # Raw strings: ElectoralAuthority.Status is not defined yet (as_manager()
    # needs the queryset first). The values match the TextChoices below.
    def active(self) -> ElectoralAuthorityQuerySet:
        return self.filter(status="active")

    def active_provisional(self) -> ElectoralAuthorityQuerySet:
        return self.active().filter(kind="provisional")

    def active_permanent(self) -> ElectoralAuthorityQuerySet:
        return self.active().filter(kind="permanent")


class ElectoralAuthority(models.Model):
    class Kind(models.TextChoices):
        provisional = "provisional", "Provisional"
        permanent = "permanent", "Permanent"

    class Status(models.TextChoices):
        active = "active", "Active"
        dissolved = "dissolved", "Dissolved"

    kind = models.CharField(max_length=16, choices=Kind.choices)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.active)
    appointed_by = models.CharField(max_length=255)
    mandate = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)
    dissolved_at = models.DateTimeField(blank=True, null=True)

    objects = ElectoralAuthorityQuerySet.as_manager()

    class Meta:
        verbose_name_plural = "Electoral authorities"
        ordering = ("-created_at", "-id")
        constraints = [
            models.UniqueConstraint(
                fields=["kind"],
                name="uniq_authority_active_kind",
                condition=Q(status="active"),
            ),
        ]

    def __str__(self) -> str:
        return f"{self.kind} authority #{self.pk} ({self.status})"


class AuthorityMember(models.Model):
    class SeatRole(models.TextChoices):
        chair = "chair", "Chair"
        member = "member", "Member"

    authority = models.ForeignKey(ElectoralAuthority, on_delete=models.PROTECT, related_name="members")
    principal_id = models.CharField(max_length=255, db_index=True)
    seat_role = models.CharField(max_length=16, choices=SeatRole.choices, default=SeatRole.member)

    class Meta:
        ordering = ("authority", "id")
        constraints = [
            models.UniqueConstraint(
                fields=["authority", "principal_id"],
                name="uniq_authoritymember_authority_principal",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.authority_id}:{self.principal_id} ({self.seat_role})"


class ElectionQuerySet(models.QuerySet["Election"]):
    def matching(
        self,
        *,
        status: str | None = None,
        branch: str | None = None,
        from_rank: str | None = None,
        to_rank: str | None = None,
        scope_id: str | None = None,
    ) -> ElectionQuerySet:
        qs = self
        if status:
            qs = qs.filter(status=status)
        if branch:
            qs = qs.filter(branch=branch)
        if from_rank:
            qs = qs.filter(from_rank=from_rank)
        if to_rank:
            qs = qs.filter(to_rank=to_rank)
        if scope_id:
            qs = qs.filter(scope_id=scope_id)
        return qs


class Election(models.Model):
    class Status(models.TextChoices):
        nomination = "nomination", "Nomination"
        voting = "voting", "Voting"
        certified = "certified", "Certified"
        cancelled = "cancelled", "Cancelled"

    from_rank = models.CharField(max_length=16, choices=Rank.choices)
    to_rank = models.CharField(max_length=16, choices=Rank.choices)
    branch = models.CharField(max_length=16, choices=Branch.choices)
    scope_id = models.CharField(max_length=255, db_index=True)
    scope_name = models.CharField(max_length=255, blank=True, default="")
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    created_by = models.CharField(max_length=255)

    nomination_deadline = models.DateTimeField()
    voting_start = models.DateTimeField()
    voting_end = models.DateTimeField()
    seat_count = models.PositiveSmallIntegerField(default=1, validators=[MinValueValidator(1)])

    status = models.CharField(max_length=16, choices=Status.choices, default=Status.nomination)

    # Certification record. Written once, by the certification transaction.
    total_votes = models.PositiveIntegerField(blank=True, null=True)
    certified_at = models.DateTimeField(blank=True, null=True)
    result_fingerprint = models.CharField(max_length=64, blank=True, default="")
    winner_ids = models.JSONField(blank=True, default=list)

    cancelled_at = models.DateTimeField(blank=True, null=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ElectionQuerySet.as_manager()

    class Meta:
        ordering = ("-voting_start", "id")
        constraints = [
            models.CheckConstraint(
                condition=Q(nomination_deadline__lt=F("voting_start")) & Q(voting_start__lt=F("voting_end")),
                name="election_window_ordered",
            ),
            models.CheckConstraint(
                condition=Q(seat_count__gte=1),
                name="election_seat_count_positive",
            ),
        ]
        indexes = [
            models.Index(fields=["scope_id", "from_rank", "branch"], name="election_scope_rung"),
        ]

    def __str__(self) -> str:
        return self.title

    @property
    def rung(self) -> Rung:
        return Rung(from_rank=self.from_rank, to_rank=self.to_rank, branch=self.branch)

    @property
    def is_terminal(self) -> bool:
        return self.status in {Election.Status.certified, Election.Status.cancelled}

    def voting_window_contains(self, moment: datetime.datetime) -> bool:
        return self.voting_start <= moment <= self.voting_end


class CandidacyQuerySet(models.QuerySet["Candidacy"]):
    def for_election(self, *, election: Election) -> CandidacyQuerySet:
        return self.filter(election=election)

    def tally_order(self) -> CandidacyQuerySet:
        # Ties go to the candidacy registered first (ids follow insertion order).
        return self.order_by("-vote_count", "id")


class Candidacy(models.Model):
    class Source(models.TextChoices):
        self_registered = "self", "Self-registered"
        discovered = "discovered", "Discovered from hierarchy"

    election = models.ForeignKey(Election, on_delete=models.PROTECT, related_name="candidacies")
    candidate_id = models.CharField(max_length=255)
    platform = models.TextField(blank=True, default="")
    vote_count = models.PositiveIntegerField(default=0)
    source = models.CharField(max_length=16, choices=Source.choices, default=Source.self_registered)
    registered_at = models.DateTimeField(auto_now_add=True)

    objects = CandidacyQuerySet.as_manager()

    class Meta:
        verbose_name_plural = "Candidacies"
        ordering = ("id",)
        constraints = [
            models.UniqueConstraint(
                fields=["election", "candidate_id"],
                name="uniq_candidacy_election_candidate",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.candidate_id} ({self.election_id})"


class BallotQuerySet(models.QuerySet["Ballot"]):
    def for_election(self, *, election: Election) -> BallotQuerySet:
        return self.filter(election=election)

    def for_voter(self, *, election: Election, voter_id: str) -> BallotQuerySet:
        return self.for_election(election=election).filter(voter_id=voter_id)


class Ballot(models.Model):
    election = models.ForeignKey(Election, on_delete=models.PROTECT, related_name="ballots")
    voter_id = models.CharField(max_length=255)
    candidacy = models.ForeignKey(Candidacy, on_delete=models.PROTECT, related_name="ballots")

    # Denormalized from the candidacy: the fingerprint commits to it.
    candidate_id = models.CharField(max_length=255)

    leaf_fingerprint = models.CharField(max_length=64, unique=True)
    cast_at = models.DateTimeField()

    objects = BallotQuerySet.as_manager()

    class Meta:
        ordering = ("cast_at", "id")
        constraints = [
            models.UniqueConstraint(
                fields=["election", "voter_id"],
                name="uniq_ballot_election_voter",
            ),
        ]
        indexes = [
            models.Index(fields=["election", "cast_at"], name="ballot_el_at"),
        ]

    def __str__(self) -> str:
        return f"ballot:{self.election_id}:{self.leaf_fingerprint[:12]}"

    @override
    def save(self, *args, **kwargs) -> None:
        if not self._state.adding:
            raise ValueError("Ballots are final and cannot be modified")
        super().save(*args, **kwargs)

    @override
    def delete(self, *args, **kwargs):
        raise ValueError("Ballots are final and cannot be deleted")

    def compute_fingerprint(self) -> str:
        return leaf_fingerprint(
            election_id=self.election_id,
            voter_id=self.voter_id,
            candidate_id=self.candidate_id,
            cast_at=self.cast_at,
        )


class AuditLogEntry(models.Model):
    election = models.ForeignKey(
        Election,
        on_delete=models.PROTECT,
        related_name="audit_log",
        blank=True,
        null=True,
    )
    authority = models.ForeignKey(
        ElectoralAuthority,
        on_delete=models.PROTECT,
        related_name="audit_log",
        blank=True,
        null=True,
    )
    timestamp = models.DateTimeField(auto_now_add=True)
    event_type = models.CharField(max_length=64)
    payload = models.JSONField(blank=True, default=dict)
    is_public = models.BooleanField(default=False)

    class Meta:
        verbose_name_plural = "Audit log entries"
        ordering = ("timestamp", "id")
        indexes = [
            models.Index(fields=["election", "timestamp"], name="audit_el_ts"),
            models.Index(fields=["election", "is_public"], name="audit_el_pub"),
        ]

    def __str__(self) -> str:
        return f"{self.election_id or self.authority_id}:{self.event_type}"
