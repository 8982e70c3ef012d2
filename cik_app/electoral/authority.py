"""The electoral authority (CIK): provisional bootstrap, permanent handover.

Only the bootstrap principal may appoint or dissolve an authority. Both
moves are one-way: a dissolved authority is never reactivated and its
membership rows are never touched again.
"""

import hmac
import logging
from collections.abc import Iterable

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from electoral.errors import ForbiddenError, InvalidArgumentError, InvalidStateError, NotFoundError
from electoral.models import AuditLogEntry, AuthorityMember, ElectoralAuthority
from electoral.signals import authority_appointed, authority_dissolved, send_on_commit

logger = logging.getLogger(__name__)

MIN_AUTHORITY_MEMBERS = 3
MAX_AUTHORITY_MEMBERS = 7

DEFAULT_PROVISIONAL_MANDATE = (
    "Conduct elections across the whole hierarchy ladder and stand down once the Khural has convened."
)
DEFAULT_PERMANENT_MANDATE = "Administer and certify elections at every rank of the hierarchy ladder."


def is_bootstrap_principal(principal_id: str) -> bool:
    configured = str(settings.ELECTORAL_BOOTSTRAP_PRINCIPAL_ID or "").strip()
    candidate = str(principal_id or "").strip()
    if not configured or not candidate:
        return False
    return hmac.compare_digest(configured, candidate)


def _require_bootstrap(requester_id: str, *, action: str) -> None:
    if not is_bootstrap_principal(requester_id):
        raise ForbiddenError(f"Only the bootstrap principal can {action}.")


def _normalize_member_ids(member_ids: Iterable[str]) -> list[str]:
    normalized: list[str] = []
    for raw in member_ids:
        principal_id = str(raw or "").strip()
        if not principal_id:
            raise InvalidArgumentError("Member ids must be non-empty.")
        if principal_id in normalized:
            raise InvalidArgumentError(f"Duplicate member id: {principal_id}")
        normalized.append(principal_id)

    if not MIN_AUTHORITY_MEMBERS <= len(normalized) <= MAX_AUTHORITY_MEMBERS:
        raise InvalidArgumentError(
            f"An electoral authority requires {MIN_AUTHORITY_MEMBERS}-{MAX_AUTHORITY_MEMBERS} members."
        )
    return normalized


def _create_authority(
    *,
    kind: str,
    requester_id: str,
    member_ids: list[str],
    mandate: str,
) -> ElectoralAuthority:
    authority = ElectoralAuthority.objects.create(
        kind=kind,
        status=ElectoralAuthority.Status.active,
        appointed_by=requester_id,
        mandate=mandate,
    )
    AuthorityMember.objects.bulk_create(
        [
            AuthorityMember(
                authority=authority,
                principal_id=principal_id,
                seat_role=AuthorityMember.SeatRole.chair if idx == 0 else AuthorityMember.SeatRole.member,
            )
            for idx, principal_id in enumerate(member_ids)
        ]
    )
    return authority


def _record_appointment(*, authority: ElectoralAuthority, member_ids: list[str], actor: str) -> None:
    AuditLogEntry.objects.create(
        authority=authority,
        event_type="authority_appointed",
        payload={
            "kind": authority.kind,
            "chair": member_ids[0],
            "members": member_ids,
            "actor": actor,
        },
        is_public=True,
    )
    logger.info(
        "Electoral authority appointed authority_id=%s kind=%s members=%d",
        authority.pk,
        authority.kind,
        len(member_ids),
        extra={"event": "electoral.authority.appointed", "component": "authority"},
    )
    send_on_commit(authority_appointed, sender=ElectoralAuthority, authority=authority)


def _dissolve(*, authority: ElectoralAuthority, actor: str, reason: str) -> None:
    authority.status = ElectoralAuthority.Status.dissolved
    authority.dissolved_at = timezone.now()
    authority.save(update_fields=["status", "dissolved_at"])

    AuditLogEntry.objects.create(
        authority=authority,
        event_type="authority_dissolved",
        payload={"kind": authority.kind, "actor": actor, "reason": reason},
        is_public=True,
    )
    logger.info(
        "Electoral authority dissolved authority_id=%s kind=%s reason=%s",
        authority.pk,
        authority.kind,
        reason,
        extra={"event": "electoral.authority.dissolved", "component": "authority"},
    )
    send_on_commit(authority_dissolved, sender=ElectoralAuthority, authority=authority)


@transaction.atomic
def appoint_provisional(
    *,
    requester_id: str,
    member_ids: Iterable[str],
    mandate: str | None = None,
) -> ElectoralAuthority:
    """Appoint the provisional authority, or return the one already active."""
    _require_bootstrap(requester_id, action="appoint the provisional electoral authority")
    members = _normalize_member_ids(member_ids)

    # Lock every active authority so a concurrent handover serializes with us.
    active = list(ElectoralAuthority.objects.select_for_update().active())
    # The handover is one-way: once a permanent authority exists, even a
    # dissolved one, no provisional body may be seated again.
    if ElectoralAuthority.objects.filter(kind=ElectoralAuthority.Kind.permanent).exists():
        raise InvalidStateError("Electoral authority has been handed over to a permanent body.")

    existing = next((a for a in active if a.kind == ElectoralAuthority.Kind.provisional), None)
    if existing is not None:
        return existing

    try:
        # Savepoint: a concurrent appointment trips the partial unique
        # constraint and we fall back to returning the winner.
        with transaction.atomic():
            authority = _create_authority(
                kind=ElectoralAuthority.Kind.provisional,
                requester_id=requester_id,
                member_ids=members,
                mandate=str(mandate or "").strip() or DEFAULT_PROVISIONAL_MANDATE,
            )
    except IntegrityError:
        existing = ElectoralAuthority.objects.active_provisional().first()
        if existing is None:
            raise
        return existing

    _record_appointment(authority=authority, member_ids=members, actor=requester_id)
    return authority


@transaction.atomic
def dissolve_provisional(*, requester_id: str) -> ElectoralAuthority:
    _require_bootstrap(requester_id, action="dissolve the provisional electoral authority")

    authority = ElectoralAuthority.objects.select_for_update().active_provisional().first()
    if authority is None:
        raise NotFoundError("No active provisional electoral authority found.")

    _dissolve(authority=authority, actor=requester_id, reason="dissolved")
    return authority


@transaction.atomic
def appoint_permanent(
    *,
    requester_id: str,
    member_ids: Iterable[str],
    mandate: str | None = None,
) -> ElectoralAuthority:
    """Hand electoral authority over from the provisional to a permanent body.

    The active provisional authority, if any, is dissolved in the same
    transaction. There is no way back.
    """
    _require_bootstrap(requester_id, action="appoint the permanent electoral authority")
    members = _normalize_member_ids(member_ids)

    active = list(ElectoralAuthority.objects.select_for_update().active())
    if any(a.kind == ElectoralAuthority.Kind.permanent for a in active):
        raise InvalidStateError("A permanent electoral authority is already active.")

    for provisional in active:
        _dissolve(authority=provisional, actor=requester_id, reason="handover_to_permanent")

    authority = _create_authority(
        kind=ElectoralAuthority.Kind.permanent,
        requester_id=requester_id,
        member_ids=members,
        mandate=str(mandate or "").strip() or DEFAULT_PERMANENT_MANDATE,
    )
    _record_appointment(authority=authority, member_ids=members, actor=requester_id)
    return authority


def is_active_member(principal_id: str) -> bool:
    principal_id = str(principal_id or "").strip()
    if not principal_id:
        return False
    return AuthorityMember.objects.filter(
        principal_id=principal_id,
        authority__status=ElectoralAuthority.Status.active,
    ).exists()


def require_active_member(principal_id: str) -> None:
    if not is_active_member(principal_id):
        raise ForbiddenError("Must be an active electoral authority member.")


def get_active() -> ElectoralAuthority | None:
    return (
        ElectoralAuthority.objects.active()
        .prefetch_related("members")
        .order_by("-created_at", "-id")
        .first()
    )
