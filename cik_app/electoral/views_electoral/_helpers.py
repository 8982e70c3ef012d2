"""Shared private helpers used across electoral view sub-modules."""

import datetime
import json
import logging
from collections.abc import Callable
from functools import wraps
from typing import Any, ParamSpec

from django.http import HttpRequest, HttpResponse, JsonResponse
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from electoral.certification import CertificationRecord, certification_record
from electoral.errors import ElectoralError, ErrorKind, InvalidArgumentError
from electoral.fingerprints import iso8601_utc
from electoral.ladder import branch_label, rank_label
from electoral.models import AuthorityMember, Candidacy, Election, ElectoralAuthority

logger = logging.getLogger(__name__)

P = ParamSpec("P")


def error_response(*, kind: str, message: str, status: int) -> JsonResponse:
    return JsonResponse({"ok": False, "kind": str(kind), "error": message}, status=status)


def electoral_json_view(view_func: Callable[P, HttpResponse]) -> Callable[P, HttpResponse]:
    """Translate ElectoralError into a typed JSON failure."""

    @wraps(view_func)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> HttpResponse:
        try:
            return view_func(*args, **kwargs)
        except ElectoralError as exc:
            logger.info("Electoral request rejected kind=%s error=%s", exc.kind, exc.message)
            return error_response(kind=exc.kind, message=exc.message, status=exc.status_code)

    return wrapper


def principal_required(view_func: Callable[P, HttpResponse]) -> Callable[P, HttpResponse]:
    @wraps(view_func)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> HttpResponse:
        request = args[0] if args else None
        if not isinstance(request, HttpRequest) or not get_principal_id(request):
            return error_response(kind=ErrorKind.forbidden, message="Authentication required.", status=403)
        return view_func(*args, **kwargs)

    return wrapper


def get_principal_id(request: HttpRequest) -> str:
    user = getattr(request, "user", None)
    if user is None or not getattr(user, "is_authenticated", False):
        return ""
    try:
        return str(user.get_username() or "").strip()
    except AttributeError:
        return ""


def parse_json_body(request: HttpRequest) -> dict[str, Any]:
    if not request.body:
        return {}
    try:
        data = json.loads(request.body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise InvalidArgumentError("Request body must be valid JSON.") from exc
    if not isinstance(data, dict):
        raise InvalidArgumentError("Request body must be a JSON object.")
    return data


def _camel_case(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def body_value(data: dict[str, Any], name: str) -> Any:
    """Look up ``name`` in a JSON body, accepting its camelCase spelling too."""
    if name in data:
        return data[name]
    return data.get(_camel_case(name))


def required_str(data: dict[str, Any], name: str) -> str:
    value = str(body_value(data, name) or "").strip()
    if not value:
        raise InvalidArgumentError(f"{name} is required.")
    return value


def optional_str(data: dict[str, Any], name: str) -> str | None:
    value = body_value(data, name)
    if value is None:
        return None
    return str(value)


def required_int(data: dict[str, Any], name: str) -> int:
    value = body_value(data, name)
    if isinstance(value, bool):
        raise InvalidArgumentError(f"{name} must be an integer.")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise InvalidArgumentError(f"{name} must be an integer.") from exc


def required_datetime(data: dict[str, Any], name: str) -> datetime.datetime:
    raw = str(body_value(data, name) or "").strip()
    if not raw:
        raise InvalidArgumentError(f"{name} is required.")
    value = parse_datetime(raw)
    if value is None:
        raise InvalidArgumentError(f"{name} must be an ISO 8601 datetime.")
    if timezone.is_naive(value):
        raise InvalidArgumentError(f"{name} must include a timezone offset.")
    return value


def _iso(value: datetime.datetime | None) -> str | None:
    return iso8601_utc(value) if value is not None else None


def serialize_authority(authority: ElectoralAuthority | None) -> dict[str, object] | None:
    if authority is None:
        return None
    members: list[AuthorityMember] = list(authority.members.all())
    return {
        "id": authority.pk,
        "kind": authority.kind,
        "status": authority.status,
        "appointed_by": authority.appointed_by,
        "mandate": authority.mandate,
        "created_at": _iso(authority.created_at),
        "dissolved_at": _iso(authority.dissolved_at),
        "members": [{"principal_id": m.principal_id, "seat_role": m.seat_role} for m in members],
    }


def serialize_candidacy(candidacy: Candidacy) -> dict[str, object]:
    return {
        "id": candidacy.pk,
        "election_id": candidacy.election_id,
        "candidate_id": candidacy.candidate_id,
        "platform": candidacy.platform,
        "vote_count": candidacy.vote_count,
        "source": candidacy.source,
        "registered_at": _iso(candidacy.registered_at),
    }


def serialize_certification(record: CertificationRecord) -> dict[str, object]:
    return {
        "election_id": record.election_id,
        "winners": [{"candidate_id": w.candidate_id, "vote_count": w.vote_count} for w in record.winners],
        "winner_ids": record.winner_ids,
        "total_votes": record.total_votes,
        "result_fingerprint": record.result_fingerprint,
        "certified_at": _iso(record.certified_at),
    }


def serialize_election(
    election: Election,
    *,
    candidacies: list[Candidacy] | None = None,
    ballot_count: int | None = None,
) -> dict[str, object]:
    payload: dict[str, object] = {
        "id": election.pk,
        "title": election.title,
        "description": election.description,
        "from_rank": election.from_rank,
        "from_rank_label": rank_label(election.from_rank),
        "to_rank": election.to_rank,
        "to_rank_label": rank_label(election.to_rank),
        "branch": election.branch,
        "branch_label": branch_label(election.branch),
        "scope_id": election.scope_id,
        "scope_name": election.scope_name,
        "seat_count": election.seat_count,
        "status": election.status,
        "nomination_deadline": _iso(election.nomination_deadline),
        "voting_start": _iso(election.voting_start),
        "voting_end": _iso(election.voting_end),
        "created_by": election.created_by,
        "created_at": _iso(election.created_at),
        "cancelled_at": _iso(election.cancelled_at),
        "certification": (
            serialize_certification(certification_record(election))
            if election.status == Election.Status.certified
            else None
        ),
    }
    if ballot_count is None:
        ballot_count = getattr(election, "ballot_count", None)
    if ballot_count is not None:
        payload["ballot_count"] = int(ballot_count)
    if candidacies is not None:
        payload["candidacies"] = [serialize_candidacy(c) for c in candidacies]
    return payload
