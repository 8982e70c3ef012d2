"""Citizen-facing endpoints: candidacy registration and ballot casting."""

from django.http import HttpRequest, HttpResponse, JsonResponse
from django.views.decorators.http import require_POST

from electoral.ballots import cast_ballot
from electoral.fingerprints import iso8601_utc
from electoral.lifecycle import register_candidacy
from electoral.views_electoral._helpers import (
    electoral_json_view,
    get_principal_id,
    optional_str,
    parse_json_body,
    principal_required,
    required_int,
    required_str,
    serialize_candidacy,
)


@require_POST
@electoral_json_view
@principal_required
def candidacy_register(request: HttpRequest) -> HttpResponse:
    data = parse_json_body(request)
    candidacy = register_candidacy(
        candidate_id=get_principal_id(request),
        election_id=required_int(data, "election_id"),
        platform=optional_str(data, "platform"),
    )
    return JsonResponse({"ok": True, "candidacy": serialize_candidacy(candidacy)})


@require_POST
@electoral_json_view
@principal_required
def ballot_cast(request: HttpRequest) -> HttpResponse:
    data = parse_json_body(request)
    ballot = cast_ballot(
        voter_id=get_principal_id(request),
        election_id=required_int(data, "election_id"),
        candidate_id=required_str(data, "candidate_id"),
    )
    return JsonResponse(
        {
            "ok": True,
            "election_id": ballot.election_id,
            "ballot_id": ballot.pk,
            "leaf_fingerprint": ballot.leaf_fingerprint,
            "cast_at": iso8601_utc(ballot.cast_at),
        }
    )
