"""Election endpoints: listing, detail, creation, phase changes, certification."""

from django.http import HttpRequest, HttpResponse, JsonResponse
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from electoral import lifecycle
from electoral.ballots import ballot_count
from electoral.certification import certify_election
from electoral.ladder import Rung
from electoral.models import Candidacy
from electoral.views_electoral._helpers import (
    body_value,
    electoral_json_view,
    get_principal_id,
    optional_str,
    parse_json_body,
    principal_required,
    required_datetime,
    required_int,
    required_str,
    serialize_certification,
    serialize_election,
)


def _elections_list(request: HttpRequest) -> HttpResponse:
    params = request.GET
    elections = lifecycle.list_elections(
        status=params.get("status") or None,
        branch=params.get("branch") or None,
        from_rank=params.get("from_rank") or None,
        to_rank=params.get("to_rank") or None,
        scope_id=params.get("scope_id") or None,
    )
    return JsonResponse({"elections": [serialize_election(e) for e in elections]})


@principal_required
def _election_create(request: HttpRequest) -> HttpResponse:
    data = parse_json_body(request)
    seat_count = required_int(data, "seat_count") if body_value(data, "seat_count") is not None else 1
    election = lifecycle.create_election(
        requester_id=get_principal_id(request),
        rung=Rung(
            from_rank=required_str(data, "from_rank"),
            to_rank=required_str(data, "to_rank"),
            branch=required_str(data, "branch"),
        ),
        scope=lifecycle.ElectionScope(
            scope_id=required_str(data, "scope_id"),
            scope_name=optional_str(data, "scope_name") or "",
        ),
        window=lifecycle.ElectionWindow(
            nomination_deadline=required_datetime(data, "nomination_deadline"),
            voting_start=required_datetime(data, "voting_start"),
            voting_end=required_datetime(data, "voting_end"),
        ),
        seat_count=seat_count,
        title=optional_str(data, "title"),
        description=optional_str(data, "description") or "",
    )
    candidacies = list(Candidacy.objects.for_election(election=election))
    return JsonResponse(
        {"ok": True, "election": serialize_election(election, candidacies=candidacies, ballot_count=0)},
        status=201,
    )


@require_http_methods(["GET", "POST"])
@electoral_json_view
def elections_collection(request: HttpRequest) -> HttpResponse:
    if request.method == "POST":
        return _election_create(request)
    return _elections_list(request)


@require_GET
@electoral_json_view
def election_detail(request: HttpRequest, election_id: int) -> HttpResponse:
    election = lifecycle.get_election(election_id)
    candidacies = list(Candidacy.objects.for_election(election=election).tally_order())
    return JsonResponse(
        {
            "election": serialize_election(
                election,
                candidacies=candidacies,
                ballot_count=ballot_count(election=election),
            )
        }
    )


@require_POST
@electoral_json_view
@principal_required
def election_open_voting(request: HttpRequest, election_id: int) -> HttpResponse:
    election = lifecycle.open_voting(requester_id=get_principal_id(request), election_id=election_id)
    return JsonResponse({"ok": True, "election": serialize_election(election)})


@require_POST
@electoral_json_view
@principal_required
def election_cancel(request: HttpRequest, election_id: int) -> HttpResponse:
    data = parse_json_body(request)
    election = lifecycle.cancel_election(
        requester_id=get_principal_id(request),
        election_id=election_id,
        reason=optional_str(data, "reason") or "",
    )
    return JsonResponse({"ok": True, "election": serialize_election(election)})


@require_POST
@electoral_json_view
@principal_required
def election_certify(request: HttpRequest, election_id: int) -> HttpResponse:
    record = certify_election(requester_id=get_principal_id(request), election_id=election_id)
    return JsonResponse({"ok": True, **serialize_certification(record)})


@require_GET
@electoral_json_view
def ladder_status(request: HttpRequest, scope_id: str) -> HttpResponse:
    rows = lifecycle.ladder_status(scope_id=scope_id)
    return JsonResponse(
        {
            "scope_id": scope_id,
            "ladder": [
                {
                    "rung": row.rung_key,
                    "from_rank": row.from_rank,
                    "to_rank": row.to_rank,
                    "branches": {
                        branch: serialize_election(election) if election is not None else None
                        for branch, election in row.elections.items()
                    },
                }
                for row in rows
            ],
        }
    )
