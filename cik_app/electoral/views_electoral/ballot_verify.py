"""Ballot receipt verification."""

from django.http import HttpRequest, HttpResponse, JsonResponse
from django.views.decorators.http import require_GET

from electoral.ballots import find_ballot_by_fingerprint, verify_leaf
from electoral.views_electoral._helpers import electoral_json_view


@require_GET
@electoral_json_view
def ballot_verify(request: HttpRequest) -> HttpResponse:
    ballot = find_ballot_by_fingerprint(str(request.GET.get("fingerprint") or ""))
    if ballot is None:
        return JsonResponse({"found": False})

    election = ballot.election
    # Privacy guardrail: never reveal the voter, the choice or the precise time.
    return JsonResponse(
        {
            "found": True,
            "election_id": election.pk,
            "election_title": election.title,
            "election_status": election.status,
            "cast_date": ballot.cast_at.date().isoformat(),
            "fingerprint_matches": verify_leaf(ballot),
        }
    )
