"""Electoral authority endpoints: current authority, appointment, dissolution."""

from django.http import HttpRequest, HttpResponse, JsonResponse
from django.views.decorators.http import require_GET, require_POST

from electoral import authority as authority_services
from electoral.errors import InvalidArgumentError
from electoral.views_electoral._helpers import (
    body_value,
    electoral_json_view,
    get_principal_id,
    optional_str,
    parse_json_body,
    principal_required,
    serialize_authority,
)


def _member_ids_from(data: dict[str, object]) -> list[str]:
    raw = body_value(data, "member_ids")
    if not isinstance(raw, list):
        raise InvalidArgumentError("member_ids must be a list.")
    return [str(x) for x in raw]


@require_GET
def authority_active(request: HttpRequest) -> HttpResponse:
    return JsonResponse({"authority": serialize_authority(authority_services.get_active())})


@require_POST
@electoral_json_view
@principal_required
def authority_appoint_provisional(request: HttpRequest) -> HttpResponse:
    data = parse_json_body(request)
    authority = authority_services.appoint_provisional(
        requester_id=get_principal_id(request),
        member_ids=_member_ids_from(data),
        mandate=optional_str(data, "mandate"),
    )
    return JsonResponse({"ok": True, "authority": serialize_authority(authority)})


@require_POST
@electoral_json_view
@principal_required
def authority_dissolve_provisional(request: HttpRequest) -> HttpResponse:
    authority = authority_services.dissolve_provisional(requester_id=get_principal_id(request))
    return JsonResponse({"ok": True, "authority": serialize_authority(authority)})


@require_POST
@electoral_json_view
@principal_required
def authority_appoint_permanent(request: HttpRequest) -> HttpResponse:
    data = parse_json_body(request)
    authority = authority_services.appoint_permanent(
        requester_id=get_principal_id(request),
        member_ids=_member_ids_from(data),
        mandate=optional_str(data, "mandate"),
    )
    return JsonResponse({"ok": True, "authority": serialize_authority(authority)})
