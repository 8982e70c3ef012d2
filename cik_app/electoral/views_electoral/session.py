"""CSRF handshake for session-authenticated API clients.

Every mutation is a POST behind Django's CSRF middleware. A client that
authenticates with the session cookie first calls ``GET /cik/csrf`` and then
echoes the token in the ``X-CSRFToken`` header.
"""

from django.http import HttpRequest, HttpResponse, JsonResponse
from django.middleware.csrf import get_token
from django.views.decorators.csrf import ensure_csrf_cookie
from django.views.decorators.http import require_GET

from electoral.errors import ErrorKind
from electoral.views_electoral._helpers import error_response


@require_GET
@ensure_csrf_cookie
def csrf_token(request: HttpRequest) -> HttpResponse:
    return JsonResponse({"csrf_token": get_token(request)})


def csrf_failure(request: HttpRequest, reason: str = "") -> HttpResponse:
    return error_response(kind=ErrorKind.forbidden, message=f"CSRF verification failed: {reason}", status=403)
