import logging
import threading
from typing import Any
from urllib.parse import quote

import requests
from django.conf import settings
from django.core.cache import cache
from typing_extensions import override

from electoral.directory import UNKNOWN_PRINCIPAL, IdentityFacts
from electoral.directory import circuit_breaker
from electoral.directory.exceptions import DirectoryMisconfiguredError, DirectoryUnavailableError

logger = logging.getLogger("electoral.directory")

_session_local = threading.local()


class _DirectoryTimeoutSession(requests.Session):
    def __init__(self, default_timeout: float) -> None:
        super().__init__()
        self.default_timeout = default_timeout

    @override
    def request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        if "timeout" not in kwargs or kwargs.get("timeout") is None:
            kwargs["timeout"] = self.default_timeout
        return super().request(method, url, **kwargs)


def _build_session() -> requests.Session:
    session = _DirectoryTimeoutSession(settings.ELECTORAL_DIRECTORY_TIMEOUT_SECONDS)
    session.headers["Accept"] = "application/json"
    token = str(settings.ELECTORAL_DIRECTORY_TOKEN or "").strip()
    if token:
        session.headers["Authorization"] = f"Bearer {token}"
    return session


def _get_session() -> requests.Session:
    session = getattr(_session_local, "session", None)
    if session is not None:
        return session

    session = _build_session()
    _session_local.session = session
    return session


def clear_directory_session_cache() -> None:
    if hasattr(_session_local, "session"):
        delattr(_session_local, "session")


def _identity_facts_cache_key(principal_id: str) -> str:
    return f"electoral_identity_facts_{principal_id}"


class HttpDirectory:
    """Directory backed by the identity and hierarchy registry's JSON API.

    Endpoints, relative to ``ELECTORAL_DIRECTORY_URL``:

    - ``GET principals/<id>/facts`` -> ``{"is_verified": bool, "is_legal_subject": bool}``
    - ``GET scopes/<scope>/members/<id>?rank=<rank>`` -> ``{"member": bool}``
    - ``GET scopes/<scope>/leaders?rank=<rank>&branch=<branch>`` -> ``{"leaders": [id, ...]}``

    A 404 means "no such principal/scope" and is answered with negative facts.
    """

    def __init__(self, base_url: str | None = None) -> None:
        url = str(base_url if base_url is not None else settings.ELECTORAL_DIRECTORY_URL or "").strip()
        if not url:
            raise DirectoryMisconfiguredError("ELECTORAL_DIRECTORY_URL is not configured")
        self.base_url = url.rstrip("/") + "/"

    def _get_json(self, path: str, *, params: dict[str, str] | None = None) -> dict[str, Any] | None:
        if circuit_breaker.is_open():
            raise DirectoryUnavailableError("directory circuit breaker is open")

        url = self.base_url + path
        try:
            response = _get_session().get(url, params=params)
        except Exception as exc:
            if circuit_breaker.is_availability_error(exc):
                circuit_breaker.record_failure()
                logger.warning("Directory request failed url=%s error=%s", url, exc)
                raise DirectoryUnavailableError(f"directory request failed: {exc}") from exc
            raise

        if response.status_code >= 500:
            circuit_breaker.record_failure()
            logger.warning("Directory request failed url=%s status=%d", url, response.status_code)
            raise DirectoryUnavailableError(f"directory answered {response.status_code}")

        if response.status_code in {401, 403}:
            logger.error("Directory rejected service credentials url=%s status=%d", url, response.status_code)
            raise DirectoryMisconfiguredError("directory rejected the configured credentials")

        circuit_breaker.record_success()
        if response.status_code == 404:
            return None

        response.raise_for_status()
        data = response.json()
        return data if isinstance(data, dict) else {}

    def identity_facts(self, principal_id: str) -> IdentityFacts:
        key = _identity_facts_cache_key(principal_id)
        cached = cache.get(key)
        if isinstance(cached, IdentityFacts):
            return cached

        data = self._get_json(f"principals/{quote(principal_id, safe='')}/facts")
        if data is None:
            facts = UNKNOWN_PRINCIPAL
        else:
            facts = IdentityFacts(
                is_verified=bool(data.get("is_verified")),
                is_legal_subject=bool(data.get("is_legal_subject")),
            )

        cache.set(key, facts, timeout=settings.ELECTORAL_DIRECTORY_FACTS_CACHE_SECONDS)
        return facts

    def is_scope_member(self, principal_id: str, *, scope_id: str, rank: str) -> bool:
        data = self._get_json(
            f"scopes/{quote(scope_id, safe='')}/members/{quote(principal_id, safe='')}",
            params={"rank": rank},
        )
        return bool(data and data.get("member"))

    def scope_leaders(self, *, scope_id: str, rank: str, branch: str) -> list[str]:
        data = self._get_json(
            f"scopes/{quote(scope_id, safe='')}/leaders",
            params={"rank": rank, "branch": branch},
        )
        if not data:
            return []

        leaders: list[str] = []
        for raw in data.get("leaders") or []:
            leader = str(raw or "").strip()
            if leader and leader not in leaders:
                leaders.append(leader)
        return leaders


__all__ = [
    "HttpDirectory",
    "clear_directory_session_cache",
]
