"""Fail-fast guard in front of the registry directory.

Consecutive availability failures are counted in the Django cache. Once the
count reaches ``ELECTORAL_DIRECTORY_CIRCUIT_BREAKER_FAILURES`` the breaker
opens for the cooldown period and directory calls are refused without
touching the network. Any answer from the registry closes it again.
"""

import logging

import requests
from django.conf import settings
from django.core.cache import cache

logger = logging.getLogger("electoral.directory")

OPEN_KEY = "electoral:directory:breaker:open"
FAILURES_KEY = "electoral:directory:breaker:failures"

# SSLError is a ConnectionError; socket.timeout is TimeoutError.
AVAILABILITY_ERRORS = (requests.exceptions.Timeout, requests.exceptions.ConnectionError, TimeoutError)


def is_availability_error(exc: BaseException) -> bool:
    return isinstance(exc, AVAILABILITY_ERRORS)


def is_open() -> bool:
    return bool(cache.get(OPEN_KEY))


def record_failure() -> bool:
    """Count one availability failure. Returns True if it opened the breaker."""
    cooldown = settings.ELECTORAL_DIRECTORY_CIRCUIT_BREAKER_COOLDOWN_SECONDS
    cache.add(FAILURES_KEY, 0, timeout=cooldown)
    try:
        failures = cache.incr(FAILURES_KEY)
    except ValueError:
        # The counter expired between add() and incr().
        failures = 1
        cache.set(FAILURES_KEY, failures, timeout=cooldown)

    if failures < settings.ELECTORAL_DIRECTORY_CIRCUIT_BREAKER_FAILURES:
        return False
    if not cache.add(OPEN_KEY, True, timeout=cooldown):
        return False

    logger.warning(
        "Directory circuit breaker opened failures=%d cooldown_seconds=%d",
        failures,
        cooldown,
        extra={"event": "electoral.directory.breaker.opened", "component": "directory"},
    )
    return True


def record_success() -> None:
    was_open = is_open()
    cache.delete_many([FAILURES_KEY, OPEN_KEY])
    if was_open:
        logger.info(
            "Directory circuit breaker closed",
            extra={"event": "electoral.directory.breaker.closed", "component": "directory"},
        )
