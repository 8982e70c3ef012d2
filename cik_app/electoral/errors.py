"""Typed failures raised by the electoral services.

Services never build HTTP responses; every failure carries a stable ``kind``
and the status code the API boundary should answer with.
"""

import enum


class ErrorKind(enum.StrEnum):
    forbidden = "Forbidden"
    not_found = "NotFound"
    invalid_state = "InvalidState"
    already_certified = "AlreadyCertified"
    invalid_argument = "InvalidArgument"
    already_voted = "AlreadyVoted"
    outside_window = "OutsideWindow"
    unavailable = "ServiceUnavailable"


class ElectoralError(Exception):
    kind: ErrorKind = ErrorKind.invalid_state
    status_code: int = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ForbiddenError(ElectoralError):
    kind = ErrorKind.forbidden
    status_code = 403


class NotFoundError(ElectoralError):
    kind = ErrorKind.not_found
    status_code = 404


class InvalidStateError(ElectoralError):
    kind = ErrorKind.invalid_state
    status_code = 409


class AlreadyCertifiedError(InvalidStateError):
    kind = ErrorKind.already_certified


class InvalidArgumentError(ElectoralError):
    kind = ErrorKind.invalid_argument
    status_code = 400


class AlreadyVotedError(ElectoralError):
    kind = ErrorKind.already_voted
    status_code = 409


class OutsideWindowError(ElectoralError):
    kind = ErrorKind.outside_window
    status_code = 409


class ServiceUnavailableError(ElectoralError):
    kind = ErrorKind.unavailable
    status_code = 503


__all__ = [
    "AlreadyCertifiedError",
    "AlreadyVotedError",
    "ElectoralError",
    "ErrorKind",
    "ForbiddenError",
    "InvalidArgumentError",
    "InvalidStateError",
    "NotFoundError",
    "OutsideWindowError",
    "ServiceUnavailableError",
]
