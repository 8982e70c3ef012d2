"""Identity and hierarchy facts supplied by services outside this project.

The electoral engine only consumes facts: whether a principal is a verified
legal subject, whether it belongs to a scope at a given rank, and who leads a
scope. ``settings.ELECTORAL_DIRECTORY_BACKEND`` names the class that answers
those questions.
"""

from dataclasses import dataclass
from typing import Protocol

from django.conf import settings
from django.utils.module_loading import import_string


@dataclass(frozen=True)
class IdentityFacts:
    is_verified: bool
    is_legal_subject: bool

    @property
    def may_hold_office(self) -> bool:
        return self.is_verified and self.is_legal_subject


UNKNOWN_PRINCIPAL = IdentityFacts(is_verified=False, is_legal_subject=False)


class Directory(Protocol):
    def identity_facts(self, principal_id: str) -> IdentityFacts: ...

    def is_scope_member(self, principal_id: str, *, scope_id: str, rank: str) -> bool: ...

    def scope_leaders(self, *, scope_id: str, rank: str, branch: str) -> list[str]: ...


def get_directory() -> Directory:
    backend = import_string(settings.ELECTORAL_DIRECTORY_BACKEND)
    return backend()


__all__ = [
    "Directory",
    "IdentityFacts",
    "UNKNOWN_PRINCIPAL",
    "get_directory",
]
