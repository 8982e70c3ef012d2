"""Electoral JSON views.

All public view functions are re-exported here so that ``electoral.urls``
can reference ``views_electoral.<view_name>``.
"""

from electoral.views_electoral.authority import (
    authority_active,
    authority_appoint_permanent,
    authority_appoint_provisional,
    authority_dissolve_provisional,
)
from electoral.views_electoral.ballot_verify import ballot_verify
from electoral.views_electoral.elections import (
    election_cancel,
    election_certify,
    election_detail,
    election_open_voting,
    elections_collection,
    ladder_status,
)
from electoral.views_electoral.session import csrf_failure, csrf_token
from electoral.views_electoral.vote import ballot_cast, candidacy_register

__all__ = [
    "authority_active",
    "authority_appoint_permanent",
    "authority_appoint_provisional",
    "authority_dissolve_provisional",
    "ballot_cast",
    "ballot_verify",
    "candidacy_register",
    "csrf_failure",
    "csrf_token",
    "election_cancel",
    "election_certify",
    "election_detail",
    "election_open_voting",
    "elections_collection",
    "ladder_status",
]
