from django.urls import path

from electoral import views_electoral, views_health

urlpatterns = [
    path("cik", views_electoral.authority_active, name="cik-authority"),
    path("cik/csrf", views_electoral.csrf_token, name="cik-csrf"),
    path(
        "cik/provisional/appoint",
        views_electoral.authority_appoint_provisional,
        name="cik-provisional-appoint",
    ),
    path(
        "cik/provisional/dissolve",
        views_electoral.authority_dissolve_provisional,
        name="cik-provisional-dissolve",
    ),
    path(
        "cik/permanent/appoint",
        views_electoral.authority_appoint_permanent,
        name="cik-permanent-appoint",
    ),
    path("cik/elections", views_electoral.elections_collection, name="cik-elections"),
    path("cik/elections/<int:election_id>", views_electoral.election_detail, name="cik-election-detail"),
    path(
        "cik/elections/<int:election_id>/open-voting",
        views_electoral.election_open_voting,
        name="cik-election-open-voting",
    ),
    path(
        "cik/elections/<int:election_id>/cancel",
        views_electoral.election_cancel,
        name="cik-election-cancel",
    ),
    path(
        "cik/elections/<int:election_id>/certify",
        views_electoral.election_certify,
        name="cik-election-certify",
    ),
    path("cik/ladder/<str:scope_id>", views_electoral.ladder_status, name="cik-ladder"),
    path("cik/candidates", views_electoral.candidacy_register, name="cik-candidates"),
    path("cik/vote", views_electoral.ballot_cast, name="cik-vote"),
    path("cik/ballots/verify", views_electoral.ballot_verify, name="cik-ballot-verify"),

    path("healthz", views_health.healthz, name="healthz"),
    path("readyz", views_health.readyz, name="readyz"),
]
