from __future__ import annotations

import datetime
import json
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.test import Client, TestCase, override_settings
from django.utils import timezone

from electoral.models import Election
from electoral.tests.fakes import FAKE_DIRECTORY_BACKEND, FakeDirectory
from electoral.tests.utils_test_data import (
    COMMISSIONERS,
    FOUNDER,
    SCOPE_ID,
    add_candidates,
    add_voters,
    make_election,
    seat_provisional_authority,
)


@override_settings(ELECTORAL_BOOTSTRAP_PRINCIPAL_ID=FOUNDER, ELECTORAL_DIRECTORY_BACKEND=FAKE_DIRECTORY_BACKEND)
class ElectoralViewsTests(TestCase):
    def setUp(self) -> None:
        FakeDirectory.reset()

    def _login(self, username: str) -> None:
        user, _ = get_user_model().objects.get_or_create(username=username)
        self.client.force_login(user)

    def _post(self, url: str, payload: dict[str, object] | None = None):
        return self.client.post(url, data=json.dumps(payload or {}), content_type="application/json")

    def test_mutations_require_a_principal(self) -> None:
        resp = self._post("/cik/vote", {"election_id": 1, "candidate_id": "alice"})

        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.json(), {"ok": False, "kind": "Forbidden", "error": "Authentication required."})

    def test_session_clients_complete_the_csrf_handshake(self) -> None:
        client = Client(enforce_csrf_checks=True)
        user, _ = get_user_model().objects.get_or_create(username=FOUNDER)
        client.force_login(user)
        body = json.dumps({"member_ids": COMMISSIONERS})

        resp = client.post("/cik/provisional/appoint", data=body, content_type="application/json")
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.json()["kind"], "Forbidden")
        self.assertTrue(resp.json()["error"].startswith("CSRF verification failed"))

        resp = client.get("/cik/csrf")
        self.assertEqual(resp.status_code, 200)
        token = resp.json()["csrf_token"]
        self.assertIn("csrftoken", resp.cookies)

        resp = client.post(
            "/cik/provisional/appoint",
            data=body,
            content_type="application/json",
            HTTP_X_CSRFTOKEN=token,
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["authority"]["kind"], "provisional")

    def test_founder_appoints_and_public_reads_the_authority(self) -> None:
        self._login(FOUNDER)
        resp = self._post("/cik/provisional/appoint", {"member_ids": COMMISSIONERS})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["authority"]["kind"], "provisional")

        self.client.logout()
        resp = self.client.get("/cik")
        self.assertEqual(resp.status_code, 200)
        members = resp.json()["authority"]["members"]
        self.assertEqual([m["principal_id"] for m in members], COMMISSIONERS)
        self.assertEqual(members[0]["seat_role"], "chair")

    def test_appointment_errors_are_typed(self) -> None:
        self._login("citizen")
        resp = self._post("/cik/provisional/appoint", {"member_ids": COMMISSIONERS})
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.json()["kind"], "Forbidden")

        self._login(FOUNDER)
        resp = self._post("/cik/provisional/appoint", {"member_ids": "cik-chair"})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["kind"], "InvalidArgument")

        resp = self._post("/cik/provisional/dissolve")
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json()["kind"], "NotFound")

    def test_malformed_body_is_invalid_argument(self) -> None:
        self._login(FOUNDER)
        resp = self.client.post("/cik/provisional/appoint", data="{not json", content_type="application/json")

        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["kind"], "InvalidArgument")

    def test_create_election(self) -> None:
        seat_provisional_authority()
        self._login(COMMISSIONERS[0])
        now = timezone.now()
        payload = {
            "from_rank": "arban",
            "to_rank": "zun",
            "branch": "judicial",
            "scope_id": SCOPE_ID,
            "nomination_deadline": (now + datetime.timedelta(days=1)).isoformat(),
            "voting_start": (now + datetime.timedelta(days=2)).isoformat(),
            "voting_end": (now + datetime.timedelta(days=3)).isoformat(),
        }

        resp = self._post("/cik/elections", payload)

        self.assertEqual(resp.status_code, 201)
        election = resp.json()["election"]
        self.assertEqual(election["status"], "nomination")
        self.assertEqual(election["branch_label"], "Judicial")
        self.assertEqual(election["ballot_count"], 0)
        self.assertEqual(election["candidacies"], [])
        self.assertIsNone(election["certification"])

        resp = self._post("/cik/elections", {**payload, "to_rank": "tumen"})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["kind"], "InvalidArgument")

        resp = self._post("/cik/elections", {**payload, "voting_end": "next tuesday"})
        self.assertEqual(resp.status_code, 400)

    def test_list_and_filter_elections(self) -> None:
        voting = make_election(branch="banking")
        make_election(branch="executive", status=Election.Status.cancelled)

        resp = self.client.get("/cik/elections", {"branch": "banking"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual([e["id"] for e in resp.json()["elections"]], [voting.pk])

        resp = self.client.get("/cik/elections", {"status": "bogus"})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["kind"], "InvalidArgument")

    def test_register_candidacy(self) -> None:
        seat_provisional_authority()
        election = make_election(status=Election.Status.nomination)
        Election.objects.filter(pk=election.pk).update(
            nomination_deadline=timezone.now() + datetime.timedelta(hours=1),
            voting_start=timezone.now() + datetime.timedelta(hours=2),
        )
        FakeDirectory.add_citizen("alice", scope_id=SCOPE_ID, rank="arban")
        self._login("alice")

        resp = self._post("/cik/candidates", {"election_id": election.pk, "platform": "Wells"})

        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["candidacy"]["candidate_id"], "alice")
        self.assertEqual(resp.json()["candidacy"]["platform"], "Wells")

    def test_vote_then_verify_receipt(self) -> None:
        election = make_election()
        add_candidates(election, "alice")
        add_voters(election, "v1")
        self._login("v1")

        resp = self._post("/cik/vote", {"election_id": election.pk, "candidate_id": "alice"})
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertTrue(body["ok"])
        self.assertEqual(len(body["leaf_fingerprint"]), 64)
        self.assertTrue(body["cast_at"].endswith("Z"))

        resp = self._post("/cik/vote", {"election_id": election.pk, "candidate_id": "alice"})
        self.assertEqual(resp.status_code, 409)
        self.assertEqual(resp.json()["kind"], "AlreadyVoted")

        self.client.logout()
        resp = self.client.get("/cik/ballots/verify", {"fingerprint": body["leaf_fingerprint"]})
        self.assertEqual(resp.status_code, 200)
        receipt = resp.json()
        self.assertEqual(receipt["found"], True)
        self.assertEqual(receipt["election_id"], election.pk)
        self.assertTrue(receipt["fingerprint_matches"])
        self.assertNotIn("voter_id", receipt)
        self.assertNotIn("candidate_id", receipt)

        resp = self.client.get("/cik/ballots/verify", {"fingerprint": "f" * 64})
        self.assertEqual(resp.json(), {"found": False})

        resp = self.client.get("/cik/ballots/verify", {"fingerprint": "nope"})
        self.assertEqual(resp.status_code, 400)

    def test_camel_case_body_keys_are_accepted(self) -> None:
        election = make_election()
        add_candidates(election, "alice")
        add_voters(election, "v1")
        self._login("v1")

        resp = self._post("/cik/vote", {"electionId": election.pk, "candidateId": "alice"})

        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["election_id"], election.pk)

    def test_vote_outside_window(self) -> None:
        election = make_election(voting_open=False)
        add_candidates(election, "alice")
        add_voters(election, "v1")
        self._login("v1")

        resp = self._post("/cik/vote", {"election_id": election.pk, "candidate_id": "alice"})

        self.assertEqual(resp.status_code, 409)
        self.assertEqual(resp.json()["kind"], "OutsideWindow")

    def test_directory_outage_is_503(self) -> None:
        election = make_election()
        add_candidates(election, "alice")
        FakeDirectory.unavailable = True
        self._login("v1")

        resp = self._post("/cik/vote", {"election_id": election.pk, "candidate_id": "alice"})

        self.assertEqual(resp.status_code, 503)
        self.assertEqual(resp.json()["kind"], "ServiceUnavailable")

    def test_certify_and_read_the_result(self) -> None:
        seat_provisional_authority()
        election = make_election()
        add_candidates(election, "alice", "bob")
        add_voters(election, "v1", "v2")
        for voter_id, candidate_id in (("v1", "bob"), ("v2", "bob")):
            self._login(voter_id)
            self._post("/cik/vote", {"election_id": election.pk, "candidate_id": candidate_id})

        self._login(COMMISSIONERS[0])
        resp = self._post(f"/cik/elections/{election.pk}/certify")
        self.assertEqual(resp.status_code, 409)
        self.assertEqual(resp.json()["kind"], "InvalidState")

        with patch("django.utils.timezone.now", return_value=election.voting_end + datetime.timedelta(seconds=1)):
            resp = self._post(f"/cik/elections/{election.pk}/certify")
            self.assertEqual(resp.status_code, 200)
            self.assertEqual(resp.json()["winner_ids"], ["bob"])
            self.assertEqual(resp.json()["total_votes"], 2)

            resp = self._post(f"/cik/elections/{election.pk}/certify")
            self.assertEqual(resp.status_code, 409)
            self.assertEqual(resp.json()["kind"], "AlreadyCertified")

        resp = self.client.get(f"/cik/elections/{election.pk}")
        detail = resp.json()["election"]
        self.assertEqual(detail["status"], "certified")
        self.assertEqual(detail["ballot_count"], 2)
        self.assertEqual([c["candidate_id"] for c in detail["candidacies"]], ["bob", "alice"])
        self.assertEqual(detail["certification"]["winners"], [{"candidate_id": "bob", "vote_count": 2}])

    def test_open_voting_and_cancel(self) -> None:
        seat_provisional_authority()
        election = make_election(status=Election.Status.nomination)
        self._login(COMMISSIONERS[1])

        resp = self._post(f"/cik/elections/{election.pk}/open-voting")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["election"]["status"], "voting")

        resp = self._post(f"/cik/elections/{election.pk}/cancel", {"reason": "Recount ordered"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["election"]["status"], "cancelled")

        resp = self._post(f"/cik/elections/{election.pk}/open-voting")
        self.assertEqual(resp.status_code, 409)

    def test_election_detail_not_found(self) -> None:
        resp = self.client.get("/cik/elections/999999")
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json()["kind"], "NotFound")

    def test_ladder(self) -> None:
        election = make_election(branch="legislative")

        resp = self.client.get(f"/cik/ladder/{SCOPE_ID}")

        self.assertEqual(resp.status_code, 200)
        rows = {row["rung"]: row for row in resp.json()["ladder"]}
        self.assertEqual(rows["arban->zun"]["branches"]["legislative"]["id"], election.pk)
        self.assertIsNone(rows["arban->zun"]["branches"]["banking"])
        self.assertEqual(len(rows), 6)
