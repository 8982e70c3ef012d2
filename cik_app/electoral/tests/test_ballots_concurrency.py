from __future__ import annotations

import threading
from unittest import skipUnless

from django.db import connection
from django.test import TransactionTestCase, override_settings

from electoral.ballots import cast_ballot
from electoral.errors import AlreadyVotedError
from electoral.models import AuditLogEntry, Ballot, Candidacy
from electoral.tests.fakes import FAKE_DIRECTORY_BACKEND, FakeDirectory
from electoral.tests.utils_test_data import add_candidates, add_voters, make_election

CASTERS = 4


@skipUnless(connection.vendor == "postgresql", "row locks and real concurrency need PostgreSQL")
@override_settings(ELECTORAL_DIRECTORY_BACKEND=FAKE_DIRECTORY_BACKEND)
class ConcurrentCastTests(TransactionTestCase):
    def setUp(self) -> None:
        FakeDirectory.reset()
        self.election = make_election()
        add_candidates(self.election, "alice", "bob")
        add_voters(self.election, "v1", "v2", "v3")

    def _cast_in_parallel(self, casts: list[tuple[str, str]]) -> tuple[list[Ballot], list[Exception]]:
        barrier = threading.Barrier(len(casts))
        ballots: list[Ballot] = []
        errors: list[Exception] = []
        lock = threading.Lock()

        def cast(voter_id: str, candidate_id: str) -> None:
            try:
                barrier.wait()
                ballot = cast_ballot(voter_id=voter_id, election_id=self.election.pk, candidate_id=candidate_id)
            except Exception as exc:
                with lock:
                    errors.append(exc)
            else:
                with lock:
                    ballots.append(ballot)
            finally:
                connection.close()

        threads = [threading.Thread(target=cast, args=c) for c in casts]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=30)
        return ballots, errors

    def test_same_voter_racing_from_many_connections_votes_once(self) -> None:
        casts = [("v1", "alice" if i % 2 else "bob") for i in range(CASTERS)]

        ballots, errors = self._cast_in_parallel(casts)

        self.assertEqual(len(ballots), 1)
        self.assertEqual(len(errors), CASTERS - 1)
        for exc in errors:
            self.assertIsInstance(exc, AlreadyVotedError)

        self.assertEqual(Ballot.objects.filter(election=self.election, voter_id="v1").count(), 1)
        counts = dict(Candidacy.objects.filter(election=self.election).values_list("candidate_id", "vote_count"))
        self.assertEqual(sum(counts.values()), 1)
        self.assertEqual(counts[ballots[0].candidate_id], 1)
        self.assertEqual(
            AuditLogEntry.objects.filter(election=self.election, event_type="ballot_cast").count(),
            1,
        )

    def test_different_voters_in_parallel_are_all_counted(self) -> None:
        ballots, errors = self._cast_in_parallel([("v1", "alice"), ("v2", "alice"), ("v3", "bob")])

        self.assertEqual(errors, [])
        self.assertEqual(len(ballots), 3)
        counts = dict(Candidacy.objects.filter(election=self.election).values_list("candidate_id", "vote_count"))
        self.assertEqual(counts, {"alice": 2, "bob": 1})
