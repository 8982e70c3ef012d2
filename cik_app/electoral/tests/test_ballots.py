from __future__ import annotations

from unittest.mock import patch

from django.db.models import Sum
from django.test import TestCase, override_settings

from electoral.ballots import (
    ballot_count,
    cast_ballot,
    find_ballot_by_fingerprint,
    has_voted,
    tally,
    verify_leaf,
)
from electoral.errors import (
    AlreadyVotedError,
    ForbiddenError,
    InvalidArgumentError,
    InvalidStateError,
    NotFoundError,
    OutsideWindowError,
    ServiceUnavailableError,
)
from electoral.fingerprints import leaf_fingerprint
from electoral.models import AuditLogEntry, Ballot, Candidacy, Election
from electoral.tests.fakes import FAKE_DIRECTORY_BACKEND, FakeDirectory
from electoral.tests.utils_test_data import add_candidates, add_voters, make_election


@override_settings(ELECTORAL_DIRECTORY_BACKEND=FAKE_DIRECTORY_BACKEND)
class CastBallotTests(TestCase):
    def setUp(self) -> None:
        FakeDirectory.reset()
        self.election = make_election()
        self.alice, self.bob = add_candidates(self.election, "alice", "bob")
        add_voters(self.election, "v1", "v2", "v3", "v4", "v5")

    def test_five_voters_produce_a_consistent_tally(self) -> None:
        for voter_id, candidate_id in (("v1", "alice"), ("v2", "alice"), ("v3", "alice"), ("v4", "bob"), ("v5", "bob")):
            cast_ballot(voter_id=voter_id, election_id=self.election.pk, candidate_id=candidate_id)

        self.assertEqual(
            [(line.candidate_id, line.vote_count) for line in tally(election=self.election)],
            [("alice", 3), ("bob", 2)],
        )
        self.assertEqual(ballot_count(election=self.election), 5)
        counted = Candidacy.objects.for_election(election=self.election).aggregate(total=Sum("vote_count"))["total"]
        self.assertEqual(counted, 5)

    def test_ballot_carries_a_recomputable_fingerprint(self) -> None:
        ballot = cast_ballot(voter_id="v1", election_id=self.election.pk, candidate_id="alice")

        self.assertEqual(ballot.cast_at.microsecond % 1000, 0)
        self.assertEqual(
            ballot.leaf_fingerprint,
            leaf_fingerprint(
                election_id=self.election.pk,
                voter_id="v1",
                candidate_id="alice",
                cast_at=ballot.cast_at,
            ),
        )
        self.assertTrue(verify_leaf(ballot))
        self.assertTrue(has_voted(election=self.election, voter_id="v1"))
        self.assertFalse(has_voted(election=self.election, voter_id="v2"))

        audit = AuditLogEntry.objects.get(election=self.election, event_type="ballot_cast")
        self.assertFalse(audit.is_public)

    def test_second_ballot_is_rejected(self) -> None:
        cast_ballot(voter_id="v1", election_id=self.election.pk, candidate_id="alice")

        with self.assertRaises(AlreadyVotedError):
            cast_ballot(voter_id="v1", election_id=self.election.pk, candidate_id="bob")

        self.alice.refresh_from_db()
        self.bob.refresh_from_db()
        self.assertEqual((self.alice.vote_count, self.bob.vote_count), (1, 0))

    def test_unique_constraint_is_the_last_word_on_double_voting(self) -> None:
        cast_ballot(voter_id="v1", election_id=self.election.pk, candidate_id="alice")

        # Simulate a concurrent cast that passed every read check.
        with (
            patch("electoral.ballots.has_voted", return_value=False),
            patch("electoral.ballots._existing_ballot", return_value=None),
        ):
            with self.assertRaises(AlreadyVotedError):
                cast_ballot(voter_id="v1", election_id=self.election.pk, candidate_id="bob")

        self.assertEqual(Ballot.objects.for_voter(election=self.election, voter_id="v1").count(), 1)
        self.bob.refresh_from_db()
        self.assertEqual(self.bob.vote_count, 0)

        conflict = AuditLogEntry.objects.get(election=self.election, event_type="ballot_cast_conflict")
        self.assertFalse(conflict.is_public)
        self.assertEqual(conflict.payload, {"attempt": 1, "duplicate": True})

    def test_voter_outside_the_constituency_is_forbidden(self) -> None:
        FakeDirectory.add_citizen("outsider", scope_id="arban-8", rank="arban")
        with self.assertRaises(ForbiddenError):
            cast_ballot(voter_id="outsider", election_id=self.election.pk, candidate_id="alice")
        self.assertEqual(ballot_count(election=self.election), 0)

    def test_directory_outage_blocks_casting(self) -> None:
        FakeDirectory.unavailable = True
        with self.assertRaises(ServiceUnavailableError):
            cast_ballot(voter_id="v1", election_id=self.election.pk, candidate_id="alice")

    def test_unknown_candidate_and_election(self) -> None:
        with self.assertRaises(NotFoundError):
            cast_ballot(voter_id="v1", election_id=self.election.pk, candidate_id="carol")
        with self.assertRaises(NotFoundError):
            cast_ballot(voter_id="v1", election_id=999999, candidate_id="alice")
        with self.assertRaises(InvalidArgumentError):
            cast_ballot(voter_id="v1", election_id=self.election.pk, candidate_id=" ")

    def test_ballots_are_final(self) -> None:
        ballot = cast_ballot(voter_id="v1", election_id=self.election.pk, candidate_id="alice")

        ballot.candidate_id = "bob"
        with self.assertRaises(ValueError):
            ballot.save()
        with self.assertRaises(ValueError):
            ballot.delete()


@override_settings(ELECTORAL_DIRECTORY_BACKEND=FAKE_DIRECTORY_BACKEND)
class CastBallotPhaseTests(TestCase):
    def setUp(self) -> None:
        FakeDirectory.reset()

    def test_casting_outside_the_voting_phase(self) -> None:
        for status in (Election.Status.nomination, Election.Status.certified, Election.Status.cancelled):
            election = make_election(status=status)
            add_candidates(election, "alice")
            add_voters(election, "v1")
            with self.subTest(status=status):
                with self.assertRaises(InvalidStateError):
                    cast_ballot(voter_id="v1", election_id=election.pk, candidate_id="alice")

    def test_casting_after_the_window_closed(self) -> None:
        election = make_election(voting_open=False)
        add_candidates(election, "alice")
        add_voters(election, "v1")

        with self.assertRaises(OutsideWindowError):
            cast_ballot(voter_id="v1", election_id=election.pk, candidate_id="alice")


class TallyOrderTests(TestCase):
    def test_ties_go_to_the_earliest_registration(self) -> None:
        election = make_election()
        first, second, third = add_candidates(election, "zed", "amy", "max")
        Candidacy.objects.filter(pk__in=[first.pk, second.pk]).update(vote_count=4)
        Candidacy.objects.filter(pk=third.pk).update(vote_count=5)

        self.assertEqual([line.candidate_id for line in tally(election=election)], ["max", "zed", "amy"])


@override_settings(ELECTORAL_DIRECTORY_BACKEND=FAKE_DIRECTORY_BACKEND)
class FindBallotTests(TestCase):
    def setUp(self) -> None:
        FakeDirectory.reset()

    def test_lookup_by_fingerprint(self) -> None:
        election = make_election()
        add_candidates(election, "alice")
        add_voters(election, "v1")
        ballot = cast_ballot(voter_id="v1", election_id=election.pk, candidate_id="alice")

        self.assertEqual(find_ballot_by_fingerprint(ballot.leaf_fingerprint.upper()).pk, ballot.pk)
        self.assertIsNone(find_ballot_by_fingerprint("0" * 64))

    def test_malformed_fingerprint(self) -> None:
        for value in ("", "abc", "g" * 64):
            with self.subTest(value=value):
                with self.assertRaises(InvalidArgumentError):
                    find_ballot_by_fingerprint(value)
