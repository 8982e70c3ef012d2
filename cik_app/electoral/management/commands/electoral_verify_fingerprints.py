import logging
from typing_extensions import override

from django.core.management.base import BaseCommand, CommandError

from electoral.ballots import verify_leaf
from electoral.certification import verify_result
from electoral.models import Ballot, Election

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = (
        "Recompute the leaf fingerprint of every ballot in an election and, "
        "once certified, its result fingerprint. Exits non-zero on any mismatch."
    )

    @override
    def add_arguments(self, parser) -> None:
        parser.add_argument("election_id", type=int)

    @override
    def handle(self, *args, **options) -> None:
        election_id: int = options["election_id"]
        election = Election.objects.filter(pk=election_id).first()
        if election is None:
            raise CommandError(f"Election {election_id} not found.")

        checked = 0
        mismatched: list[int] = []
        for ballot in Ballot.objects.for_election(election=election).iterator():
            checked += 1
            if not verify_leaf(ballot):
                mismatched.append(ballot.pk)

        if mismatched:
            logger.error(
                "Ballot fingerprint mismatch election_id=%s ballot_ids=%s",
                election.pk,
                mismatched,
            )
            raise CommandError(
                f"{len(mismatched)} of {checked} ballot fingerprints do not match: "
                + ", ".join(str(pk) for pk in mismatched)
            )
        self.stdout.write(f"Ballots: {checked} fingerprints verified.")

        if election.status != Election.Status.certified:
            self.stdout.write("Result: election not certified yet, skipped.")
            return

        if not verify_result(election):
            logger.error("Result fingerprint mismatch election_id=%s", election.pk)
            raise CommandError("Result fingerprint does not match the stored result.")
        self.stdout.write(self.style.SUCCESS(f"Result: fingerprint {election.result_fingerprint} verified."))
