from __future__ import annotations

import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="ElectoralAuthority",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "kind",
                    models.CharField(
                        choices=[("provisional", "Provisional"), ("permanent", "Permanent")],
                        max_length=16,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[("active", "Active"), ("dissolved", "Dissolved")],
                        default="active",
                        max_length=16,
                    ),
                ),
                ("appointed_by", models.CharField(max_length=255)),
                ("mandate", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("dissolved_at", models.DateTimeField(blank=True, null=True)),
            ],
            options={
                "verbose_name_plural": "Electoral authorities",
                "ordering": ("-created_at", "-id"),
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("status", "active")),
                        fields=("kind",),
                        name="uniq_authority_active_kind",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Election",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "from_rank",
                    models.CharField(
                        choices=[
                            ("family", "Family"),
                            ("arban", "Arban"),
                            ("zun", "Zun"),
                            ("myangan", "Myangan"),
                            ("tumen", "Tumen"),
                            ("republic", "Republic"),
                            ("confederation", "Confederation"),
                        ],
                        max_length=16,
                    ),
                ),
                (
                    "to_rank",
                    models.CharField(
                        choices=[
                            ("family", "Family"),
                            ("arban", "Arban"),
                            ("zun", "Zun"),
                            ("myangan", "Myangan"),
                            ("tumen", "Tumen"),
                            ("republic", "Republic"),
                            ("confederation", "Confederation"),
                        ],
                        max_length=16,
                    ),
                ),
                (
                    "branch",
                    models.CharField(
                        choices=[
                            ("executive", "Executive"),
                            ("legislative", "Legislative"),
                            ("judicial", "Judicial"),
                            ("banking", "Banking"),
                        ],
                        max_length=16,
                    ),
                ),
                ("scope_id", models.CharField(db_index=True, max_length=255)),
                ("scope_name", models.CharField(blank=True, default="", max_length=255)),
                ("title", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True, default="")),
                ("created_by", models.CharField(max_length=255)),
                ("nomination_deadline", models.DateTimeField()),
                ("voting_start", models.DateTimeField()),
                ("voting_end", models.DateTimeField()),
                (
                    "seat_count",
                    models.PositiveSmallIntegerField(
                        default=1,
                        validators=[django.core.validators.MinValueValidator(1)],
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("nomination", "Nomination"),
                            ("voting", "Voting"),
                            ("certified", "Certified"),
                            ("cancelled", "Cancelled"),
                        ],
                        default="nomination",
                        max_length=16,
                    ),
                ),
                ("total_votes", models.PositiveIntegerField(blank=True, null=True)),
                ("certified_at", models.DateTimeField(blank=True, null=True)),
                ("result_fingerprint", models.CharField(blank=True, default="", max_length=64)),
                ("winner_ids", models.JSONField(blank=True, default=list)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ("-voting_start", "id"),
                "indexes": [
                    models.Index(fields=["scope_id", "from_rank", "branch"], name="election_scope_rung"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(
                            ("nomination_deadline__lt", models.F("voting_start")),
                            ("voting_start__lt", models.F("voting_end")),
                        ),
                        name="election_window_ordered",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("seat_count__gte", 1)),
                        name="election_seat_count_positive",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="AuthorityMember",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("principal_id", models.CharField(db_index=True, max_length=255)),
                (
                    "seat_role",
                    models.CharField(
                        choices=[("chair", "Chair"), ("member", "Member")],
                        default="member",
                        max_length=16,
                    ),
                ),
                (
                    "authority",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="members",
                        to="electoral.electoralauthority",
                    ),
                ),
            ],
            options={
                "ordering": ("authority", "id"),
                "constraints": [
                    models.UniqueConstraint(
                        fields=("authority", "principal_id"),
                        name="uniq_authoritymember_authority_principal",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Candidacy",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("candidate_id", models.CharField(max_length=255)),
                ("platform", models.TextField(blank=True, default="")),
                ("vote_count", models.PositiveIntegerField(default=0)),
                (
                    "source",
                    models.CharField(
                        choices=[("self", "Self-registered"), ("discovered", "Discovered from hierarchy")],
                        default="self",
                        max_length=16,
                    ),
                ),
                ("registered_at", models.DateTimeField(auto_now_add=True)),
                (
                    "election",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="candidacies",
                        to="electoral.election",
                    ),
                ),
            ],
            options={
                "verbose_name_plural": "Candidacies",
                "ordering": ("id",),
                "constraints": [
                    models.UniqueConstraint(
                        fields=("election", "candidate_id"),
                        name="uniq_candidacy_election_candidate",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Ballot",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("voter_id", models.CharField(max_length=255)),
                ("candidate_id", models.CharField(max_length=255)),
                ("leaf_fingerprint", models.CharField(max_length=64, unique=True)),
                ("cast_at", models.DateTimeField()),
                (
                    "candidacy",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="ballots",
                        to="electoral.candidacy",
                    ),
                ),
                (
                    "election",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="ballots",
                        to="electoral.election",
                    ),
                ),
            ],
            options={
                "ordering": ("cast_at", "id"),
                "indexes": [
                    models.Index(fields=["election", "cast_at"], name="ballot_el_at"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("election", "voter_id"),
                        name="uniq_ballot_election_voter",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="AuditLogEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("timestamp", models.DateTimeField(auto_now_add=True)),
                ("event_type", models.CharField(max_length=64)),
                ("payload", models.JSONField(blank=True, default=dict)),
                ("is_public", models.BooleanField(default=False)),
                (
                    "authority",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="audit_log",
                        to="electoral.electoralauthority",
                    ),
                ),
                (
                    "election",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="audit_log",
                        to="electoral.election",
                    ),
                ),
            ],
            options={
                "verbose_name_plural": "Audit log entries",
                "ordering": ("timestamp", "id"),
                "indexes": [
                    models.Index(fields=["election", "timestamp"], name="audit_el_ts"),
                    models.Index(fields=["election", "is_public"], name="audit_el_pub"),
                ],
            },
        ),
    ]
