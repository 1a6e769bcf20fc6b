import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("accounts", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="CompanySequence",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=100)),
                ("next_value", models.BigIntegerField(default=1)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "company",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="sequences",
                        to="accounts.company",
                    ),
                ),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(fields=("company", "name"), name="uniq_company_sequence_name"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Account",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("public_id", models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                ("code", models.CharField(max_length=20)),
                ("name", models.CharField(max_length=255)),
                (
                    "account_type",
                    models.CharField(
                        choices=[
                            ("ASSET", "Asset"),
                            ("RECEIVABLE", "Accounts Receivable"),
                            ("CONTRA_ASSET", "Contra Asset"),
                            ("LIABILITY", "Liability"),
                            ("PAYABLE", "Accounts Payable"),
                            ("CONTRA_LIABILITY", "Contra Liability"),
                            ("EQUITY", "Equity"),
                            ("REVENUE", "Revenue"),
                            ("CONTRA_REVENUE", "Contra Revenue"),
                            ("EXPENSE", "Expense"),
                            ("CONTRA_EXPENSE", "Contra Expense"),
                            ("CONTRA_EQUITY", "Contra Equity"),
                            ("MEMO", "Memo/Statistical"),
                        ],
                        max_length=20,
                    ),
                ),
                (
                    "normal_balance",
                    models.CharField(
                        choices=[("DEBIT", "Debit"), ("CREDIT", "Credit"), ("NONE", "None")],
                        editable=False,
                        max_length=10,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[("ACTIVE", "Active"), ("INACTIVE", "Inactive")],
                        default="ACTIVE",
                        max_length=20,
                    ),
                ),
                (
                    "role",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Posting role used by document commands (e.g. 'receivable')",
                        max_length=30,
                    ),
                ),
                (
                    "is_header",
                    models.BooleanField(
                        default=False,
                        help_text="Header accounts group other accounts and cannot receive postings",
                    ),
                ),
                ("description", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "company",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="accounts",
                        to="accounts.company",
                    ),
                ),
                (
                    "parent",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="children",
                        to="accounting.account",
                    ),
                ),
            ],
            options={
                "ordering": ["code"],
                "indexes": [
                    models.Index(fields=["company", "account_type"], name="idx_account_type"),
                    models.Index(fields=["company", "role"], name="idx_account_role"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("company", "code"), name="uniq_account_code_per_company"),
                ],
            },
        ),
        migrations.CreateModel(
            name="JournalEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("public_id", models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                ("entry_number", models.CharField(blank=True, default="", max_length=50)),
                ("date", models.DateField()),
                ("period", models.PositiveSmallIntegerField(blank=True, null=True)),
                ("memo", models.CharField(blank=True, default="", max_length=255)),
                ("currency", models.CharField(default="USD", max_length=3)),
                (
                    "kind",
                    models.CharField(
                        choices=[
                            ("NORMAL", "Normal"),
                            ("REVERSAL", "Reversal"),
                            ("OPENING", "Opening Balance"),
                            ("CLOSING", "Closing Entry"),
                            ("ADJUSTMENT", "Adjustment"),
                        ],
                        default="NORMAL",
                        max_length=20,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("INCOMPLETE", "Incomplete"),
                            ("DRAFT", "Draft"),
                            ("POSTED", "Posted"),
                            ("REVERSED", "Reversed"),
                        ],
                        default="INCOMPLETE",
                        max_length=12,
                    ),
                ),
                (
                    "source_module",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Module that created this entry (e.g. 'sales', 'intercompany')",
                        max_length=50,
                    ),
                ),
                (
                    "source_document",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Number of the source document (e.g. invoice number)",
                        max_length=100,
                    ),
                ),
                ("posted_at", models.DateTimeField(blank=True, null=True)),
                ("reversed_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "company",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="journal_entries",
                        to="accounts.company",
                    ),
                ),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="created_journal_entries",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "posted_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="posted_journal_entries",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "reversed_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="reversed_journal_entries",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "reverses_entry",
                    models.OneToOneField(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="reversal_entry",
                        to="accounting.journalentry",
                    ),
                ),
            ],
            options={
                "ordering": ["-date", "-id"],
                "indexes": [
                    models.Index(fields=["company", "date", "id"], name="idx_je_company_date"),
                    models.Index(fields=["company", "status"], name="idx_je_company_status"),
                    models.Index(fields=["company", "source_module"], name="idx_je_company_source"),
                ],
            },
        ),
        migrations.CreateModel(
            name="JournalLine",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("public_id", models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                ("line_no", models.PositiveIntegerField()),
                ("description", models.CharField(blank=True, default="", max_length=255)),
                ("debit", models.DecimalField(decimal_places=2, default=0, max_digits=18)),
                ("credit", models.DecimalField(decimal_places=2, default=0, max_digits=18)),
                (
                    "account",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="journal_lines",
                        to="accounting.account",
                    ),
                ),
                (
                    "company",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="journal_lines",
                        to="accounts.company",
                    ),
                ),
                (
                    "entry",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="lines",
                        to="accounting.journalentry",
                    ),
                ),
            ],
            options={
                "ordering": ["entry", "line_no"],
                "indexes": [
                    models.Index(fields=["company", "entry"], name="idx_jl_company_entry"),
                    models.Index(fields=["company", "account"], name="idx_jl_company_account"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        check=~(models.Q(debit__gt=0) & models.Q(credit__gt=0)),
                        name="chk_line_not_both_debit_credit",
                    ),
                    models.CheckConstraint(
                        check=~(models.Q(debit__exact=0) & models.Q(credit__exact=0)),
                        name="chk_line_not_both_zero",
                    ),
                    models.CheckConstraint(
                        check=models.Q(debit__gte=0) & models.Q(credit__gte=0),
                        name="chk_line_non_negative",
                    ),
                ],
                "unique_together": {("entry", "line_no")},
            },
        ),
    ]
