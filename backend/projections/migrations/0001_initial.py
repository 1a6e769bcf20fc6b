from decimal import Decimal

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("accounts", "0001_initial"),
        ("accounting", "0001_initial"),
        ("events", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="AccountBalance",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "balance",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        help_text="Current balance (positive = normal direction)",
                        max_digits=18,
                    ),
                ),
                (
                    "debit_total",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        help_text="Sum of all debits ever posted to this account",
                        max_digits=18,
                    ),
                ),
                (
                    "credit_total",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        help_text="Sum of all credits ever posted to this account",
                        max_digits=18,
                    ),
                ),
                (
                    "entry_count",
                    models.PositiveIntegerField(default=0, help_text="Number of journal entries affecting this account"),
                ),
                (
                    "last_entry_date",
                    models.DateField(blank=True, help_text="Date of most recent journal entry", null=True),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "account",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="projected_balance",
                        to="accounting.account",
                    ),
                ),
                (
                    "company",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="account_balances",
                        to="accounts.company",
                    ),
                ),
                (
                    "last_event",
                    models.ForeignKey(
                        blank=True,
                        help_text="Last event that updated this balance",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to="events.businessevent",
                    ),
                ),
            ],
            options={
                "verbose_name": "Account Balance",
                "verbose_name_plural": "Account Balances",
                "indexes": [
                    models.Index(fields=["company", "account"], name="idx_balance_company_account"),
                    models.Index(fields=["company", "balance"], name="idx_balance_company_balance"),
                ],
            },
        ),
        migrations.CreateModel(
            name="FiscalPeriod",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("fiscal_year", models.PositiveIntegerField()),
                ("period", models.PositiveSmallIntegerField()),
                ("start_date", models.DateField()),
                ("end_date", models.DateField()),
                (
                    "status",
                    models.CharField(
                        choices=[("OPEN", "Open"), ("CLOSED", "Closed")],
                        default="OPEN",
                        max_length=10,
                    ),
                ),
                (
                    "company",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="fiscal_periods",
                        to="accounts.company",
                    ),
                ),
            ],
            options={
                "ordering": ["fiscal_year", "period"],
                "indexes": [
                    models.Index(fields=["company", "fiscal_year", "period"], name="idx_period_company_year"),
                    models.Index(fields=["company", "start_date", "end_date"], name="idx_period_company_dates"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("company", "fiscal_year", "period"), name="uniq_fiscal_period"),
                ],
            },
        ),
        migrations.CreateModel(
            name="FiscalPeriodConfig",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("fiscal_year", models.PositiveIntegerField()),
                ("period_count", models.PositiveSmallIntegerField(default=12)),
                (
                    "company",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="fiscal_period_configs",
                        to="accounts.company",
                    ),
                ),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(fields=("company", "fiscal_year"), name="uniq_fiscal_period_config"),
                ],
            },
        ),
        migrations.CreateModel(
            name="ProjectionAppliedEvent",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("projection_name", models.CharField(max_length=100)),
                ("applied_at", models.DateTimeField(auto_now_add=True)),
                (
                    "company",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="applied_projection_events",
                        to="accounts.company",
                    ),
                ),
                (
                    "event",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="+",
                        to="events.businessevent",
                    ),
                ),
            ],
            options={
                "indexes": [
                    models.Index(fields=["company", "projection_name"], name="idx_applied_company_proj"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("company", "projection_name", "event"),
                        name="uniq_projection_event",
                    ),
                ],
            },
        ),
    ]
