import uuid
from decimal import Decimal

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("accounts", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="IntercompanyTransaction",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("public_id", models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                ("reference", models.CharField(max_length=50)),
                ("transaction_date", models.DateField()),
                ("description", models.CharField(blank=True, default="", max_length=255)),
                ("amount", models.DecimalField(decimal_places=2, max_digits=18)),
                ("sales_order_public_id", models.UUIDField()),
                ("purchase_order_public_id", models.UUIDField()),
                ("invoice_public_id", models.UUIDField(blank=True, null=True)),
                ("bill_public_id", models.UUIDField(blank=True, null=True)),
                ("amount_invoiced", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=18)),
                ("amount_settled", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=18)),
                ("amount_adjusted", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=18)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("PENDING", "Pending"),
                            ("INVOICED", "Invoiced"),
                            ("COMPLETED", "Completed"),
                            ("CANCELLED", "Cancelled"),
                        ],
                        default="PENDING",
                        max_length=10,
                    ),
                ),
                (
                    "payment_status",
                    models.CharField(
                        choices=[("UNPAID", "Unpaid"), ("PARTIAL", "Partially Paid"), ("PAID", "Paid")],
                        default="UNPAID",
                        max_length=10,
                    ),
                ),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                ("cancel_reason", models.CharField(blank=True, default="", max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "source_company",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="intercompany_sales",
                        to="accounts.company",
                    ),
                ),
                (
                    "target_company",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="intercompany_purchases",
                        to="accounts.company",
                    ),
                ),
                (
                    "tenant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="intercompany_transactions",
                        to="accounts.tenant",
                    ),
                ),
            ],
            options={
                "ordering": ["-transaction_date", "-id"],
                "indexes": [
                    models.Index(fields=["source_company", "status"], name="idx_ic_txn_source_status"),
                    models.Index(fields=["target_company", "status"], name="idx_ic_txn_target_status"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("tenant", "reference"),
                        name="uniq_ic_transaction_reference_per_tenant",
                    ),
                    models.CheckConstraint(
                        check=~models.Q(source_company=models.F("target_company")),
                        name="chk_ic_transaction_two_companies",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="IntercompanyAdjustment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("public_id", models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                ("reference", models.CharField(max_length=50)),
                ("credit_note_public_id", models.UUIDField()),
                ("debit_note_public_id", models.UUIDField()),
                ("amount", models.DecimalField(decimal_places=2, max_digits=18)),
                ("reason", models.CharField(max_length=255)),
                ("adjustment_date", models.DateField()),
                (
                    "status",
                    models.CharField(choices=[("COMPLETED", "Completed")], default="COMPLETED", max_length=10),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "source_company",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="intercompany_adjustments_out",
                        to="accounts.company",
                    ),
                ),
                (
                    "target_company",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="intercompany_adjustments_in",
                        to="accounts.company",
                    ),
                ),
                (
                    "tenant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="intercompany_adjustments",
                        to="accounts.tenant",
                    ),
                ),
                (
                    "transaction",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="adjustments",
                        to="intercompany.intercompanytransaction",
                    ),
                ),
            ],
            options={
                "ordering": ["-adjustment_date", "-id"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("tenant", "reference"),
                        name="uniq_ic_adjustment_reference_per_tenant",
                    ),
                    models.CheckConstraint(
                        check=~models.Q(source_company=models.F("target_company")),
                        name="chk_ic_adjustment_two_companies",
                    ),
                    models.CheckConstraint(
                        check=models.Q(amount__gt=0),
                        name="chk_ic_adjustment_amount_positive",
                    ),
                ],
            },
        ),
    ]
