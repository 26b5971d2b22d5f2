import uuid
from decimal import Decimal

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("inventory", "0001_initial"),
        ("purchases", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="NCR",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4, editable=False, primary_key=True, serialize=False
                    ),
                ),
                ("ncr_no", models.CharField(max_length=32, unique=True)),
                (
                    "type",
                    models.CharField(
                        choices=[("MANUAL", "Manual"), ("PRICE_VARIANCE", "Price Variance")],
                        default="MANUAL",
                        max_length=20,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("OPEN", "Open"),
                            ("SENT", "Sent to Supplier"),
                            ("CREDITED", "Credited"),
                            ("REJECTED", "Rejected"),
                            ("RESOLVED", "Resolved"),
                        ],
                        default="OPEN",
                        max_length=10,
                    ),
                ),
                (
                    "financial_impact",
                    models.CharField(
                        blank=True,
                        choices=[("CREDIT", "Credit"), ("LOSS", "Loss"), ("NONE", "None")],
                        max_length=10,
                        null=True,
                    ),
                ),
                (
                    "value",
                    models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=16),
                ),
                (
                    "quantity",
                    models.DecimalField(blank=True, decimal_places=4, max_digits=14, null=True),
                ),
                ("reason", models.TextField()),
                ("auto_generated", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("resolved_at", models.DateTimeField(blank=True, null=True)),
                ("resolution_notes", models.TextField(blank=True, default="")),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="ncrs_created",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "delivery",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="ncrs",
                        to="purchases.delivery",
                    ),
                ),
                (
                    "delivery_line",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="ncrs",
                        to="purchases.deliveryline",
                    ),
                ),
                (
                    "location",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="ncrs",
                        to="inventory.location",
                    ),
                ),
            ],
            options={
                "verbose_name": "NCR",
                "verbose_name_plural": "NCRs",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["location", "status"], name="ncr_location_status_idx"),
                    models.Index(fields=["created_at"], name="ncr_created_at_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("value__gte", 0)), name="chk_ncr_value_gte_0"
                    ),
                ],
            },
        ),
    ]
