import uuid
from decimal import Decimal

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


def _money():
    return models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=16)


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("inventory", "0001_initial"),
        ("periods", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Reconciliation",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4, editable=False, primary_key=True, serialize=False
                    ),
                ),
                ("opening_stock", _money()),
                ("receipts", _money()),
                ("transfers_in", _money()),
                ("transfers_out", _money()),
                ("issues", _money()),
                ("closing_stock", _money()),
                ("adjustments", _money()),
                ("back_charges", _money()),
                ("credits", _money()),
                ("condemnations", _money()),
                ("total_adjustments", _money()),
                ("consumption", _money()),
                ("total_mandays", models.PositiveIntegerField(default=0)),
                (
                    "manday_cost",
                    models.DecimalField(blank=True, decimal_places=2, max_digits=16, null=True),
                ),
                ("notes", models.TextField(blank=True, default="")),
                ("is_final", models.BooleanField(default=False)),
                ("finalized_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "location",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="reconciliations",
                        to="inventory.location",
                    ),
                ),
                (
                    "period",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="reconciliations",
                        to="periods.period",
                    ),
                ),
                (
                    "updated_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="reconciliations_updated",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["period", "location__code"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("period", "location"),
                        name="uniq_reconciliation_period_location",
                    ),
                ],
            },
        ),
    ]
