import uuid
from decimal import Decimal

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Item",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4, editable=False, primary_key=True, serialize=False
                    ),
                ),
                ("code", models.CharField(max_length=50, unique=True)),
                ("name", models.CharField(max_length=200)),
                (
                    "unit",
                    models.CharField(
                        choices=[
                            ("KG", "Kilogram"),
                            ("EA", "Each"),
                            ("LTR", "Litre"),
                            ("BOX", "Box"),
                            ("CASE", "Case"),
                            ("PACK", "Pack"),
                        ],
                        default="EA",
                        max_length=10,
                    ),
                ),
                ("category", models.CharField(blank=True, default="", max_length=100)),
                (
                    "min_stock",
                    models.DecimalField(blank=True, decimal_places=4, max_digits=14, null=True),
                ),
                (
                    "max_stock",
                    models.DecimalField(blank=True, decimal_places=4, max_digits=14, null=True),
                ),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["code"],
                "indexes": [
                    models.Index(fields=["name"], name="inv_item_name_idx"),
                    models.Index(fields=["is_active"], name="inv_item_active_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Location",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4, editable=False, primary_key=True, serialize=False
                    ),
                ),
                ("code", models.CharField(max_length=20, unique=True)),
                ("name", models.CharField(max_length=200)),
                (
                    "type",
                    models.CharField(
                        choices=[
                            ("KITCHEN", "Kitchen"),
                            ("STORE", "Store"),
                            ("CENTRAL", "Central Store"),
                            ("WAREHOUSE", "Warehouse"),
                        ],
                        default="STORE",
                        max_length=20,
                    ),
                ),
                ("address", models.TextField(blank=True, default="")),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "ordering": ["code"],
                "indexes": [
                    models.Index(fields=["is_active"], name="inv_location_active_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="LocationStock",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4, editable=False, primary_key=True, serialize=False
                    ),
                ),
                (
                    "on_hand",
                    models.DecimalField(decimal_places=4, default=Decimal("0"), max_digits=14),
                ),
                (
                    "wac",
                    models.DecimalField(decimal_places=4, default=Decimal("0"), max_digits=14),
                ),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "item",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="stock",
                        to="inventory.item",
                    ),
                ),
                (
                    "location",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="stock",
                        to="inventory.location",
                    ),
                ),
            ],
            options={
                "ordering": ["location", "item__code"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("location", "item"), name="uniq_location_stock_location_item"
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("on_hand__gte", 0)),
                        name="chk_location_stock_on_hand_gte_0",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("wac__gte", 0)),
                        name="chk_location_stock_wac_gte_0",
                    ),
                ],
            },
        ),
    ]
