import uuid

import chain_stub.models
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="ChainStubBlock",
            fields=[
                ("id", models.BigAutoField(primary_key=True, serialize=False)),
                ("block_hash", models.CharField(default=chain_stub.models.gen_block_hash, max_length=66, unique=True)),
                ("timestamp", models.DateTimeField()),
            ],
        ),
        migrations.CreateModel(
            name="ChainStubBalance",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("address", models.CharField(max_length=42, unique=True)),
                ("balance_units", models.BigIntegerField(default=0)),
            ],
        ),
        migrations.CreateModel(
            name="ChainStubTransaction",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("tx_hash", models.CharField(default=chain_stub.models.gen_tx_hash, max_length=66, unique=True)),
                ("from_address", models.CharField(max_length=42)),
                ("to_address", models.CharField(max_length=42)),
                ("input_data", models.TextField(default="0x")),
                (
                    "status",
                    models.CharField(
                        choices=[("success", "Success"), ("reverted", "Reverted"), ("pending", "Pending")],
                        default="success",
                        max_length=16,
                    ),
                ),
                (
                    "block",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="transactions",
                        to="chain_stub.chainstubblock",
                    ),
                ),
            ],
        ),
    ]
