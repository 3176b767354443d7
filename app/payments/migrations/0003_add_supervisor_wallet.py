"""
Add the supervisor wallet account type.

Supervisors receive their commission share when a project completes.
"""

from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("payments", "0002_add_ledger_integrity_schedule"),
    ]

    operations = [
        migrations.AlterField(
            model_name="ledgeraccount",
            name="type",
            field=models.CharField(
                choices=[
                    ("client_wallet", "Client Wallet"),
                    ("fulfiller_wallet", "Fulfiller Wallet"),
                    ("supervisor_wallet", "Supervisor Wallet"),
                    ("platform_escrow", "Platform Escrow"),
                    ("platform_revenue", "Platform Revenue"),
                    ("external_gateway", "External Gateway"),
                ],
                help_text="Category of this account",
                max_length=50,
            ),
        ),
    ]
