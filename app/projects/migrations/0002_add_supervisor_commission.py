"""
Add the supervisor's commission share to projects.

The fulfiller payout and the supervisor commission together may not
exceed the quoted price.
"""

from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("projects", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="project",
            name="supervisor_commission_cents",
            field=models.PositiveBigIntegerField(
                default=0,
                help_text="Supervisor's share of the price in minor units",
            ),
        ),
        migrations.RemoveConstraint(
            model_name="project",
            name="project_payout_within_price",
        ),
        migrations.AddConstraint(
            model_name="project",
            constraint=models.CheckConstraint(
                condition=models.Q(
                    ("fulfiller_payout_cents__isnull", True),
                    (
                        "quoted_price_cents__gte",
                        models.F("fulfiller_payout_cents")
                        + models.F("supervisor_commission_cents"),
                    ),
                    _connector="OR",
                ),
                name="project_shares_within_price",
            ),
        ),
    ]
