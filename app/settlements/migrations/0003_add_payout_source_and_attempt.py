from django.db import migrations, models


class Migration(migrations.Migration):
    dependencies = [
        ("settlements", "0002_add_settlement_schedules"),
    ]

    operations = [
        migrations.AddField(
            model_name="settlementrecord",
            name="source_charge_ref",
            field=models.CharField(
                blank=True,
                help_text="Stripe Charge ID (ch_xxx) whose funds back a deferred payout",
                max_length=255,
                null=True,
            ),
        ),
        migrations.AddField(
            model_name="settlementrecord",
            name="payout_attempt",
            field=models.PositiveIntegerField(
                default=1,
                help_text="Generation of the payout idempotency key, advanced after a rejected transfer",
            ),
        ),
    ]
