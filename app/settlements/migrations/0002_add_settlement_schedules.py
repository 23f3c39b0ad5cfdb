"""
Add celery-beat schedules for settlement maintenance tasks.

- Sweep pending payouts: every 15 minutes, queues payout retries for
  eligible payees and eligibility refreshes for the rest.
- Retry failed webhooks: every 5 minutes.
- Clean up stuck webhooks: every 30 minutes.
"""

from django.db import migrations

SCHEDULES = [
    {
        "name": "Sweep Pending Settlement Payouts",
        "task": "settlements.tasks.sweep_pending_payouts",
        "every": 15,
        "description": (
            "Finds completed settlements whose payout has not been transferred "
            "and queues payout retries per payee."
        ),
    },
    {
        "name": "Retry Failed Settlement Webhooks",
        "task": "settlements.tasks.retry_failed_webhooks",
        "every": 5,
        "description": "Requeues failed or never-processed Stripe webhook events.",
    },
    {
        "name": "Clean Up Stuck Settlement Webhooks",
        "task": "settlements.tasks.cleanup_stuck_webhooks",
        "every": 30,
        "description": "Marks webhook events stuck in processing as failed.",
    },
]


def create_periodic_tasks(apps, schema_editor):
    IntervalSchedule = apps.get_model("django_celery_beat", "IntervalSchedule")
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    for entry in SCHEDULES:
        schedule, _ = IntervalSchedule.objects.get_or_create(
            every=entry["every"],
            period="minutes",
        )
        PeriodicTask.objects.get_or_create(
            name=entry["name"],
            defaults={
                "task": entry["task"],
                "interval": schedule,
                "enabled": True,
                "description": entry["description"],
            },
        )


def remove_periodic_tasks(apps, schema_editor):
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    PeriodicTask.objects.filter(
        name__in=[entry["name"] for entry in SCHEDULES],
    ).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("settlements", "0001_initial"),
        ("django_celery_beat", "0019_alter_periodictasks_options"),
    ]

    operations = [
        migrations.RunPython(create_periodic_tasks, remove_periodic_tasks),
    ]
