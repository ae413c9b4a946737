from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("raffles", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="competition",
            name="max_tickets_per_user",
            field=models.PositiveIntegerField(
                blank=True, help_text="Leave empty for no per-user limit.", null=True
            ),
        ),
    ]
