from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Video",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("youtube_id", models.CharField(max_length=32, unique=True)),
                ("url", models.URLField(max_length=512)),
                ("title", models.CharField(max_length=512)),
                ("description", models.TextField(blank=True, null=True)),
                ("channel_name", models.CharField(blank=True, max_length=255, null=True)),
                ("channel_id", models.CharField(blank=True, max_length=64, null=True)),
                ("thumbnail_url", models.URLField(blank=True, max_length=1024, null=True)),
                ("duration", models.PositiveIntegerField(blank=True, null=True)),
                ("upload_date", models.CharField(blank=True, max_length=8, null=True)),
                ("view_count", models.BigIntegerField(blank=True, null=True)),
                ("raw_metadata", models.JSONField(blank=True, default=dict)),
                (
                    "download_status",
                    models.CharField(
                        choices=[
                            ("none", "None"),
                            ("pending", "Pending"),
                            ("downloading", "Downloading"),
                            ("completed", "Completed"),
                            ("failed", "Failed"),
                        ],
                        default="none",
                        max_length=16,
                    ),
                ),
                ("download_progress", models.FloatField(blank=True, null=True)),
                ("s3_key", models.CharField(blank=True, max_length=512, null=True)),
                ("s3_bucket", models.CharField(blank=True, max_length=255, null=True)),
                ("file_size", models.BigIntegerField(blank=True, null=True)),
                ("file_mime_type", models.CharField(blank=True, max_length=64, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
    ]
