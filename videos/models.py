from django.db import models


class Video(models.Model):
    class DownloadStatus(models.TextChoices):
        NONE = "none"
        PENDING = "pending"
        DOWNLOADING = "downloading"
        COMPLETED = "completed"
        FAILED = "failed"

    youtube_id = models.CharField(max_length=32, unique=True)
    url = models.URLField(max_length=512)
    title = models.CharField(max_length=512)
    description = models.TextField(null=True, blank=True)
    channel_name = models.CharField(max_length=255, null=True, blank=True)
    channel_id = models.CharField(max_length=64, null=True, blank=True)
    thumbnail_url = models.URLField(max_length=1024, null=True, blank=True)
    duration = models.PositiveIntegerField(null=True, blank=True)    # seconds
    upload_date = models.CharField(max_length=8, null=True, blank=True)  # YYYYMMDD as yt-dlp reports it
    view_count = models.BigIntegerField(null=True, blank=True)
    raw_metadata = models.JSONField(default=dict, blank=True)

    # Written by the download worker only (the download endpoint sets "pending" before enqueue).
    download_status = models.CharField(
        max_length=16, choices=DownloadStatus.choices, default=DownloadStatus.NONE
    )
    download_progress = models.FloatField(null=True, blank=True)  # 0..100, null after failure
    s3_key = models.CharField(max_length=512, null=True, blank=True)
    s3_bucket = models.CharField(max_length=255, null=True, blank=True)
    file_size = models.BigIntegerField(null=True, blank=True)
    file_mime_type = models.CharField(max_length=64, null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.title} ({self.youtube_id})"
