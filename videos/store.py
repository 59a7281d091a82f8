from django.utils import timezone

from .models import Video


class VideoStatusStore:
    """Reads and writes the download fields on Video rows."""

    def get(self, video_id):
        return Video.objects.filter(pk=video_id).first()

    def update(self, video_id, **fields) -> bool:
        # queryset.update() bypasses auto_now, so stamp updated_at by hand
        fields.setdefault("updated_at", timezone.now())
        return Video.objects.filter(pk=video_id).update(**fields) > 0
