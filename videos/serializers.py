from rest_framework import serializers

from .models import Video
from .utils import extract_youtube_id

SORT_FIELDS = {
    "createdAt": "created_at",
    "title": "title",
    "uploadDate": "upload_date",
}


class VideoSerializer(serializers.ModelSerializer):
    youtubeId = serializers.CharField(source="youtube_id", read_only=True)
    channelName = serializers.CharField(source="channel_name", read_only=True)
    channelId = serializers.CharField(source="channel_id", read_only=True)
    thumbnailUrl = serializers.CharField(source="thumbnail_url", read_only=True)
    uploadDate = serializers.CharField(source="upload_date", read_only=True)
    viewCount = serializers.IntegerField(source="view_count", read_only=True)
    downloadStatus = serializers.CharField(source="download_status", read_only=True)
    downloadProgress = serializers.FloatField(source="download_progress", read_only=True)
    s3Key = serializers.CharField(source="s3_key", read_only=True)
    s3Bucket = serializers.CharField(source="s3_bucket", read_only=True)
    fileSize = serializers.IntegerField(source="file_size", read_only=True)
    fileMimeType = serializers.CharField(source="file_mime_type", read_only=True)
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)
    updatedAt = serializers.DateTimeField(source="updated_at", read_only=True)

    class Meta:
        model = Video
        fields = [
            "id",
            "youtubeId",
            "url",
            "title",
            "description",
            "channelName",
            "channelId",
            "thumbnailUrl",
            "duration",
            "uploadDate",
            "viewCount",
            "downloadStatus",
            "downloadProgress",
            "s3Key",
            "s3Bucket",
            "fileSize",
            "fileMimeType",
            "createdAt",
            "updatedAt",
        ]


class VideoCreateSerializer(serializers.Serializer):
    url = serializers.CharField()
    downloadVideo = serializers.BooleanField(required=False, default=False)

    def validate_url(self, value):
        value = value.strip()
        if not extract_youtube_id(value):
            raise serializers.ValidationError("Invalid YouTube URL")
        return value


class VideoUpdateSerializer(serializers.Serializer):
    # download_* fields belong to the worker and are deliberately not patchable
    title = serializers.CharField(required=False, max_length=512)
    description = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class VideoListParamsSerializer(serializers.Serializer):
    search = serializers.CharField(required=False, allow_blank=True, default="")
    sort = serializers.ChoiceField(choices=list(SORT_FIELDS), required=False, default="createdAt")
    order = serializers.ChoiceField(choices=["asc", "desc"], required=False, default="desc")
    page = serializers.IntegerField(required=False, default=1)
    limit = serializers.IntegerField(required=False, default=20)

    def validate_page(self, value):
        return max(1, value)

    def validate_limit(self, value):
        return min(100, max(1, value))


def metadata_to_fields(metadata: dict) -> dict:
    """Map a yt-dlp info dict onto Video columns."""
    duration = metadata.get("duration")
    return {
        "youtube_id": metadata["id"],
        "title": metadata.get("title") or metadata["id"],
        "description": metadata.get("description") or None,
        "channel_name": metadata.get("channel") or None,
        "channel_id": metadata.get("channel_id") or None,
        "thumbnail_url": metadata.get("thumbnail") or None,
        "duration": round(duration) if duration else None,
        "upload_date": metadata.get("upload_date") or None,
        "view_count": metadata.get("view_count") or None,
        "raw_metadata": metadata,
    }
