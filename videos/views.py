import logging
import math

from botocore.exceptions import BotoCoreError, ClientError
from django.apps import apps
from django.db import IntegrityError
from django.db.models import Q
from django.http import HttpResponseRedirect
from rest_framework import status, views
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from .exceptions import FetchError
from .models import Video
from .s3 import create_presigned_get, delete_object, is_configured
from .serializers import (
    SORT_FIELDS,
    VideoCreateSerializer,
    VideoListParamsSerializer,
    VideoSerializer,
    VideoUpdateSerializer,
    metadata_to_fields,
)
from .utils import extract_youtube_id
from .ytdlp import fetch_metadata, get_version, is_available

logger = logging.getLogger(__name__)


class DownloadQueueMixin:
    """Gives views the process-wide DownloadQueue built by the app config."""

    def get_queue(self):
        return apps.get_app_config("videos").download_queue


class VideoListCreateView(DownloadQueueMixin, views.APIView):
    """
    GET lists bookmarks with search/sort/pagination.
    POST bookmarks a YouTube URL, optionally queueing a mirror download.
    """
    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request):
        params = VideoListParamsSerializer(data=request.query_params)
        params.is_valid(raise_exception=True)
        p = params.validated_data

        qs = Video.objects.all()
        if p["search"]:
            qs = qs.filter(
                Q(title__icontains=p["search"])
                | Q(description__icontains=p["search"])
                | Q(channel_name__icontains=p["search"])
            )

        field = SORT_FIELDS[p["sort"]]
        qs = qs.order_by(field if p["order"] == "asc" else f"-{field}")

        total = qs.count()
        page, limit = p["page"], p["limit"]
        videos = qs[(page - 1) * limit: page * limit]

        return Response({
            "videos": VideoSerializer(videos, many=True).data,
            "total": total,
            "page": page,
            "limit": limit,
            "totalPages": math.ceil(total / limit),
        })

    def post(self, request):
        ser = VideoCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        url = ser.validated_data["url"]
        want_download = ser.validated_data["downloadVideo"]

        existing = Video.objects.filter(youtube_id=extract_youtube_id(url)).first()
        if existing:
            return Response(
                {"error": "This video is already saved", "video": VideoSerializer(existing).data},
                status=status.HTTP_409_CONFLICT,
            )

        try:
            metadata = fetch_metadata(url)
        except FetchError as e:
            return Response({"error": str(e)}, status=status.HTTP_502_BAD_GATEWAY)

        fields = metadata_to_fields(metadata)
        fields["download_status"] = (
            Video.DownloadStatus.PENDING if want_download else Video.DownloadStatus.NONE
        )
        try:
            video = Video.objects.create(url=url, **fields)
        except IntegrityError:
            existing = Video.objects.filter(youtube_id=fields["youtube_id"]).first()
            return Response(
                {"error": "This video is already saved", "video": VideoSerializer(existing).data if existing else None},
                status=status.HTTP_409_CONFLICT,
            )

        job_id = self.get_queue().enqueue(video.pk) if want_download else None

        return Response(
            {"video": VideoSerializer(video).data, "jobId": job_id},
            status=status.HTTP_201_CREATED,
        )


class VideoDetailView(views.APIView):
    permission_classes = [AllowAny]
    authentication_classes = []

    def _get(self, video_id):
        return Video.objects.filter(pk=video_id).first()

    def get(self, request, video_id):
        video = self._get(video_id)
        if not video:
            return Response({"error": "Video not found"}, status=404)
        return Response(VideoSerializer(video).data)

    def patch(self, request, video_id):
        video = self._get(video_id)
        if not video:
            return Response({"error": "Video not found"}, status=404)

        ser = VideoUpdateSerializer(data=request.data, partial=True)
        ser.is_valid(raise_exception=True)
        for name, value in ser.validated_data.items():
            setattr(video, name, value)
        if ser.validated_data:
            video.save(update_fields=[*ser.validated_data, "updated_at"])
        return Response(VideoSerializer(video).data)

    def delete(self, request, video_id):
        video = self._get(video_id)
        if not video:
            return Response({"error": "Video not found"}, status=404)

        # The mirror is best effort; a stale object must not block removing the bookmark.
        if video.s3_key and is_configured():
            try:
                delete_object(video.s3_key)
            except (BotoCoreError, ClientError):
                logger.warning("Could not delete stored object %s", video.s3_key, exc_info=True)

        video.delete()
        return Response({"success": True})


class VideoDownloadView(DownloadQueueMixin, views.APIView):
    """
    Queues a mirror download for an existing bookmark. Returns the active job
    instead of creating a second one.
    """
    permission_classes = [AllowAny]
    authentication_classes = []

    def post(self, request, video_id):
        if not is_configured():
            return Response(
                {"error": "S3 storage is not configured. Set S3 environment variables in .env"},
                status=400,
            )

        video = Video.objects.filter(pk=video_id).first()
        if not video:
            return Response({"error": "Video not found"}, status=404)

        if video.download_status == Video.DownloadStatus.COMPLETED:
            return Response({"status": "already_completed", "s3Key": video.s3_key})

        queue = self.get_queue()
        existing = queue.get_active_job_for_video(video.pk)
        if existing:
            return Response({"jobId": existing.id, "status": existing.status.value})

        Video.objects.filter(pk=video.pk).update(
            download_status=Video.DownloadStatus.PENDING, download_progress=0
        )
        job_id = queue.enqueue(video.pk)

        return Response({"jobId": job_id, "status": "pending"})


class VideoStreamView(views.APIView):
    """Redirects to a time-limited playback URL for a stored object."""
    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request):
        key = request.query_params.get("key")
        if not key:
            return Response({"error": "key parameter is required"}, status=400)

        if not is_configured():
            return Response({"error": "S3 storage is not configured"}, status=500)

        try:
            url = create_presigned_get(key)
        except (BotoCoreError, ClientError) as e:
            return Response({"error": str(e) or "Failed to generate stream URL"}, status=500)
        return HttpResponseRedirect(url)


class JobDetailView(DownloadQueueMixin, views.APIView):
    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request, job_id):
        job = self.get_queue().get_job_status(job_id)
        if not job:
            return Response({"error": "Job not found"}, status=404)
        return Response(job.to_dict())


class HealthView(views.APIView):
    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request):
        available = is_available()
        return Response({
            "ytdlp": available,
            "ytdlpVersion": get_version() if available else None,
            "storageConfigured": is_configured(),
        })
