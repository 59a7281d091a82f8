from django.urls import path
from .views import (
    HealthView,
    JobDetailView,
    VideoDetailView,
    VideoDownloadView,
    VideoListCreateView,
    VideoStreamView,
)

urlpatterns = [
    path("videos/", VideoListCreateView.as_view(), name="video_list"),
    path("videos/stream/", VideoStreamView.as_view(), name="video_stream"),
    path("videos/<int:video_id>/", VideoDetailView.as_view(), name="video_detail"),
    path("videos/<int:video_id>/download/", VideoDownloadView.as_view(), name="video_download"),
    path("jobs/<str:job_id>/", JobDetailView.as_view(), name="job_detail"),
    path("health/", HealthView.as_view(), name="health"),
]
