"""
Shared fixtures: fake yt-dlp / storage collaborators, a synchronous
DownloadQueue and an API client wired to it.
"""
from pathlib import Path

import pytest
from django.apps import apps
from rest_framework.test import APIClient

from videos.models import Video
from videos.worker import DownloadQueue


class FakeFetcher:
    """Writes a small file to the destination and replays a progress sequence."""

    def __init__(self, progress=(10, 20, 30, 40, 50, 60, 70, 80, 90, 100), payload=b"x" * 2048, error=None):
        self.progress = list(progress)
        self.payload = payload
        self.error = error
        self.calls = []

    def fetch_metadata(self, url):
        return {"id": "dQw4w9WgXcQ", "title": "Fake"}

    def fetch_media(self, url, dest_path, on_progress=None):
        self.calls.append((url, Path(dest_path)))
        Path(dest_path).write_bytes(self.payload)
        for percent in self.progress:
            if on_progress:
                on_progress(percent)
        if self.error is not None:
            raise self.error


class FakeStorage:
    def __init__(self, configured=True, error=None, bucket="vidvault-test"):
        self._configured = configured
        self.error = error
        self.bucket = bucket
        self.uploads = []
        self.deleted = []

    def configured(self):
        return self._configured

    def upload(self, key, local_path, content_type):
        if self.error is not None:
            raise self.error
        self.uploads.append((key, Path(local_path).read_bytes(), content_type))

    def delete(self, key):
        self.deleted.append(key)

    def presigned_url(self, key, ttl=None):
        return f"https://cdn.test/{key}"


@pytest.fixture
def fetcher():
    return FakeFetcher()


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def queue(fetcher, storage, tmp_path):
    return DownloadQueue(fetcher=fetcher, storage=storage, tmp_dir=tmp_path)


@pytest.fixture
def make_video(db):
    def _make(youtube_id="dQw4w9WgXcQ", **kwargs):
        defaults = {
            "url": f"https://www.youtube.com/watch?v={youtube_id}",
            "title": f"Video {youtube_id}",
        }
        defaults.update(kwargs)
        return Video.objects.create(youtube_id=youtube_id, **defaults)

    return _make


@pytest.fixture
def video(make_video):
    return make_video()


@pytest.fixture
def app_queue(queue, monkeypatch):
    """Install the test queue as the one views resolve through the app config."""
    monkeypatch.setattr(apps.get_app_config("videos"), "download_queue", queue)
    return queue


@pytest.fixture
def api_client():
    return APIClient()
