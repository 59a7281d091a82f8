"""
Background download worker.

`DownloadQueue` owns the job table and a single worker thread. Each job runs
two phases, yt-dlp into a temp file and then a streamed upload to object
storage, while mirroring its state onto the Video row. Only one job runs at a
time in the whole process; jobs are claimed oldest first.

    pending -> downloading -> uploading -> completed
       \____________\______________\_____-> failed

Nothing is retried. A failed job stays failed and the caller enqueues again.
"""
import logging
import os
import threading

from django.conf import settings
from django.db import close_old_connections
from django.utils import timezone

from .jobs import JobRegistry, JobStatus
from .models import Video
from .s3 import S3Storage
from .store import VideoStatusStore
from .utils import guess_mime, storage_key, temp_download_path
from .ytdlp import YtDlpFetcher

logger = logging.getLogger(__name__)

# Persist download progress only on these percentage steps.
PROGRESS_WRITE_STEP = 5


class DownloadQueue:
    def __init__(
        self,
        fetcher=None,
        storage=None,
        store=None,
        tmp_dir=None,
        poll_interval: float = 5,
        retention_seconds: int | None = None,
        max_finished: int | None = None,
    ):
        self.fetcher = fetcher or YtDlpFetcher()
        self.storage = storage or S3Storage()
        self.store = store or VideoStatusStore()
        self.tmp_dir = tmp_dir
        self.poll_interval = poll_interval

        self._wakeup = threading.Event()
        self._stopping = threading.Event()
        self._processing = threading.Lock()
        self._thread: threading.Thread | None = None

        self.registry = JobRegistry(
            notify=self._wakeup.set,
            retention_seconds=retention_seconds,
            max_finished=max_finished,
        )

    @classmethod
    def from_settings(cls, **overrides):
        kwargs = {
            "tmp_dir": settings.DOWNLOAD_TMP_DIR,
            "poll_interval": settings.DOWNLOAD_WORKER_POLL_SECONDS,
            "retention_seconds": settings.JOB_RETENTION_SECONDS,
            "max_finished": settings.JOB_RETENTION_MAX,
        }
        kwargs.update(overrides)
        return cls(**kwargs)

    # -----------------------------------------------------
    # Public contract
    # -----------------------------------------------------
    def enqueue(self, video_id) -> str:
        job_id = self.registry.enqueue(video_id)
        logger.info("Enqueued job %s for video %s", job_id, video_id)
        return job_id

    def get_job_status(self, job_id: str):
        return self.registry.get(job_id)

    def get_active_job_for_video(self, video_id):
        return self.registry.find_active_job_by_video(video_id)

    # -----------------------------------------------------
    # Lifecycle
    # -----------------------------------------------------
    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        if self.running:
            return
        self._stopping.clear()
        self._thread = threading.Thread(target=self._loop, name="download-worker", daemon=True)
        self._thread.start()
        logger.info("Download worker started")

    def stop(self, timeout: float | None = None):
        self._stopping.set()
        self._wakeup.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("Download worker stopped")

    def _loop(self):
        while not self._stopping.is_set():
            # pending work left over from a missed wake-up is picked up on the poll timeout
            self._wakeup.wait(self.poll_interval)
            self._wakeup.clear()
            if self._stopping.is_set():
                break
            close_old_connections()
            try:
                self.drain()
            except Exception:
                logger.exception("Download worker loop error")
            finally:
                close_old_connections()

    # -----------------------------------------------------
    # Scheduling
    # -----------------------------------------------------
    def drain(self) -> int:
        """
        Run pending jobs one at a time until none are left.

        Returns the number of jobs processed, or 0 right away if another
        drain is already in flight (that one re-checks for work on its own).
        """
        if not self._processing.acquire(blocking=False):
            return 0
        processed = 0
        try:
            while True:
                job = self.registry.next_pending()
                if job is None:
                    break
                try:
                    self.run_job(job)
                except Exception as e:
                    # run_job handles pipeline errors itself; this covers the pre-flight lookups
                    logger.exception("Job %s crashed before the pipeline started", job.id)
                    self._finish_failed(job, str(e) or "Unknown error")
                processed += 1
        finally:
            self._processing.release()

        evicted = self.registry.prune()
        if evicted:
            logger.debug("Evicted %d finished jobs", evicted)
        return processed

    # -----------------------------------------------------
    # Pipeline
    # -----------------------------------------------------
    def run_job(self, job):
        video = self.store.get(job.video_id)
        if video is None:
            # the row is gone, nothing to write back
            self._finish_failed(job, "Video not found")
            return

        if not self.storage.configured():
            self._finish_failed(job, "S3 is not configured")
            self._save_quietly(
                video.pk,
                download_status=Video.DownloadStatus.FAILED,
                download_progress=None,
            )
            return

        tmp_file = temp_download_path(video.youtube_id, self.tmp_dir)

        try:
            # Phase 1: yt-dlp -> temp file
            job.status = JobStatus.DOWNLOADING
            job.started_at = timezone.now()
            self.store.update(
                video.pk,
                download_status=Video.DownloadStatus.DOWNLOADING,
                download_progress=0,
            )
            logger.info("Job %s downloading %s", job.id, video.url)

            self.fetcher.fetch_media(video.url, tmp_file, self._progress_callback(job, video.pk))

            # Phase 2: temp file -> object storage
            job.status = JobStatus.UPLOADING
            job.progress = 100
            file_size = os.stat(tmp_file).st_size
            key = storage_key(video.youtube_id)
            mime_type = guess_mime(tmp_file)
            logger.info("Job %s uploading %d bytes to %s", job.id, file_size, key)

            self.storage.upload(key, tmp_file, mime_type)

            self.store.update(
                video.pk,
                download_status=Video.DownloadStatus.COMPLETED,
                download_progress=100,
                s3_key=key,
                s3_bucket=self.storage.bucket,
                file_size=file_size,
                file_mime_type=mime_type,
            )
            job.status = JobStatus.COMPLETED
            job.completed_at = timezone.now()
            logger.info("Job %s completed", job.id)

        except Exception as e:
            self._finish_failed(job, str(e) or "Unknown error")
            self._save_quietly(
                video.pk,
                download_status=Video.DownloadStatus.FAILED,
                download_progress=None,
            )
        finally:
            self._remove_temp(tmp_file)

    def _progress_callback(self, job, video_pk):
        last_saved = None

        def on_progress(percent: float):
            nonlocal last_saved
            # yt-dlp restarts at 0% for the audio stream; keep the job moving forward only
            if percent > job.progress:
                job.progress = percent
            step = int(percent)
            if step % PROGRESS_WRITE_STEP == 0 and step != last_saved:
                last_saved = step
                self._save_quietly(video_pk, download_progress=job.progress)

        return on_progress

    def _finish_failed(self, job, message: str):
        job.status = JobStatus.FAILED
        job.error = message
        job.completed_at = timezone.now()
        logger.info("Job %s failed: %s", job.id, message)

    def _save_quietly(self, video_pk, **fields):
        """Store write whose failure must not change the job outcome."""
        try:
            self.store.update(video_pk, **fields)
        except Exception:
            logger.warning("Could not record %s for video %s", sorted(fields), video_pk, exc_info=True)

    def _remove_temp(self, path):
        try:
            if os.path.exists(path):
                os.unlink(path)
        except OSError:
            logger.warning("Could not remove temp file %s", path, exc_info=True)
