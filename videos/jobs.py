"""
In-memory download job table.

Jobs live only for the lifetime of the process. Terminal jobs stay queryable
until the retention policy in `JobRegistry.prune` evicts them.
"""
import itertools
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum


class JobStatus(str, Enum):
    PENDING = "pending"
    DOWNLOADING = "downloading"
    UPLOADING = "uploading"
    COMPLETED = "completed"
    FAILED = "failed"


ACTIVE_STATUSES = frozenset({JobStatus.PENDING, JobStatus.DOWNLOADING, JobStatus.UPLOADING})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Job:
    id: str
    video_id: int
    status: JobStatus = JobStatus.PENDING
    progress: float = 0
    error: str | None = None
    created_at: datetime = field(default_factory=_utcnow)
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "videoId": self.video_id,
            "status": self.status.value,
            "progress": self.progress,
            "error": self.error,
            "createdAt": self.created_at.isoformat(),
            "startedAt": self.started_at.isoformat() if self.started_at else None,
            "completedAt": self.completed_at.isoformat() if self.completed_at else None,
        }


_counter = itertools.count(1)


def new_job_id() -> str:
    return f"job_{int(time.time() * 1000)}_{next(_counter)}"


class JobRegistry:
    """
    Jobs keyed by id, kept in insertion order so the oldest pending job can be
    claimed first.

    `notify` is called after a new job is inserted (the worker's wake-up).
    Eviction only ever touches finished jobs.
    """

    def __init__(self, notify=None, retention_seconds: int | None = None, max_finished: int | None = None):
        self._jobs: dict[str, Job] = {}
        self._lock = threading.Lock()
        self._notify = notify
        self.retention_seconds = retention_seconds
        self.max_finished = max_finished

    def __len__(self):
        return len(self._jobs)

    def jobs(self) -> list[Job]:
        with self._lock:
            return list(self._jobs.values())

    def enqueue(self, video_id) -> str:
        with self._lock:
            existing = self._find_active(video_id)
            if existing is not None:
                return existing.id
            job = Job(id=new_job_id(), video_id=video_id)
            self._jobs[job.id] = job

        if self._notify:
            self._notify()
        return job.id

    def get(self, job_id: str) -> Job | None:
        return self._jobs.get(job_id)

    def find_active_job_by_video(self, video_id) -> Job | None:
        with self._lock:
            return self._find_active(video_id)

    def _find_active(self, video_id) -> Job | None:
        for job in self._jobs.values():
            if job.video_id == video_id and job.is_active:
                return job
        return None

    def next_pending(self) -> Job | None:
        with self._lock:
            for job in self._jobs.values():
                if job.status is JobStatus.PENDING:
                    return job
        return None

    def prune(self, now: datetime | None = None) -> int:
        """Evict finished jobs older than the retention window, then the oldest beyond the cap."""
        now = now or _utcnow()
        removed = 0
        with self._lock:
            finished = [j for j in self._jobs.values() if not j.is_active]

            if self.retention_seconds is not None:
                cutoff = now - timedelta(seconds=self.retention_seconds)
                for job in finished:
                    if job.completed_at is not None and job.completed_at < cutoff:
                        del self._jobs[job.id]
                        removed += 1
                finished = [j for j in finished if j.id in self._jobs]

            if self.max_finished is not None and len(finished) > self.max_finished:
                for job in finished[: len(finished) - self.max_finished]:
                    del self._jobs[job.id]
                    removed += 1
        return removed
