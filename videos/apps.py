import atexit
import sys

from django.apps import AppConfig
from django.conf import settings

# Management commands that never serve requests and must not spawn the worker.
_NO_WORKER_COMMANDS = {"migrate", "makemigrations", "shell", "test", "check", "collectstatic"}


class VideosConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "videos"

    download_queue = None

    def ready(self):
        from .worker import DownloadQueue

        self.download_queue = DownloadQueue.from_settings()
        if settings.DOWNLOAD_WORKER_AUTOSTART and not _NO_WORKER_COMMANDS.intersection(sys.argv[1:2]):
            self.download_queue.start()
            atexit.register(self.download_queue.stop, 5)
