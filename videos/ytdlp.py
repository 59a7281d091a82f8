"""
Thin wrapper around the yt-dlp command line tool.

Metadata lookups are blocking calls with a timeout; media downloads stream
yt-dlp's stdout so "[download]  42.0%" lines can be turned into progress
callbacks.
"""
import json
import logging
import re
import subprocess
import threading

from django.conf import settings

from .exceptions import FetchError

logger = logging.getLogger(__name__)

PROGRESS_RE = re.compile(r"\[download\]\s+(\d+\.?\d*)%")

DOWNLOAD_FORMAT = "bestvideo[ext=mp4]+bestaudio[ext=m4a]/best[ext=mp4]/best"


def _binary() -> str:
    return getattr(settings, "YTDLP_PATH", "yt-dlp")


def parse_progress(line: str) -> float | None:
    match = PROGRESS_RE.search(line)
    if not match:
        return None
    return float(match.group(1))


def fetch_metadata(url: str) -> dict:
    """Run `yt-dlp --dump-json` and return the parsed info dict."""
    cmd = [_binary(), "--dump-json", "--no-download", "--no-warnings", url]
    try:
        proc = subprocess.run(
            cmd,
            check=True,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            timeout=settings.YTDLP_METADATA_TIMEOUT,
        )
    except FileNotFoundError as e:
        raise FetchError(f"Failed to spawn yt-dlp: {e}") from e
    except subprocess.TimeoutExpired as e:
        raise FetchError(f"yt-dlp metadata lookup timed out after {e.timeout}s") from e
    except subprocess.CalledProcessError as e:
        err = e.stderr.decode("utf-8", errors="ignore") if e.stderr else str(e)
        raise FetchError(f"yt-dlp exited with code {e.returncode}: {err.strip()}") from e

    try:
        return json.loads(proc.stdout)
    except ValueError as e:
        raise FetchError(f"yt-dlp returned invalid JSON: {e}") from e


def download_video(url: str, output_path, on_progress=None) -> None:
    """Download `url` into `output_path`, reporting percentages to `on_progress`."""
    cmd = [
        _binary(),
        "-f", DOWNLOAD_FORMAT,
        "--merge-output-format", "mp4",
        "--newline",
        "-o", str(output_path),
        url,
    ]
    try:
        proc = subprocess.Popen(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            errors="ignore",
        )
    except OSError as e:
        raise FetchError(f"Failed to spawn yt-dlp: {e}") from e

    # Drain stderr on the side so a chatty yt-dlp can't block on a full pipe.
    stderr_chunks = []
    stderr_reader = threading.Thread(
        target=lambda: stderr_chunks.append(proc.stderr.read()), daemon=True
    )
    stderr_reader.start()

    for line in proc.stdout:
        percent = parse_progress(line)
        if percent is not None and on_progress:
            on_progress(percent)

    code = proc.wait()
    stderr_reader.join()
    proc.stdout.close()
    proc.stderr.close()

    if code != 0:
        stderr = "".join(stderr_chunks).strip()
        raise FetchError(f"yt-dlp exited with code {code}: {stderr}")


def is_available() -> bool:
    try:
        subprocess.run([_binary(), "--version"], check=True, capture_output=True, timeout=5)
        return True
    except (OSError, subprocess.SubprocessError):
        return False


def get_version() -> str:
    proc = subprocess.run(
        [_binary(), "--version"], check=True, capture_output=True, text=True, timeout=5
    )
    return proc.stdout.strip()


class YtDlpFetcher:
    """MediaFetcher handed to the download worker."""

    def fetch_metadata(self, url: str) -> dict:
        return fetch_metadata(url)

    def fetch_media(self, url: str, dest_path, on_progress=None) -> None:
        logger.debug("yt-dlp download %s -> %s", url, dest_path)
        download_video(url, dest_path, on_progress)
