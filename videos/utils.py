import mimetypes
import re
from pathlib import Path
from urllib.parse import parse_qs, urlparse

from django.conf import settings

_YOUTUBE_ID = re.compile(r"^[A-Za-z0-9_-]{11}$")
_YOUTUBE_HOSTS = {"youtube.com", "www.youtube.com", "m.youtube.com", "music.youtube.com"}


def extract_youtube_id(url: str) -> str | None:
    """Return the 11-char video id for watch/short/embed/youtu.be URLs, else None."""
    if not url:
        return None
    parsed = urlparse(url.strip())
    host = (parsed.hostname or "").lower()

    candidate = None
    if host in ("youtu.be", "www.youtu.be"):
        candidate = parsed.path.lstrip("/").split("/")[0]
    elif host in _YOUTUBE_HOSTS:
        if parsed.path == "/watch":
            candidate = (parse_qs(parsed.query).get("v") or [""])[0]
        else:
            parts = [p for p in parsed.path.split("/") if p]
            if len(parts) >= 2 and parts[0] in ("shorts", "embed", "live", "v"):
                candidate = parts[1]

    if candidate and _YOUTUBE_ID.match(candidate):
        return candidate
    return None


def temp_download_path(youtube_id: str, tmp_dir=None) -> Path:
    """Local file yt-dlp writes to. Same id -> same path, so retries reuse it."""
    base = Path(tmp_dir) if tmp_dir is not None else Path(settings.DOWNLOAD_TMP_DIR)
    return base / f"ytdl-{youtube_id}.mp4"


def storage_key(youtube_id: str) -> str:
    """Object key for a mirrored video. Re-uploads overwrite the same key."""
    return f"videos/{youtube_id}/{youtube_id}.mp4"


def guess_mime(path) -> str:
    mime, _ = mimetypes.guess_type(str(path))
    return mime or "application/octet-stream"
