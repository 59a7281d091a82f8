"""
yt-dlp wrapper tests. A small shell script stands in for the real binary.
"""
import json
import os
import stat
import sys

import pytest

from videos import ytdlp
from videos.exceptions import FetchError

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="uses a POSIX shell script as fake yt-dlp")


@pytest.fixture
def fake_ytdlp(tmp_path, settings):
    """Write an executable script and point YTDLP_PATH at it."""

    def _make(body: str):
        script = tmp_path / "yt-dlp"
        script.write_text("#!/bin/sh\n" + body)
        script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        settings.YTDLP_PATH = str(script)
        return script

    return _make


@pytest.mark.parametrize(
    "line, expected",
    [
        ("[download]   0.0% of ~ 12.00MiB at  1.00MiB/s ETA 00:12", 0.0),
        ("[download]  42.7% of 12.00MiB at 2.00MiB/s ETA 00:03", 42.7),
        ("[download] 100% of 12.00MiB in 00:05", 100.0),
        ("[download] Destination: /tmp/ytdl-abc.mp4", None),
        ("[Merger] Merging formats into \"/tmp/ytdl-abc.mp4\"", None),
    ],
)
def test_parse_progress(line, expected):
    assert ytdlp.parse_progress(line) == expected


def test_download_video_reports_progress(fake_ytdlp, tmp_path):
    fake_ytdlp(
        'echo "[youtube] abc: Downloading webpage"\n'
        'echo "[download]  10.0% of 1.00MiB"\n'
        'echo "[download]  55.5% of 1.00MiB"\n'
        'echo "[download] 100% of 1.00MiB"\n'
        'while [ $# -gt 0 ]; do\n'
        '  if [ "$1" = "-o" ]; then out="$2"; fi\n'
        '  shift\n'
        'done\n'
        'printf data > "$out"\n'
    )
    dest = tmp_path / "out.mp4"
    seen = []

    ytdlp.download_video("https://youtu.be/abcdefghijk", dest, seen.append)

    assert seen == [10.0, 55.5, 100.0]
    assert dest.read_bytes() == b"data"


def test_download_video_nonzero_exit_raises_with_stderr(fake_ytdlp, tmp_path):
    fake_ytdlp('echo "[download]   5.0%"\necho "ERROR: Video unavailable" >&2\nexit 1\n')
    seen = []

    with pytest.raises(FetchError) as exc:
        ytdlp.download_video("https://youtu.be/abcdefghijk", tmp_path / "out.mp4", seen.append)

    assert str(exc.value) == "yt-dlp exited with code 1: ERROR: Video unavailable"
    assert seen == [5.0]


def test_download_video_missing_binary(settings, tmp_path):
    settings.YTDLP_PATH = str(tmp_path / "no-such-yt-dlp")

    with pytest.raises(FetchError, match="Failed to spawn yt-dlp"):
        ytdlp.download_video("https://youtu.be/abcdefghijk", tmp_path / "out.mp4")


def test_fetch_metadata_parses_json(fake_ytdlp):
    info = {"id": "abcdefghijk", "title": "Hello", "duration": 12.4}
    fake_ytdlp(f"cat <<'EOF'\n{json.dumps(info)}\nEOF\n")

    assert ytdlp.fetch_metadata("https://youtu.be/abcdefghijk") == info


def test_fetch_metadata_failure(fake_ytdlp):
    fake_ytdlp('echo "ERROR: Private video" >&2\nexit 1\n')

    with pytest.raises(FetchError, match="Private video"):
        ytdlp.fetch_metadata("https://youtu.be/abcdefghijk")


def test_fetch_metadata_bad_json(fake_ytdlp):
    fake_ytdlp('echo "not json"\n')

    with pytest.raises(FetchError, match="invalid JSON"):
        ytdlp.fetch_metadata("https://youtu.be/abcdefghijk")


def test_fetch_metadata_timeout(fake_ytdlp, settings):
    fake_ytdlp("exec sleep 5\n")
    settings.YTDLP_METADATA_TIMEOUT = 0.2

    with pytest.raises(FetchError, match="timed out"):
        ytdlp.fetch_metadata("https://youtu.be/abcdefghijk")


def test_availability_and_version(fake_ytdlp, settings, tmp_path):
    fake_ytdlp('echo "2026.09.01"\n')
    assert ytdlp.is_available() is True
    assert ytdlp.get_version() == "2026.09.01"

    settings.YTDLP_PATH = os.fspath(tmp_path / "missing")
    assert ytdlp.is_available() is False


def test_fetcher_delegates_to_download_video(monkeypatch, tmp_path):
    calls = []
    monkeypatch.setattr(ytdlp, "download_video", lambda url, dest, cb: calls.append((url, dest, cb)))
    cb = object()

    ytdlp.YtDlpFetcher().fetch_media("https://youtu.be/abcdefghijk", tmp_path / "x.mp4", cb)

    assert calls == [("https://youtu.be/abcdefghijk", tmp_path / "x.mp4", cb)]
