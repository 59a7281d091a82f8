class DownloadError(Exception):
    """Base class for failures inside the download pipeline."""


class FetchError(DownloadError):
    """yt-dlp could not retrieve metadata or media."""


class UploadError(DownloadError):
    """Writing the downloaded file to object storage failed."""
