"""YouTube link helpers used to validate task video briefs."""
from __future__ import annotations

import re
from typing import Optional
from urllib.parse import urlparse

_YOUTUBE_HOST_RE = re.compile(r"^(https?://)?(www\.)?(youtube\.com|youtu\.?be)/.+")
_VIDEO_ID_RE = re.compile(r"^.*(youtu.be/|v/|u/\w/|embed/|watch\?v=|&v=)([^#&?]*).*")

VIDEO_ID_LENGTH = 11


def extract_video_id(url: Optional[str]) -> Optional[str]:
    """Return the 11-character video id embedded in a YouTube URL, if any."""
    if not url:
        return None
    match = _VIDEO_ID_RE.match(url.strip())
    if match and len(match.group(2)) == VIDEO_ID_LENGTH:
        return match.group(2)
    return None


def is_valid_youtube_url(url: Optional[str]) -> bool:
    """Check that a string is an absolute YouTube URL pointing at a video."""
    if not url:
        return False

    trimmed = url.strip()
    parsed = urlparse(trimmed)
    if not parsed.scheme or not parsed.netloc:
        return False

    if not _YOUTUBE_HOST_RE.match(trimmed):
        return False

    return extract_video_id(trimmed) is not None


def get_embed_url(url: Optional[str]) -> str:
    """Convert a YouTube link into its embeddable form ("" when not a video link)."""
    video_id = extract_video_id(url)
    if video_id is None:
        return ""
    return f"https://www.youtube.com/embed/{video_id}"
