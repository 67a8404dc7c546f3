"""URL and content-type classification for discovered media resources."""

import enum
import re
from typing import List, Optional
from urllib.parse import urlsplit, urlunsplit


class ContentHint(str, enum.Enum):
    HLS = "hls"
    DASH = "dash"
    DIRECT = "direct"
    UNKNOWN = "unknown"


class DiscoverySource(str, enum.Enum):
    NETWORK_REQUEST = "network-request"
    NETWORK_RESPONSE = "network-response"
    CRYPTO_HOOK = "injected-crypto-hook"
    FETCH_HOOK = "injected-fetch-hook"
    VIDEO_MUTATION = "video-element-mutation"
    PLAYER_LIBRARY = "player-library-hook"


CHANNELS = ("network", "hooks", "domMutation", "playerLibrary")

SOURCE_CHANNEL = {
    DiscoverySource.NETWORK_REQUEST: "network",
    DiscoverySource.NETWORK_RESPONSE: "network",
    DiscoverySource.CRYPTO_HOOK: "hooks",
    DiscoverySource.FETCH_HOOK: "hooks",
    DiscoverySource.VIDEO_MUTATION: "domMutation",
    DiscoverySource.PLAYER_LIBRARY: "playerLibrary",
}

KIND_FOR_HINT = {
    ContentHint.HLS: "hls",
    ContentHint.DASH: "dash",
    ContentHint.DIRECT: "direct",
    ContentHint.UNKNOWN: "other",
}

DIRECT_EXTENSIONS = (
    ".mp4", ".webm", ".mkv", ".mov", ".m4v", ".avi", ".flv", ".ogv",
    ".mp3", ".m4a", ".aac", ".ogg", ".oga", ".wav", ".flac",
)

# Substrings that make an outgoing request worth recording
REQUEST_URL_PATTERNS = (".m3u8", ".mpd", ".mp4", ".webm", "/video/", "stream")

HLS_CONTENT_TYPES = ("application/vnd.apple.mpegurl", "application/x-mpegurl", "audio/mpegurl", "audio/x-mpegurl")
DASH_CONTENT_TYPES = ("application/dash+xml",)

TEXTUAL_CONTENT_TYPES = ("text/", "json", "xml", "javascript", "mpegurl")

HOSTING_PLATFORMS = ("streamtape", "doodstream", "filemoon", "mixdrop", "voe.sx", "upns.online")

MEDIA_URL_RE = re.compile(r"""(https?://[^\s"'<>]+\.(?:m3u8|mpd|mp4|webm|mkv)[^\s"'<>]*)""", re.I)

_DEFAULT_PORTS = {"http": 80, "https": 443}


def classify_url(url: str) -> ContentHint:
    u = (url or "").lower()
    if ".m3u8" in u:
        return ContentHint.HLS
    if ".mpd" in u:
        return ContentHint.DASH
    path = urlsplit(u).path if "://" in u else u.split("?", 1)[0].split("#", 1)[0]
    if path.endswith(DIRECT_EXTENSIONS):
        return ContentHint.DIRECT
    return ContentHint.UNKNOWN


def classify_content_type(content_type: Optional[str]) -> ContentHint:
    ct = (content_type or "").lower()
    if any(t in ct for t in HLS_CONTENT_TYPES):
        return ContentHint.HLS
    if any(t in ct for t in DASH_CONTENT_TYPES):
        return ContentHint.DASH
    if ct.startswith(("video/", "audio/")):
        return ContentHint.DIRECT
    return ContentHint.UNKNOWN


def hint_for(url: str, content_type: Optional[str] = None) -> ContentHint:
    """URL shape wins; the content type only fills in when the URL says nothing."""
    hint = classify_url(url)
    if hint is ContentHint.UNKNOWN and content_type:
        return classify_content_type(content_type)
    return hint


def is_media_content_type(content_type: Optional[str]) -> bool:
    return classify_content_type(content_type) is not ContentHint.UNKNOWN


def is_textual(content_type: Optional[str]) -> bool:
    ct = (content_type or "").lower()
    return any(t in ct for t in TEXTUAL_CONTENT_TYPES)


def is_candidate_request(url: str, resource_type: Optional[str] = None) -> bool:
    if (resource_type or "").lower() == "media":
        return True
    u = (url or "").lower()
    return any(p in u for p in REQUEST_URL_PATTERNS)


def normalize_url(url: str) -> str:
    """
    Canonical form used as the dedup key.

    Drops the fragment and the default port, lowercases scheme and host.
    Relative URLs only lose their fragment.
    """
    raw = (url or "").strip()
    if not raw:
        return ""
    parts = urlsplit(raw)
    if not parts.scheme or not parts.netloc:
        return raw.split("#", 1)[0]

    scheme = parts.scheme.lower()
    host = (parts.hostname or "").lower()
    try:
        port = parts.port
    except ValueError:
        port = None
    netloc = host
    if parts.username:
        userinfo = parts.username + (f":{parts.password}" if parts.password else "")
        netloc = f"{userinfo}@{host}"
    if port and port != _DEFAULT_PORTS.get(scheme):
        netloc += f":{port}"
    return urlunsplit((scheme, netloc, parts.path or "/", parts.query, ""))


def extract_media_urls(text: str) -> List[str]:
    """Media URLs embedded in a text/JSON body, in order of appearance, without repeats."""
    if not text:
        return []
    text = text.replace("\\/", "/").replace("\\u0026", "&")
    seen, out = set(), []
    for m in MEDIA_URL_RE.finditer(text):
        u = m.group(1).rstrip(".,;)")
        if u not in seen:
            seen.add(u)
            out.append(u)
    return out


def detect_platforms(text: str) -> List[str]:
    t = (text or "").lower()
    return [p for p in HOSTING_PLATFORMS if p in t]


__all__ = [
    "ContentHint",
    "DiscoverySource",
    "CHANNELS",
    "SOURCE_CHANNEL",
    "KIND_FOR_HINT",
    "HOSTING_PLATFORMS",
    "classify_url",
    "classify_content_type",
    "hint_for",
    "is_media_content_type",
    "is_textual",
    "is_candidate_request",
    "normalize_url",
    "extract_media_urls",
    "detect_platforms",
]
