"""URL cleanup and markup-to-text helpers shared by the digest stages."""

from __future__ import annotations

import html as html_lib
import re
from typing import List
from urllib.parse import urlparse, urlunparse


_HTML_TAG_RE = re.compile(r"<[^>]+>")


def strip_url_tail_noise(value: str) -> str:
    text = html_lib.unescape(str(value or "")).strip()
    if not text:
        return ""
    text = text.strip("\"'`")
    text = re.sub(r"\s+", "", text)

    # trailing punctuation picked up from surrounding prose
    while text and text[-1] in {"\"", "'", "`", ")", "]", "}", ",", ";", ">"}:
        text = text[:-1].rstrip()
    return text


def is_valid_http_url(url: str) -> bool:
    value = strip_url_tail_noise(url)
    if not value.startswith(("http://", "https://")):
        return False
    if len(value) > 2048:
        return False
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    if str(parsed.scheme or "").lower() not in {"http", "https"}:
        return False
    host = str(parsed.hostname or "").strip()
    return bool(host) and ("." in host or host == "localhost")


def hostname(url: str) -> str:
    try:
        parsed = urlparse(strip_url_tail_noise(url))
    except ValueError:
        return ""
    host = str(parsed.hostname or "").strip().lower()
    if host.startswith("www."):
        host = host[4:]
    return host


def path_segments(url: str) -> List[str]:
    try:
        parsed = urlparse(strip_url_tail_noise(url))
    except ValueError:
        return []
    return [segment for segment in str(parsed.path or "").split("/") if segment]


def citation_key(url: str) -> str:
    """Identity used to deduplicate citations: scheme/host case-folded, no trailing slash or fragment."""
    value = strip_url_tail_noise(url)
    try:
        parsed = urlparse(value)
    except ValueError:
        return value
    if not parsed.scheme:
        return value.rstrip("/")
    path = str(parsed.path or "")
    if path != "/" and path.endswith("/"):
        path = path[:-1]
    if path == "/":
        path = ""
    return urlunparse((parsed.scheme.lower(), str(parsed.netloc or "").lower(), path, parsed.params, parsed.query, ""))


def html_to_text(value: str) -> str:
    """Drop inline tags and entities, collapse whitespace."""
    text = _HTML_TAG_RE.sub(" ", str(value or ""))
    text = html_lib.unescape(text)
    return re.sub(r"\s+", " ", text).strip()
