"""Parse a research backend's HTML-ish response into ordered topic records."""

from __future__ import annotations

import logging
import re
from typing import List, Optional, Tuple

from core import BackendId, BlockError, ParseResult, Topic, make_citation
from utils.exceptions import ParseError

from .sanitize import citation_key, html_to_text, strip_url_tail_noise


logger = logging.getLogger(__name__)

DEFAULT_LEAD_SUMMARY = "Weekly digest of viral and valuable AI news topics."

_FLAGS = re.IGNORECASE | re.DOTALL
_THINK_RE = re.compile(r"<think>.*?</think>", _FLAGS)
_LEAD_RE = re.compile(r"<h1[^>]*>.*?</h1>\s*<p[^>]*>(.*?)</p>", _FLAGS)
_TOPIC_START_RE = re.compile(r"<div\s+class=[\"']topic[\"'][^>]*>", re.IGNORECASE)
_TITLE_RE = re.compile(r"<h3[^>]*>(.*?)</h3>", _FLAGS)
_LINK_RE = re.compile(r"<a\b([^>]*)>(.*?)</a>", _FLAGS)
_HREF_RE = re.compile(r"href\s*=\s*[\"']([^\"']*)[\"']", re.IGNORECASE)
_TRENDING_RE = re.compile(r"<h2[^>]*>\s*Trending[^<]*Hashtags[^<]*</h2>\s*<ul[^>]*>(.*?)</ul>", _FLAGS)
_TRENDING_ITEM_RE = re.compile(r"<li[^>]*>\s*#([^<\s-]+)", re.IGNORECASE)
_INLINE_HASHTAG_RE = re.compile(r"#(\w+)")

# (attribute, label) in the order a topic block must present them
REQUIRED_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("summary", "Summary"),
    ("viral_reason", "Why Viral"),
    ("value_reason", "Why Valuable"),
    ("insights", "Insights"),
)
CITATIONS_LABEL = "Citations"
OPTIONAL_LABELS = ("X Posts", "Related Hashtags")


def _field_re(label: str) -> re.Pattern:
    return re.compile(
        r"<p[^>]*>\s*<strong>\s*" + re.escape(label) + r"\s*:?\s*</strong>\s*:?\s*(.*?)</p>",
        _FLAGS,
    )


_FIELD_RES = {label: _field_re(label) for label in [lbl for _, lbl in REQUIRED_FIELDS] + [CITATIONS_LABEL, *OPTIONAL_LABELS]}


def strip_think_block(text: str) -> str:
    return _THINK_RE.sub("", str(text or ""))


def extract_lead_summary(text: str) -> str:
    match = _LEAD_RE.search(text)
    if match:
        lead = match.group(1).strip()
        if lead:
            return lead
    return DEFAULT_LEAD_SUMMARY


def split_topic_blocks(text: str) -> List[str]:
    """Each ``div.topic`` up to its closing tag (or the next topic when unclosed)."""
    starts = list(_TOPIC_START_RE.finditer(text))
    blocks = []
    for idx, match in enumerate(starts):
        end = starts[idx + 1].start() if idx + 1 < len(starts) else len(text)
        segment = text[match.end():end]
        blocks.append(re.split(r"</div\s*>", segment, maxsplit=1, flags=re.IGNORECASE)[0])
    return blocks


def extract_citations(fragment: str, index: int = -1) -> list:
    citations = []
    seen = set()
    for attrs, inner in _LINK_RE.findall(fragment):
        href = _HREF_RE.search(attrs)
        url = strip_url_tail_noise(href.group(1)) if href else ""
        title = html_to_text(inner)
        if not url or not title:
            logger.debug("citation_skipped block=%s url=%r title=%r", index, url, title)
            continue
        key = citation_key(url)
        if key in seen:
            continue
        seen.add(key)
        citations.append(make_citation(title, url))
    return citations


def extract_hashtags(fragment: str) -> List[str]:
    return _INLINE_HASHTAG_RE.findall(html_to_text(fragment))


def _search_from(label: str, block: str, pos: int) -> Optional[re.Match]:
    return _FIELD_RES[label].search(block, pos)


def parse_topic_block(block: str, backend: BackendId, index: int = 0) -> Tuple[Topic, List[str]]:
    """
    Parse one topic block.

    Returns the topic plus any hashtags listed under ``Related Hashtags``.
    Raises ParseError naming every required field that is absent or out of order.
    """
    missing: List[str] = []
    fields = {}

    title_match = _TITLE_RE.search(block)
    title = html_to_text(title_match.group(1)) if title_match else ""
    if not title:
        missing.append("Title")
    pos = title_match.end() if title_match else 0

    for attr, label in REQUIRED_FIELDS:
        match = _search_from(label, block, pos)
        if match is None:
            missing.append(label)
            continue
        fields[attr] = match.group(1).strip()
        pos = match.end()

    citations_match = _search_from(CITATIONS_LABEL, block, pos)
    if citations_match is None:
        missing.append(CITATIONS_LABEL)

    if missing:
        raise ParseError(
            f"topic block {index} is missing fields: {', '.join(missing)}",
            index=index,
            missing_fields=missing,
        )

    related_tags: List[str] = []
    middle = block[pos:citations_match.start()]
    hashtags_match = _FIELD_RES["Related Hashtags"].search(middle)
    if hashtags_match:
        related_tags = extract_hashtags(hashtags_match.group(1))

    topic = Topic(
        title=title,
        citations=extract_citations(citations_match.group(1), index),
        source=backend,
        **fields,
    )
    return topic, related_tags


def extract_trending_hashtags(text: str) -> List[str]:
    match = _TRENDING_RE.search(text)
    if not match:
        return []
    return _TRENDING_ITEM_RE.findall(match.group(1))


def _dedupe_tags(tags: List[str]) -> List[str]:
    seen = set()
    result = []
    for tag in tags:
        key = tag.lower()
        if key and key not in seen:
            seen.add(key)
            result.append(tag)
    return result


def parse_response(raw_text: str, backend: BackendId) -> ParseResult:
    """
    Parse a full backend response.

    Malformed blocks are skipped and reported in ``ParseResult.errors``;
    topic order follows the document.
    """
    text = strip_think_block(raw_text)
    summary_text = extract_lead_summary(text)

    topics: List[Topic] = []
    errors: List[BlockError] = []
    hashtags: List[str] = []

    blocks = split_topic_blocks(text)
    for idx, block in enumerate(blocks):
        try:
            topic, related_tags = parse_topic_block(block, backend, idx)
        except ParseError as exc:
            errors.append(BlockError(index=idx, reason=exc.message, missing_fields=exc.missing_fields))
            continue
        topics.append(topic)
        hashtags.extend(related_tags)

    trending = extract_trending_hashtags(text)
    if not blocks:
        logger.warning("parse_no_topic_blocks backend=%s chars=%s", backend.value, len(text))
    elif errors:
        logger.warning(
            "parse_blocks_malformed backend=%s parsed=%s malformed=%s missing=%s",
            backend.value,
            len(topics),
            len(errors),
            sorted({field for err in errors for field in err.missing_fields}),
        )
    else:
        logger.info("parse_ok backend=%s topics=%s", backend.value, len(topics))

    return ParseResult(
        backend=backend,
        topics=topics,
        summary_text=summary_text,
        trending_hashtags=_dedupe_tags(trending + hashtags),
        errors=errors,
    )
