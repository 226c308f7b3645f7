"""Build the canonical digest object and its HTML view; hand it to storage."""

from __future__ import annotations

import html as html_lib
import logging
from datetime import datetime, timezone
from typing import List

from core import Digest, SocialPost, Topic
from sources.prompts import digest_title
from storage import LATEST_KEY, BaseDigestStore

from .parser import DEFAULT_LEAD_SUMMARY
from .sanitize import is_valid_http_url


logger = logging.getLogger(__name__)


def _escape(value: str) -> str:
    return html_lib.escape(str(value or ""), quote=True)


def _anchor(url: str, title: str) -> str:
    return f'<a href="{_escape(url)}">{_escape(title)}</a>'


def _post_reference(post: SocialPost) -> str:
    label = f"@{post.author_handle}" if post.author_handle else post.id
    if is_valid_http_url(post.url):
        return _anchor(post.url, label)
    return _escape(label)


def render_topic_html(topic: Topic) -> str:
    lines = [
        '<div class="topic">',
        f"  <h3>{_escape(topic.title)}</h3>",
        f"  <p><strong>Summary:</strong> {topic.summary}</p>",
        f"  <p><strong>Why Viral:</strong> {topic.viral_reason}</p>",
        f"  <p><strong>Why Valuable:</strong> {topic.value_reason}</p>",
        f"  <p><strong>Insights:</strong> {topic.insights}</p>",
    ]
    if topic.related_posts:
        posts = ", ".join(_post_reference(post) for post in topic.related_posts)
        lines.append(f"  <p><strong>X Posts:</strong> {posts}</p>")
    if topic.related_hashtags:
        tags = " ".join(_escape(f"#{tag.tag}") for tag in topic.related_hashtags)
        lines.append(f"  <p><strong>Related Hashtags:</strong> {tags}</p>")
    citations = ", ".join(_anchor(item.url, item.title) for item in topic.citations)
    lines.append(f"  <p><strong>Citations:</strong> {citations}</p>")
    lines.append("</div>")
    return "\n".join(lines)


def render_html(title: str, summary: str, topics: List[Topic]) -> str:
    """Render the digest in the same grammar the response parser reads."""
    parts = [
        f"<h1>{_escape(title)}</h1>",
        f"<p>{summary}</p>",
        f"<h2>Top {len(topics)} AI Topics This Week</h2>",
    ]
    parts.extend(render_topic_html(topic) for topic in topics)
    return "\n\n".join(parts) + "\n"


def assemble(
    ranked_topics: List[Topic],
    lead_summary: str,
    cycle_date: datetime,
    window_days: int = 7,
) -> Digest:
    """
    Create the digest for one cycle.

    Timestamps come from ``cycle_date`` only; topic order is preserved.
    """
    if cycle_date.tzinfo is None:
        cycle_date = cycle_date.replace(tzinfo=timezone.utc)
    title = digest_title(cycle_date, window_days)
    summary = str(lead_summary or "").strip() or DEFAULT_LEAD_SUMMARY
    topics = list(ranked_topics)
    return Digest(
        title=title,
        date=cycle_date.date().isoformat(),
        generated_at=cycle_date,
        summary=summary,
        topics=topics,
        raw_html=render_html(title, summary, topics),
        published_at=cycle_date,
    )


def publish(digest: Digest, store: BaseDigestStore, key: str = LATEST_KEY) -> None:
    """Write as the new ``latest``, keeping the previous one as its backup."""
    store.write(digest, key=key, keep_backup=True)
    logger.info("digest_published key=%s title=%r topics=%s", key, digest.title, len(digest.topics))
