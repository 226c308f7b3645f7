from __future__ import annotations

from datetime import datetime, timezone

from core import BackendId, Hashtag, SocialPost, Topic, make_citation
from digest.assembler import assemble, publish, render_html, render_topic_html
from digest.parser import parse_response
from storage import MemoryDigestStore


CYCLE = datetime(2026, 10, 17, 9, 30, tzinfo=timezone.utc)


def _topic(title: str, url: str, **kwargs) -> Topic:
    return Topic(
        title=title,
        summary="A <strong>major</strong> release.",
        viral_reason="Trending everywhere.",
        value_reason="Moves the field.",
        insights="Analysts are upbeat.",
        citations=[make_citation('Coverage "quoted" & more', url)],
        source=BackendId.DEEP_RESEARCH,
        overall_score=150.0,
        **kwargs,
    )


def test_assemble_stamps_cycle_time_and_title_window() -> None:
    digest = assemble([_topic("Model X", "https://openai.com/x")], "Lead paragraph.", CYCLE)

    assert digest.title == "Weekly AI News Digest: October 10, 2026 - October 17, 2026"
    assert digest.generated_at == CYCLE
    assert digest.published_at == CYCLE
    assert digest.date == "2026-10-17"
    assert digest.summary == "Lead paragraph."


def test_assemble_preserves_topic_order_in_object_and_html() -> None:
    topics = [_topic("Second Best", "https://wired.com/2"), _topic("Best", "https://wired.com/1")]
    digest = assemble(topics, "Lead.", CYCLE)

    assert [topic.title for topic in digest.topics] == ["Second Best", "Best"]
    assert digest.raw_html.index("Second Best") < digest.raw_html.index("<h3>Best</h3>")


def test_rendered_html_round_trips_through_parser() -> None:
    topics = [
        _topic(
            "Model X & Friends",
            "https://openai.com/x?a=1&b=2",
            related_posts=[SocialPost(id="1", author_handle="sam", url="https://x.com/sam/status/1")],
            related_hashtags=[Hashtag(tag="ModelX")],
        )
    ]
    html = render_html("Weekly AI News Digest", "Lead.", topics)
    parsed = parse_response(html, BackendId.DEEP_RESEARCH)

    assert parsed.summary_text == "Lead."
    assert len(parsed.topics) == 1
    topic = parsed.topics[0]
    assert topic.title == "Model X & Friends"
    assert topic.summary == "A <strong>major</strong> release."
    assert topic.citation_urls() == ["https://openai.com/x?a=1&b=2"]
    assert topic.citations[0].title == 'Coverage "quoted" & more'
    assert parsed.trending_hashtags == ["ModelX"]


def test_digest_payload_uses_camel_case_keys() -> None:
    payload = assemble([_topic("Model X", "https://openai.com/x")], "Lead.", CYCLE).to_payload()

    assert {"title", "generatedAt", "publishedAt", "rawHtml", "summary", "topics"} <= set(payload)
    topic = payload["topics"][0]
    assert {"viralReason", "valueReason", "socialImpactScore", "overallScore", "relatedPosts"} <= set(topic)
    assert topic["source"] == "backendA"
    assert topic["citations"][0]["kind"] == "article"


def test_publish_keeps_previous_latest_as_backup() -> None:
    first = assemble([_topic("Old", "https://wired.com/old")], "Old lead.", CYCLE)
    second = assemble([_topic("New", "https://wired.com/new")], "New lead.", CYCLE)

    with MemoryDigestStore() as store:
        publish(first, store)
        publish(second, store)

        assert store.read().topics[0].title == "New"
        assert store.read("latest.backup").topics[0].title == "Old"


def test_non_http_post_urls_are_rendered_without_a_link() -> None:
    topic = _topic(
        "Model X",
        "https://openai.com/x",
        related_posts=[
            SocialPost(id="1", author_handle="mallory", url="javascript:alert(1)"),
            SocialPost(id="2", author_handle="sam", url="https://x.com/sam/status/2"),
        ],
    )
    html = render_topic_html(topic)

    assert "javascript:" not in html
    assert "@mallory" in html
    assert '<a href="https://x.com/sam/status/2">@sam</a>' in html
