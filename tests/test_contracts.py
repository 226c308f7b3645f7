from __future__ import annotations

import pydantic
import pytest

from core import (
    ArticleCitation,
    BackendId,
    CitationCheck,
    Hashtag,
    SocialPost,
    SocialPostCitation,
    Topic,
    make_citation,
)


@pytest.mark.parametrize(
    "url",
    [
        "https://x.com/openai/status/1",
        "https://www.twitter.com/openai/status/1",
        "https://mobile.twitter.com/openai/status/1",
    ],
)
def test_social_hosts_become_social_post_citations(url: str) -> None:
    assert isinstance(make_citation("post", url), SocialPostCitation)


@pytest.mark.parametrize("url", ["https://box.com/x", "https://techcrunch.com/a", "not a url"])
def test_other_hosts_become_article_citations(url: str) -> None:
    assert isinstance(make_citation("article", url), ArticleCitation)


def test_citations_are_immutable() -> None:
    citation = make_citation("Blog", "https://openai.com/blog")
    with pytest.raises(pydantic.ValidationError):
        citation.title = "changed"


def test_topic_accepts_camel_case_payload_with_tagged_citations() -> None:
    topic = Topic.model_validate(
        {
            "title": "Model X",
            "viralReason": "Everywhere",
            "socialImpactScore": 4.5,
            "source": "backendB",
            "citations": [
                {"kind": "social-post", "title": "Post", "url": "https://x.com/a/status/1"},
                {"kind": "article", "title": "Story", "url": "https://wired.com/x"},
            ],
        }
    )

    assert topic.viral_reason == "Everywhere"
    assert topic.source == BackendId.SOCIAL_SEARCH
    assert [type(item) for item in topic.citations] == [SocialPostCitation, ArticleCitation]


def test_social_post_counts_are_clamped_to_non_negative() -> None:
    post = SocialPost(id="1", like_count=-5, share_count="12", reply_count=None)
    assert (post.like_count, post.share_count, post.reply_count) == (0, 12, 0)


def test_hashtag_strips_leading_hash_and_rejects_empty() -> None:
    assert Hashtag(tag="#GenAI").tag == "GenAI"
    with pytest.raises(pydantic.ValidationError):
        Hashtag(tag="#")


def test_citation_check_requires_all_three_conditions() -> None:
    url = "https://techcrunch.com/a"
    assert CitationCheck(url=url, accessible=True, trusted=True).valid is True
    assert CitationCheck(url=url, accessible=True, trusted=True, future_dated=True).valid is False
    assert CitationCheck(url=url, accessible=False, trusted=True).valid is False
    assert CitationCheck(url=url, accessible=True, trusted=False).valid is False
