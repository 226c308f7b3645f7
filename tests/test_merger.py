from __future__ import annotations

import pytest

from core import BackendId, Topic, make_citation
from digest.merger import (
    compute_overall_score,
    filter_valid_citations,
    merge_and_rank,
    merge_topics,
)


def _topic(title: str, urls, *, source=BackendId.DEEP_RESEARCH, **fields) -> Topic:
    return Topic(
        title=title,
        citations=[make_citation(f"Source {idx}", url) for idx, url in enumerate(urls)],
        source=source,
        **fields,
    )


def _all_valid(*topic_lists) -> dict:
    return {item.url: True for topics in topic_lists for topic in topics for item in topic.citations}


def test_same_title_from_both_backends_merges_into_one_topic_with_union_of_citations() -> None:
    fields = dict(summary="s" * 120, viral_reason="v" * 80, value_reason="w" * 50, insights="i" * 30)
    topic_a = _topic("OpenAI Releases Model X", ["https://openai.com/a", "https://techcrunch.com/a"], **fields)
    topic_b = _topic(
        "OpenAI Releases Model X",
        ["https://wired.com/b", "https://arxiv.org/abs/b"],
        source=BackendId.SOCIAL_SEARCH,
        **fields,
    )

    ranked = merge_and_rank([topic_a], [topic_b], _all_valid([topic_a], [topic_b]), 5)

    assert len(ranked) == 1
    merged = ranked[0]
    assert len({item.url for item in merged.citations}) == 4
    content_bonus = min(50, (120 + 80 + 50 + 30) / 100)
    assert merged.overall_score == pytest.approx(100 + 40 + 0 + content_bonus)
    assert merged.source == BackendId.DEEP_RESEARCH


def test_adding_one_valid_citation_adds_exactly_ten() -> None:
    base = _topic("Chip rules", ["https://wired.com/1"], summary="x" * 700, social_impact_score=12.5)
    more = base.model_copy(update={"citations": base.citations + [make_citation("Two", "https://wired.com/2")]})
    assert compute_overall_score(more) - compute_overall_score(base) == pytest.approx(10.0)


def test_content_bonus_is_capped() -> None:
    topic = _topic("Long", ["https://wired.com/1"], summary="x" * 100_000)
    assert compute_overall_score(topic) == pytest.approx(100 + 10 + 50)


def test_merging_same_topic_twice_is_idempotent_on_citations() -> None:
    existing = _topic("Agents", ["https://wired.com/1"])
    incoming = _topic("Agents", ["https://wired.com/2", "https://wired.com/1"], source=BackendId.SOCIAL_SEARCH)

    once = merge_topics(existing, incoming)
    twice = merge_topics(once, incoming)

    assert once.citation_urls() == ["https://wired.com/1", "https://wired.com/2"]
    assert twice.citation_urls() == once.citation_urls()


def test_merge_fills_empty_fields_without_overwriting() -> None:
    existing = _topic("Agents", ["https://wired.com/1"], viral_reason="", value_reason="Original value", insights="")
    incoming = _topic(
        "agents",
        ["https://wired.com/2"],
        source=BackendId.SOCIAL_SEARCH,
        viral_reason="Trending",
        value_reason="Other value",
        insights="Deep dive",
    )
    merged = merge_topics(existing, incoming)

    assert merged.viral_reason == "Trending"
    assert merged.value_reason == "Original value"
    assert merged.insights == "Deep dive"


def test_title_substring_merges_case_insensitively() -> None:
    topic_a = _topic("Google Gemini 3 launch", ["https://wired.com/1"])
    topic_b = _topic("gemini 3", ["https://wired.com/2"], source=BackendId.SOCIAL_SEARCH)
    topic_c = _topic("Robotics", ["https://wired.com/3"], source=BackendId.SOCIAL_SEARCH)

    ranked = merge_and_rank([topic_a], [topic_b, topic_c], _all_valid([topic_a], [topic_b, topic_c]), 5)

    assert sorted(topic.title for topic in ranked) == ["Google Gemini 3 launch", "Robotics"]


def test_topic_with_only_future_dated_citations_is_dropped() -> None:
    doomed = _topic("Model Y", ["https://techcrunch.com/2027/01/01/a", "https://techcrunch.com/2028/b"])
    kept = _topic("Model Z", ["https://techcrunch.com/2026/10/01/z"])
    validity = {
        "https://techcrunch.com/2027/01/01/a": False,
        "https://techcrunch.com/2028/b": False,
        "https://techcrunch.com/2026/10/01/z": True,
    }

    ranked = merge_and_rank([doomed, kept], [], validity, 5)

    assert [topic.title for topic in ranked] == ["Model Z"]


def test_every_surviving_topic_keeps_only_valid_citations() -> None:
    topic = _topic("Mixed", ["https://wired.com/ok", "https://bad.example/x", "https://wired.com/unknown"])
    filtered = filter_valid_citations([topic], {"https://wired.com/ok": True, "https://bad.example/x": False})

    assert filtered[0].citation_urls() == ["https://wired.com/ok"]
    assert topic.citation_urls() == ["https://wired.com/ok", "https://bad.example/x", "https://wired.com/unknown"]


def test_rank_truncates_to_n_and_never_pads() -> None:
    topics = [_topic(f"Topic {name}", [f"https://wired.com/{name}"] * 1) for name in "abcdefg"]
    validity = _all_valid(topics)

    assert len(merge_and_rank(topics, [], validity, 5)) == 5
    assert len(merge_and_rank(topics[:3], [], validity, 5)) == 3


def test_rank_is_stable_for_equal_scores() -> None:
    topics = [_topic(name, [f"https://wired.com/{name}"]) for name in ("first", "second", "third")]
    ranked = merge_and_rank(topics, [], _all_valid(topics), 5)
    assert [topic.title for topic in ranked] == ["first", "second", "third"]


def test_rank_orders_by_overall_score_descending() -> None:
    low = _topic("Low", ["https://wired.com/l"])
    high = _topic("High", ["https://wired.com/h1", "https://wired.com/h2"])
    social = _topic("Social", ["https://wired.com/s"], social_impact_score=25.0)

    ranked = merge_and_rank([low, high, social], [], _all_valid([low, high, social]), 5)

    assert [topic.title for topic in ranked] == ["Social", "High", "Low"]
