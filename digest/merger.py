"""Citation filtering, cross-backend topic merging, composite scoring and top-N ranking."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from core import Topic

from .sanitize import citation_key


logger = logging.getLogger(__name__)

BASE_SCORE = 100.0
CITATION_WEIGHT = 10.0
CONTENT_BONUS_CAP = 50.0
CONTENT_BONUS_DIVISOR = 100.0
DEFAULT_TOP_N = 5

_FILLABLE_FIELDS = ("viral_reason", "value_reason", "insights")


def content_bonus(topic: Topic) -> float:
    return min(CONTENT_BONUS_CAP, topic.content_length() / CONTENT_BONUS_DIVISOR)


def compute_overall_score(topic: Topic) -> float:
    """100 + 10 per citation + social impact + capped write-up length bonus."""
    return BASE_SCORE + CITATION_WEIGHT * len(topic.citations) + topic.social_impact_score + content_bonus(topic)


def filter_valid_citations(topics: List[Topic], validity: Dict[str, bool]) -> List[Topic]:
    """Keep only citations marked valid; topics left without citations are dropped."""
    kept = []
    for topic in topics:
        citations = [item for item in topic.citations if validity.get(item.url, False)]
        if not citations:
            logger.info("topic_dropped reason=no_valid_citations source=%s title=%r", topic.source.value, topic.title)
            continue
        kept.append(topic.model_copy(update={"citations": citations}))
    return kept


def titles_match(left: str, right: str) -> bool:
    a = str(left or "").strip().lower()
    b = str(right or "").strip().lower()
    if not a or not b:
        return False
    return a in b or b in a


def merge_topics(existing: Topic, incoming: Topic) -> Topic:
    """
    Fold ``incoming`` into ``existing``.

    Citations are unioned by URL with existing order first. Empty rationale and
    insight fields are filled; non-empty ones are never overwritten.
    """
    citations = list(existing.citations)
    seen = {citation_key(item.url) for item in citations}
    for item in incoming.citations:
        key = citation_key(item.url)
        if key in seen:
            continue
        seen.add(key)
        citations.append(item)

    update = {"citations": citations}
    for name in _FILLABLE_FIELDS:
        if not str(getattr(existing, name) or "").strip() and str(getattr(incoming, name) or "").strip():
            update[name] = getattr(incoming, name)
    return existing.model_copy(update=update)


def merge_topic_lists(primary: List[Topic], secondary: List[Topic]) -> List[Topic]:
    merged = list(primary)
    for incoming in secondary:
        target: Optional[int] = next(
            (idx for idx, topic in enumerate(merged) if titles_match(topic.title, incoming.title)),
            None,
        )
        if target is None:
            merged.append(incoming)
            continue
        logger.debug("topic_merged into=%r from=%r", merged[target].title, incoming.title)
        merged[target] = merge_topics(merged[target], incoming)
    return merged


def rank_topics(topics: List[Topic], top_n: int = DEFAULT_TOP_N) -> List[Topic]:
    scored = [topic.model_copy(update={"overall_score": compute_overall_score(topic)}) for topic in topics]
    scored.sort(key=lambda topic: -topic.overall_score)
    return scored[: max(0, int(top_n))]


def merge_and_rank(
    topics_a: List[Topic],
    topics_b: List[Topic],
    validity: Dict[str, bool],
    top_n: int = DEFAULT_TOP_N,
) -> List[Topic]:
    """
    Filter both backends' topics by citation validity, merge same-subject
    topics (backend A seeds the list), score, and keep the best ``top_n``.
    Never pads when fewer topics survive.
    """
    filtered_a = filter_valid_citations(topics_a, validity)
    filtered_b = filter_valid_citations(topics_b, validity)
    merged = merge_topic_lists(filtered_a, filtered_b)
    ranked = rank_topics(merged, top_n)
    logger.info(
        "merge_done a_in=%s b_in=%s a_kept=%s b_kept=%s merged=%s ranked=%s",
        len(topics_a),
        len(topics_b),
        len(filtered_a),
        len(filtered_b),
        len(merged),
        len(ranked),
    )
    return ranked
