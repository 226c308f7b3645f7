"""Keyword matching of social posts/hashtags to topics and social impact scoring."""

from __future__ import annotations

import logging
import math
import string
from dataclasses import dataclass, field
from typing import List

from core import Hashtag, SocialPool, SocialPost, Topic

from .sanitize import html_to_text


logger = logging.getLogger(__name__)

MIN_KEYWORD_LENGTH = 4
DEFAULT_RELATED_LIMIT = 3
VERIFIED_BONUS = 1.2

_TRIM_CHARS = string.punctuation + "“”‘’…–—"


@dataclass
class SocialScore:
    """Social evidence attached to one topic."""

    related_posts: List[SocialPost] = field(default_factory=list)
    related_hashtags: List[Hashtag] = field(default_factory=list)
    social_impact_score: float = 0.0


def topic_keywords(topic: Topic) -> List[str]:
    """Lower-cased title+summary words longer than 3 chars, deduplicated in first-seen order."""
    text = f"{html_to_text(topic.title)} {html_to_text(topic.summary)}".lower()
    keywords: List[str] = []
    seen = set()
    for raw in text.split():
        word = raw.strip(_TRIM_CHARS)
        if len(word) < MIN_KEYWORD_LENGTH or word in seen:
            continue
        seen.add(word)
        keywords.append(word)
    return keywords


def post_impact_score(post: SocialPost) -> float:
    """Engagement weighted by reach and verification; cached on the post."""
    if post.impact_score is not None:
        return post.impact_score
    engagement = post.like_count + 2 * post.share_count + 3 * post.quote_count + post.reply_count
    followers = post.author_follower_count
    follower_factor = math.log10(followers) / 6 if followers > 0 else 0.0
    verified_bonus = VERIFIED_BONUS if post.author_verified else 1.0
    post.impact_score = engagement * (1 + follower_factor) * verified_bonus
    return post.impact_score


def hashtag_impact_score(hashtag: Hashtag) -> float:
    if hashtag.impact_score is not None:
        return hashtag.impact_score
    hashtag.impact_score = (hashtag.total_likes + 2 * hashtag.total_shares) / 10
    return hashtag.impact_score


def _match_count(text: str, keywords: List[str]) -> int:
    lowered = str(text or "").lower()
    return sum(1 for keyword in keywords if keyword in lowered)


def related_posts(keywords: List[str], posts: List[SocialPost], limit: int = DEFAULT_RELATED_LIMIT) -> List[SocialPost]:
    matched = []
    for post in posts:
        count = _match_count(post.content, keywords)
        if count > 0:
            matched.append((count, post))
    # ties keep pool order
    matched.sort(key=lambda pair: -pair[0])
    return [post for _, post in matched[:limit]]


def related_hashtags(keywords: List[str], hashtags: List[Hashtag], limit: int = DEFAULT_RELATED_LIMIT) -> List[Hashtag]:
    matched = [tag for tag in hashtags if _match_count(tag.tag, keywords) > 0]
    matched.sort(key=lambda tag: -hashtag_impact_score(tag))
    return matched[:limit]


def score_topic(topic: Topic, pool: SocialPool, limit: int = DEFAULT_RELATED_LIMIT) -> SocialScore:
    keywords = topic_keywords(topic)
    if not keywords:
        return SocialScore()

    posts = related_posts(keywords, pool.posts, limit)
    hashtags = related_hashtags(keywords, pool.hashtags, limit)
    impacts = [post_impact_score(post) for post in posts] + [hashtag_impact_score(tag) for tag in hashtags]
    score = round(sum(impacts) / len(impacts), 2) if impacts else 0.0
    return SocialScore(related_posts=posts, related_hashtags=hashtags, social_impact_score=score)


def apply_social_scores(topics: List[Topic], pool: SocialPool, limit: int = DEFAULT_RELATED_LIMIT) -> List[Topic]:
    """Return copies of ``topics`` carrying their social evidence. Pool records are shared, not copied."""
    scored = []
    for topic in topics:
        result = score_topic(topic, pool, limit)
        scored.append(
            topic.model_copy(
                update={
                    "related_posts": list(result.related_posts),
                    "related_hashtags": list(result.related_hashtags),
                    "social_impact_score": result.social_impact_score,
                }
            )
        )
    if topics:
        logger.info(
            "social_scored topics=%s with_evidence=%s pool_posts=%s pool_hashtags=%s",
            len(topics),
            sum(1 for topic in scored if topic.related_posts or topic.related_hashtags),
            len(pool.posts),
            len(pool.hashtags),
        )
    return scored
