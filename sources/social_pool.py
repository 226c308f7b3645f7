"""Social signal pool providers: live companion call and synthetic offline pool."""

from __future__ import annotations

import json
import logging
import random
import re
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional

from pydantic import ValidationError

from core import Hashtag, SocialPool, SocialPost, Topic
from utils.exceptions import BackendError, MissingCredentialError

from .prompts import SOCIAL_POOL_SYSTEM_PROMPT, build_social_pool_prompt
from .social_search import SocialSearchClient


logger = logging.getLogger(__name__)

_CODE_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", flags=re.IGNORECASE)

# Field spellings seen in older social payloads.
_POST_KEY_ALIASES = {
    "authorUsername": "authorHandle",
    "isVerified": "authorVerified",
    "authorFollowersCount": "authorFollowerCount",
    "likesCount": "likeCount",
    "retweetsCount": "shareCount",
    "repliesCount": "replyCount",
    "quotesCount": "quoteCount",
}
_HASHTAG_KEY_ALIASES = {
    "hashtag": "tag",
    "tweetCount": "postCount",
    "totalRetweets": "totalShares",
}


class SocialSignalProvider(ABC):
    """Supplies the post/hashtag pool that topics are matched against."""

    name: str = "base"

    def __init__(self, max_posts: int = 20, max_hashtags: int = 20):
        self.max_posts = max(0, int(max_posts))
        self.max_hashtags = max(0, int(max_hashtags))

    @abstractmethod
    async def fetch_pool(self, topics: List[Topic], trending_hashtags: Iterable[str] = ()) -> SocialPool:
        """Return this cycle's social pool. Never raises for upstream failures."""

    def _cap(self, posts: List[SocialPost], hashtags: List[Hashtag]) -> SocialPool:
        return SocialPool(posts=posts[: self.max_posts], hashtags=hashtags[: self.max_hashtags])


def aggregate_hashtags(posts: Iterable[SocialPost]) -> List[Hashtag]:
    """Build hashtag totals from post tags, in order of first appearance."""
    totals: Dict[str, Dict[str, int]] = {}
    for post in posts:
        seen_in_post = set()
        for raw in post.hashtags:
            tag = str(raw or "").strip().lstrip("#")
            key = tag.lower()
            if not tag or key in seen_in_post:
                continue
            seen_in_post.add(key)
            entry = totals.setdefault(key, {"tag": tag, "post_count": 0, "total_likes": 0, "total_shares": 0, "total_replies": 0})
            entry["post_count"] += 1
            entry["total_likes"] += post.like_count
            entry["total_shares"] += post.share_count
            entry["total_replies"] += post.reply_count
    return [Hashtag(**entry) for entry in totals.values()]


def _rename_keys(item: Dict[str, Any], aliases: Dict[str, str]) -> Dict[str, Any]:
    renamed = dict(item)
    for old, new in aliases.items():
        if old in renamed and new not in renamed:
            renamed[new] = renamed.pop(old)
    return renamed


def extract_json_payload(text: str) -> Dict[str, Any]:
    """Pull the JSON object out of a chat response that may wrap it in prose or code fences."""
    value = _CODE_FENCE_RE.sub("", str(text or "").strip())
    start = value.find("{")
    end = value.rfind("}")
    if start < 0 or end <= start:
        raise ValueError("no JSON object in response")
    payload = json.loads(value[start : end + 1])
    if not isinstance(payload, dict):
        raise ValueError("JSON payload is not an object")
    return payload


def parse_pool_payload(payload: Dict[str, Any]) -> tuple:
    """Validate raw pool JSON into posts and hashtags, skipping invalid entries."""
    posts: List[SocialPost] = []
    raw_posts = payload.get("posts")
    if raw_posts is None:
        raw_posts = payload.get("tweets") or []
    for idx, item in enumerate(raw_posts if isinstance(raw_posts, list) else []):
        if not isinstance(item, dict):
            continue
        data = _rename_keys(item, _POST_KEY_ALIASES)
        data.setdefault("id", str(data.get("url") or f"post-{idx}"))
        data["id"] = str(data["id"])
        try:
            posts.append(SocialPost.model_validate(data))
        except ValidationError as exc:
            logger.debug("social_post_invalid index=%s error=%s", idx, exc)

    hashtags: List[Hashtag] = []
    raw_tags = payload.get("hashtags") or []
    for idx, item in enumerate(raw_tags if isinstance(raw_tags, list) else []):
        if isinstance(item, str):
            item = {"tag": item}
        if not isinstance(item, dict):
            continue
        try:
            hashtags.append(Hashtag.model_validate(_rename_keys(item, _HASHTAG_KEY_ALIASES)))
        except ValidationError as exc:
            logger.debug("social_hashtag_invalid index=%s error=%s", idx, exc)
    return posts, hashtags


class LiveSocialSignalProvider(SocialSignalProvider):
    """Asks the social-search backend for recent AI post activity as JSON."""

    name = "live"

    def __init__(self, client: SocialSearchClient, max_posts: int = 20, max_hashtags: int = 20):
        super().__init__(max_posts=max_posts, max_hashtags=max_hashtags)
        self.client = client

    async def fetch_pool(self, topics: List[Topic], trending_hashtags: Iterable[str] = ()) -> SocialPool:
        prompt = build_social_pool_prompt(trending_hashtags, limit=self.max_posts)
        try:
            text = await self.client.fetch(prompt, system_prompt=SOCIAL_POOL_SYSTEM_PROMPT)
        except (MissingCredentialError, BackendError) as exc:
            logger.warning("social_pool_unavailable provider=live error=%s", exc)
            return SocialPool()

        try:
            payload = extract_json_payload(text)
        except ValueError as exc:
            logger.warning("social_pool_unparseable provider=live error=%s", exc)
            return SocialPool()

        posts, hashtags = parse_pool_payload(payload)
        if not hashtags:
            hashtags = aggregate_hashtags(posts)
        pool = self._cap(posts, hashtags)
        logger.info("social_pool_ready provider=live posts=%s hashtags=%s", len(pool.posts), len(pool.hashtags))
        return pool


class SyntheticSocialSignalProvider(SocialSignalProvider):
    """Deterministic pool derived from topic titles. For tests and offline runs."""

    name = "synthetic"

    _HANDLES = ("ai_daily", "ml_researcher", "techreporter", "llm_watch", "datasci_news", "gpu_whisperer")

    def __init__(self, seed: int = 7, max_posts: int = 20, max_hashtags: int = 20, posts_per_topic: int = 2):
        super().__init__(max_posts=max_posts, max_hashtags=max_hashtags)
        self.seed = seed
        self.posts_per_topic = max(1, int(posts_per_topic))

    @staticmethod
    def _tag_for(title: str) -> str:
        words = [re.sub(r"[^A-Za-z0-9]", "", word) for word in title.split()]
        words = [word for word in words if len(word) > 3]
        return "".join(word.capitalize() for word in words[:2]) or "AI"

    async def fetch_pool(self, topics: List[Topic], trending_hashtags: Iterable[str] = ()) -> SocialPool:
        rng = random.Random(self.seed)
        posts: List[SocialPost] = []
        for topic_idx, topic in enumerate(topics):
            tag = self._tag_for(topic.title)
            for n in range(self.posts_per_topic):
                handle = rng.choice(self._HANDLES)
                post_id = f"synthetic-{topic_idx}-{n}"
                posts.append(
                    SocialPost(
                        id=post_id,
                        content=f"Big week: {topic.title}. Thoughts? #{tag}",
                        author_handle=handle,
                        author_verified=rng.random() < 0.5,
                        author_follower_count=rng.randint(500, 500_000),
                        like_count=rng.randint(10, 5_000),
                        share_count=rng.randint(0, 1_500),
                        reply_count=rng.randint(0, 800),
                        quote_count=rng.randint(0, 300),
                        hashtags=[tag, "AI"],
                        url=f"https://x.com/{handle}/status/{post_id}",
                    )
                )
        hashtags = aggregate_hashtags(posts)
        for raw in trending_hashtags:
            tag = str(raw or "").strip().lstrip("#")
            if tag and all(item.tag.lower() != tag.lower() for item in hashtags):
                hashtags.append(Hashtag(tag=tag, post_count=rng.randint(1, 50), total_likes=rng.randint(10, 2_000), total_shares=rng.randint(0, 500)))
        pool = self._cap(posts, hashtags)
        logger.info("social_pool_ready provider=synthetic posts=%s hashtags=%s", len(pool.posts), len(pool.hashtags))
        return pool


def get_social_provider(settings=None, client: Optional[SocialSearchClient] = None) -> SocialSignalProvider:
    """Select the social pool implementation from configuration."""
    if settings is None:
        from config import get_settings
        settings = get_settings()

    social = settings.social
    if social.provider == "synthetic":
        return SyntheticSocialSignalProvider(
            seed=social.synthetic_seed,
            max_posts=social.max_posts,
            max_hashtags=social.max_hashtags,
        )
    if social.provider == "live":
        return LiveSocialSignalProvider(
            client or SocialSearchClient.from_settings(settings),
            max_posts=social.max_posts,
            max_hashtags=social.max_hashtags,
        )
    raise ValueError(f"Unknown social provider: {social.provider}")
