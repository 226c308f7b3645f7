"""Canonical data contracts for the weekly digest pipeline."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


SOCIAL_POST_HOSTS = ("x.com", "twitter.com")


class _CamelModel(BaseModel):
    """Snake-case attributes, camelCase JSON keys; both accepted on input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class BackendId(str, Enum):
    """Research backend identity."""

    DEEP_RESEARCH = "backendA"
    SOCIAL_SEARCH = "backendB"


class ArticleCitation(_CamelModel):
    """Citation pointing at a publisher article."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    kind: Literal["article"] = "article"
    title: str
    url: str


class SocialPostCitation(_CamelModel):
    """Citation pointing at a post on a social platform."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    kind: Literal["social-post"] = "social-post"
    title: str
    url: str


Citation = Annotated[Union[ArticleCitation, SocialPostCitation], Field(discriminator="kind")]


def is_social_post_host(host: str) -> bool:
    value = str(host or "").strip().lower()
    if value.startswith("www."):
        value = value[4:]
    return any(value == item or value.endswith("." + item) for item in SOCIAL_POST_HOSTS)


def make_citation(title: str, url: str) -> Union[ArticleCitation, SocialPostCitation]:
    """Build the citation variant implied by the URL host."""
    try:
        host = urlparse(str(url or "").strip()).hostname or ""
    except ValueError:
        host = ""
    if is_social_post_host(host):
        return SocialPostCitation(title=title, url=url)
    return ArticleCitation(title=title, url=url)


class SocialPost(_CamelModel):
    """One social post in the cycle's signal pool. ``impact_score`` is cached once scored."""

    id: str
    content: str = ""
    author_handle: str = ""
    author_verified: bool = False
    author_follower_count: int = 0
    like_count: int = 0
    share_count: int = 0
    reply_count: int = 0
    quote_count: int = 0
    hashtags: List[str] = Field(default_factory=list)
    url: str = ""
    impact_score: Optional[float] = None

    @field_validator(
        "author_follower_count", "like_count", "share_count", "reply_count", "quote_count",
        mode="before",
    )
    @classmethod
    def _non_negative_count(cls, value: Any) -> int:
        try:
            return max(0, int(value or 0))
        except (TypeError, ValueError):
            return 0


class Hashtag(_CamelModel):
    """Aggregated hashtag activity."""

    tag: str
    post_count: int = 0
    total_likes: int = 0
    total_shares: int = 0
    total_replies: int = 0
    impact_score: Optional[float] = None

    @field_validator("tag", mode="before")
    @classmethod
    def _strip_hash(cls, value: Any) -> str:
        text = str(value or "").strip().lstrip("#")
        if not text:
            raise ValueError("tag is required")
        return text


class Topic(_CamelModel):
    """A digest topic as produced by one backend and refined by the pipeline."""

    title: str
    summary: str = ""
    viral_reason: str = ""
    value_reason: str = ""
    insights: str = ""
    citations: List[Citation] = Field(default_factory=list)
    related_posts: List[SocialPost] = Field(default_factory=list)
    related_hashtags: List[Hashtag] = Field(default_factory=list)
    social_impact_score: float = 0.0
    overall_score: float = 0.0
    source: BackendId

    def content_length(self) -> int:
        return len(self.summary + self.viral_reason + self.value_reason + self.insights)

    def citation_urls(self) -> List[str]:
        return [item.url for item in self.citations]


class Digest(_CamelModel):
    """Published weekly digest. Superseded by the next cycle, never edited in place."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    title: str
    date: str
    generated_at: datetime
    summary: str
    topics: List[Topic] = Field(default_factory=list)
    raw_html: str = ""
    published_at: datetime

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class BlockError(_CamelModel):
    """Why one candidate topic block was rejected."""

    index: int
    reason: str
    missing_fields: List[str] = Field(default_factory=list)


class ParseResult(_CamelModel):
    """Outcome of parsing one backend response."""

    backend: BackendId
    topics: List[Topic] = Field(default_factory=list)
    summary_text: str = ""
    trending_hashtags: List[str] = Field(default_factory=list)
    errors: List[BlockError] = Field(default_factory=list)

    @property
    def has_malformed_blocks(self) -> bool:
        return bool(self.errors)


class CitationCheck(_CamelModel):
    """Verification verdict for one citation URL."""

    url: str
    accessible: bool = False
    trusted: bool = False
    future_dated: bool = False
    status_code: Optional[int] = None
    error: Optional[str] = None

    @property
    def valid(self) -> bool:
        return self.accessible and self.trusted and not self.future_dated


class SocialPool(_CamelModel):
    """Posts and hashtags available for topic matching in one cycle."""

    posts: List[SocialPost] = Field(default_factory=list)
    hashtags: List[Hashtag] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.posts and not self.hashtags


class BranchOutcome(_CamelModel):
    """How one backend branch contributed to the cycle."""

    backend: BackendId
    status: Literal["live", "cached", "failed"]
    topic_count: int = 0
    error: Optional[str] = None


class CycleReport(_CamelModel):
    """Observable result of one generation cycle."""

    cycle_id: str
    status: Literal["published", "failed"] = "failed"
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: Optional[datetime] = None
    branches: List[BranchOutcome] = Field(default_factory=list)
    verified_urls: int = 0
    valid_urls: int = 0
    digest: Optional[Digest] = None
    errors: List[str] = Field(default_factory=list)

    @property
    def published(self) -> bool:
        return self.status == "published"
