"""Core contracts and shared types for the digest pipeline."""

from .contracts import (
    ArticleCitation,
    BackendId,
    BlockError,
    BranchOutcome,
    Citation,
    CitationCheck,
    CycleReport,
    Digest,
    Hashtag,
    ParseResult,
    SocialPool,
    SocialPost,
    SocialPostCitation,
    Topic,
    is_social_post_host,
    make_citation,
)

__all__ = [
    "ArticleCitation",
    "BackendId",
    "BlockError",
    "BranchOutcome",
    "Citation",
    "CitationCheck",
    "CycleReport",
    "Digest",
    "Hashtag",
    "ParseResult",
    "SocialPool",
    "SocialPost",
    "SocialPostCitation",
    "Topic",
    "is_social_post_host",
    "make_citation",
]
