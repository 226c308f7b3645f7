"""Digest synthesis pipeline: parse, verify, score, merge, assemble."""

from .assembler import assemble, publish, render_html
from .merger import compute_overall_score, merge_and_rank
from .parser import DEFAULT_LEAD_SUMMARY, parse_response, parse_topic_block
from .runtime import DigestRuntime
from .social import (
    SocialScore,
    apply_social_scores,
    hashtag_impact_score,
    post_impact_score,
    score_topic,
    topic_keywords,
)
from .verifier import CitationVerifier, validity_map

__all__ = [
    "DEFAULT_LEAD_SUMMARY",
    "parse_response",
    "parse_topic_block",
    "CitationVerifier",
    "validity_map",
    "SocialScore",
    "topic_keywords",
    "post_impact_score",
    "hashtag_impact_score",
    "score_topic",
    "apply_social_scores",
    "compute_overall_score",
    "merge_and_rank",
    "assemble",
    "render_html",
    "publish",
    "DigestRuntime",
]
