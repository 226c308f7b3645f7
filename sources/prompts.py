"""Prompt builders for the two research backends and the social pool call."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterable


DEEP_RESEARCH_SYSTEM_PROMPT = (
    "You are a helpful AI assistant that specializes in creating weekly digests of AI news. "
    "You have access to the latest information from the web and social media."
)
SOCIAL_SEARCH_SYSTEM_PROMPT = (
    "You are a helpful AI assistant that specializes in creating weekly digests of AI news. "
    "You have access to the latest information from the web and X (formerly Twitter)."
)
SOCIAL_POOL_SYSTEM_PROMPT = (
    "You are a helpful AI assistant that reports recent social media activity about AI. "
    "Only report posts and accounts you can actually find; never invent engagement numbers."
)


def format_long_date(value: datetime) -> str:
    """``October 17, 2026`` without a zero-padded day."""
    return f"{value.strftime('%B')} {value.day}, {value.year}"


def week_bounds(now: datetime, window_days: int = 7):
    return now - timedelta(days=window_days), now


def digest_title(now: datetime, window_days: int = 7) -> str:
    start, end = week_bounds(now, window_days)
    return f"Weekly AI News Digest: {format_long_date(start)} - {format_long_date(end)}"


_TOPIC_TEMPLATE = """<div class="topic">
  <h3>[Topic Title]</h3>
  <p><strong>Summary:</strong> [Brief summary of the news]</p>
  <p><strong>Why Viral:</strong> [Why this topic is trending, with engagement numbers if available]</p>
  <p><strong>Why Valuable:</strong> [Significance and potential impact]</p>
  <p><strong>Insights:</strong> [Analysis or expert opinions]</p>
{extra}  <p><strong>Citations:</strong> <a href="[url]">[source title]</a>, <a href="[url]">[source title]</a></p>
</div>"""

_SOCIAL_EXTRA = """  <p><strong>X Posts:</strong> [Notable posts about the topic, with links]</p>
  <p><strong>Related Hashtags:</strong> [#Hashtag1 #Hashtag2]</p>
"""


def build_deep_research_prompt(now: datetime, window_days: int = 7, top_n: int = 5) -> str:
    """Prompt for backend A: web-sourced weekly digest in the fixed HTML grammar."""
    start, end = week_bounds(now, window_days)
    title = digest_title(now, window_days)
    topic_block = _TOPIC_TEMPLATE.format(extra="")
    return f"""Generate a comprehensive WEEKLY digest of the most impactful AI news from {format_long_date(start)} to {format_long_date(end)}, focusing on topics that are both viral (trending on social media, especially X) and valuable (significant impact in the AI field).

For each topic, include:
- A brief summary of the news or development.
- Why it's considered viral (engagement on social media, trending hashtags, viral discussions).
- Why it's valuable (impact on AI technology, research, industry, or society).
- Insights or analysis from experts or relevant sources.
- Citations from reliable sources, as HTML links to the original articles or posts.

Format the digest as HTML with exactly this structure:

<h1>{title}</h1>
<p>[Overall summary of the week's AI landscape and key themes]</p>
<h2>Top {top_n} AI Topics This Week</h2>

{topic_block}

Include EXACTLY {top_n} topics. Only cite URLs that exist today; never cite articles dated in the future.

Today's date is {format_long_date(end)}."""


def build_social_search_prompt(now: datetime, window_days: int = 7, top_n: int = 5) -> str:
    """Prompt for backend B: X-centric digest plus a trending hashtag list."""
    start, end = week_bounds(now, window_days)
    title = digest_title(now, window_days)
    topic_block = _TOPIC_TEMPLATE.format(extra=_SOCIAL_EXTRA)
    return f"""Search X (formerly Twitter) and the web for the most viral and valuable AI news from {format_long_date(start)} to {format_long_date(end)}.

For each topic, explain why it went viral on X, why it matters for the AI field, and link both news coverage and notable X posts as citations.

Format the digest as HTML with exactly this structure:

<h1>{title}</h1>
<p>[Overall summary of the week's AI conversation on X]</p>
<h2>Top {top_n} AI Topics This Week</h2>

{topic_block}

<h2>Trending AI Hashtags on X</h2>
<ul>
  <li>#Hashtag - [short description]</li>
</ul>

Include EXACTLY {top_n} topics. Only cite URLs that exist today; never cite posts or articles dated in the future.

Today's date is {format_long_date(end)}."""


def build_social_pool_prompt(hashtags: Iterable[str], limit: int = 20) -> str:
    """Prompt for the companion call that returns raw post/hashtag activity as JSON."""
    tags = [str(tag).strip().lstrip("#") for tag in hashtags if str(tag).strip()]
    focus = ""
    if tags:
        focus = "Prioritize activity around these hashtags: " + ", ".join(f"#{tag}" for tag in tags) + "\n\n"
    return f"""Find up to {limit} of the most engaged-with AI posts on X from the past week and the AI hashtags they use.

{focus}Respond with JSON only, using this structure:
{{
  "posts": [
    {{
      "id": "post id",
      "content": "post text",
      "authorHandle": "username",
      "authorVerified": true,
      "authorFollowerCount": 12345,
      "likeCount": 123,
      "shareCount": 45,
      "replyCount": 67,
      "quoteCount": 8,
      "hashtags": ["hashtag1"],
      "url": "https://x.com/username/status/id"
    }}
  ],
  "hashtags": [
    {{
      "tag": "hashtag1",
      "postCount": 1234,
      "totalLikes": 5678,
      "totalShares": 910,
      "totalReplies": 1112
    }}
  ]
}}

Report real accounts and real engagement numbers only."""
