"""Research backend clients and social signal providers."""

from .base import BaseResearchClient, is_transient_error
from .deep_research import DeepResearchClient
from .social_search import SocialSearchClient
from .social_pool import (
    LiveSocialSignalProvider,
    SocialSignalProvider,
    SyntheticSocialSignalProvider,
    aggregate_hashtags,
    get_social_provider,
)

__all__ = [
    "BaseResearchClient",
    "is_transient_error",
    "DeepResearchClient",
    "SocialSearchClient",
    "SocialSignalProvider",
    "LiveSocialSignalProvider",
    "SyntheticSocialSignalProvider",
    "aggregate_hashtags",
    "get_social_provider",
]
