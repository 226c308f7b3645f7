"""
Social Search Client
Backend B: 社交平台深度检索后端 (默认 xAI grok)
"""
from typing import Any

from core import BackendId

from .base import BaseResearchClient
from .prompts import SOCIAL_SEARCH_SYSTEM_PROMPT


class SocialSearchClient(BaseResearchClient):
    """Backend B 客户端，也负责社交信号池的伴随调用"""

    system_prompt = SOCIAL_SEARCH_SYSTEM_PROMPT

    @property
    def backend_id(self) -> BackendId:
        return BackendId.SOCIAL_SEARCH

    @classmethod
    def from_settings(cls, settings=None, client: Any = None) -> "SocialSearchClient":
        if settings is None:
            from config import get_settings
            settings = get_settings()
        backend = settings.social_search
        return cls(
            api_key=backend.api_key,
            base_url=backend.base_url,
            model=backend.model,
            temperature=backend.temperature,
            max_tokens=backend.max_tokens,
            timeout=backend.timeout,
            max_retries=settings.general.max_retries,
            client=client,
        )
