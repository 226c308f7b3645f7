"""
Deep Research Client
Backend A: 基于 web 检索的深度研究后端 (默认 Perplexity sonar-deep-research)
"""
from typing import Any

from core import BackendId

from .base import BaseResearchClient
from .prompts import DEEP_RESEARCH_SYSTEM_PROMPT


class DeepResearchClient(BaseResearchClient):
    """Backend A 客户端"""

    system_prompt = DEEP_RESEARCH_SYSTEM_PROMPT

    @property
    def backend_id(self) -> BackendId:
        return BackendId.DEEP_RESEARCH

    @classmethod
    def from_settings(cls, settings=None, client: Any = None) -> "DeepResearchClient":
        if settings is None:
            from config import get_settings
            settings = get_settings()
        backend = settings.deep_research
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
