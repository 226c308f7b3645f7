"""
Base Research Client
研究后端抽象基类 (OpenAI 兼容 chat-completions 接口)
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
import inspect
import logging

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from core import BackendId
from utils.exceptions import BackendError, MissingCredentialError


logger = logging.getLogger(__name__)


def is_transient_error(exc: BaseException) -> bool:
    """只对传输层/限流/服务端错误重试"""
    import openai

    transient = (
        openai.APIConnectionError,
        openai.APITimeoutError,
        openai.RateLimitError,
        openai.InternalServerError,
        httpx.TransportError,
    )
    return isinstance(exc, transient)


class BaseResearchClient(ABC):
    """
    研究后端客户端抽象基类

    两个后端都暴露 OpenAI 兼容接口，差异仅在于 base_url / model / system prompt。
    """

    system_prompt: str = ""

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str,
        model: str,
        temperature: float = 0.7,
        max_tokens: int = 4000,
        timeout: float = 120.0,
        max_retries: int = 3,
        retry_wait_max: float = 10.0,
        client: Any = None,
    ):
        self.api_key = api_key
        self.base_url = base_url
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.max_retries = max(1, int(max_retries))
        self.retry_wait_max = retry_wait_max
        self._async_client = client

    @property
    @abstractmethod
    def backend_id(self) -> BackendId:
        """返回后端标识"""
        pass

    def is_configured(self) -> bool:
        return bool(str(self.api_key or "").strip())

    def _get_async_client(self):
        """获取异步客户端"""
        if self._async_client is None:
            from openai import AsyncOpenAI
            self._async_client = AsyncOpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                timeout=self.timeout,
                # 重试由 tenacity 统一负责
                max_retries=0,
            )
        return self._async_client

    def _build_messages(self, prompt: str, system_prompt: Optional[str]) -> List[Dict[str, str]]:
        messages = []
        system = self.system_prompt if system_prompt is None else system_prompt
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        return messages

    async def _complete_once(self, messages: List[Dict[str, str]], **kwargs) -> str:
        client = self._get_async_client()
        response = await client.chat.completions.create(
            model=self.model,
            messages=messages,
            temperature=kwargs.get("temperature", self.temperature),
            max_tokens=kwargs.get("max_tokens", self.max_tokens),
        )
        choices = getattr(response, "choices", None) or []
        if not choices:
            return ""
        return str(choices[0].message.content or "")

    async def fetch(self, prompt: str, system_prompt: Optional[str] = None, **kwargs) -> str:
        """
        发送研究 prompt，返回原始文本

        Args:
            prompt: 用户 prompt
            system_prompt: 覆盖默认 system prompt (可选)

        Returns:
            后端返回的原始 markup 文本

        Raises:
            MissingCredentialError: 未配置 API Key
            BackendError: 重试后仍失败
        """
        backend = self.backend_id.value
        if not self.is_configured():
            raise MissingCredentialError(
                f"no API key configured for {backend}",
                backend=backend,
            )

        messages = self._build_messages(prompt, system_prompt)
        logger.info("backend_request backend=%s model=%s prompt_chars=%s", backend, self.model, len(prompt))
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.max_retries),
                wait=wait_exponential(multiplier=1, min=min(1.0, self.retry_wait_max), max=self.retry_wait_max),
                retry=retry_if_exception(is_transient_error),
                reraise=True,
            ):
                with attempt:
                    content = await self._complete_once(messages, **kwargs)
        except Exception as exc:
            logger.warning("backend_failed backend=%s error=%s", backend, exc)
            raise BackendError(
                f"{backend} request failed: {exc}",
                backend=backend,
                model=self.model,
            ) from exc

        logger.info("backend_response backend=%s chars=%s", backend, len(content))
        return content

    async def aclose(self) -> None:
        """关闭底层客户端，释放连接池"""
        client = self._async_client
        if client is None:
            return
        close_fn = getattr(client, "close", None)
        if callable(close_fn):
            maybe_awaitable = close_fn()
            if inspect.isawaitable(maybe_awaitable):
                await maybe_awaitable
        self._async_client = None

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(model={self.model}, backend={self.backend_id.value})"
