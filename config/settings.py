"""
Settings Configuration
使用 Pydantic 进行配置验证和管理
"""
from functools import lru_cache
from pathlib import Path
from typing import Annotated, List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode


DEFAULT_TRUSTED_DOMAINS = [
    "techcrunch.com",
    "wired.com",
    "theverge.com",
    "venturebeat.com",
    "thenextweb.com",
    "arstechnica.com",
    "zdnet.com",
    "cnet.com",
    "engadget.com",
    "technologyreview.com",
    "mit.edu",
    "stanford.edu",
    "openai.com",
    "anthropic.com",
    "deepmind.com",
    "deepmind.google",
    "ai.googleblog.com",
    "blogs.microsoft.com",
    "nvidia.com/blog",
    "research.google",
    "research.fb.com",
    "research.microsoft.com",
    "research.ibm.com",
    "research.amazon.com",
    "huggingface.co/blog",
    "pytorch.org/blog",
    "tensorflow.org/blog",
    "kaggle.com/blog",
    "paperswithcode.com",
    "distill.pub",
    "arxiv.org",
]


class DeepResearchSettings(BaseSettings):
    """Backend A: deep research 文本研究后端 (OpenAI 兼容接口)"""
    api_key: Optional[str] = Field(default=None, description="Perplexity API Key")
    base_url: str = Field(default="https://api.perplexity.ai", description="API 地址")
    model: str = Field(default="sonar-deep-research", description="模型名称")
    temperature: float = Field(default=0.7, description="生成温度")
    max_tokens: int = Field(default=4000, description="最大生成token数")
    timeout: float = Field(default=300.0, description="请求超时时间(秒)")

    class Config:
        env_prefix = "PERPLEXITY_"


class SocialSearchSettings(BaseSettings):
    """Backend B: social deep-search 后端 (OpenAI 兼容接口)"""
    api_key: Optional[str] = Field(default=None, description="xAI API Key")
    base_url: str = Field(default="https://api.x.ai/v1", description="API 地址")
    model: str = Field(default="grok-2-latest", description="模型名称")
    temperature: float = Field(default=0.7, description="生成温度")
    max_tokens: int = Field(default=4000, description="最大生成token数")
    timeout: float = Field(default=180.0, description="请求超时时间(秒)")

    class Config:
        env_prefix = "XAI_"


class VerifierSettings(BaseSettings):
    """引用校验配置"""
    probe_timeout: float = Field(default=5.0, description="单个 HEAD 探测超时(秒)")
    trusted_domains: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: list(DEFAULT_TRUSTED_DOMAINS),
        description="可信来源白名单",
    )
    user_agent: str = Field(default="WeeklyDigestBot/1.0", description="User Agent")

    @field_validator("trusted_domains", mode="before")
    @classmethod
    def _split_domains(cls, value):
        if isinstance(value, str):
            return [token.strip() for token in value.split(",") if token.strip()]
        return value

    class Config:
        env_prefix = "VERIFIER_"


class SocialSettings(BaseSettings):
    """社交信号配置"""
    provider: str = Field(default="live", description="社交数据来源: live, synthetic")
    max_posts: int = Field(default=20, description="帖子池上限")
    max_hashtags: int = Field(default=20, description="话题标签池上限")
    related_limit: int = Field(default=3, description="每个 topic 关联的帖子/标签数")
    synthetic_seed: int = Field(default=7, description="synthetic 数据随机种子")

    @field_validator("provider", mode="before")
    @classmethod
    def _normalize_provider(cls, value):
        text = str(value or "").strip().lower()
        if text not in {"live", "synthetic"}:
            raise ValueError(f"unknown social provider: {value}")
        return text

    class Config:
        env_prefix = "SOCIAL_"


class DigestSettings(BaseSettings):
    """Digest 生成配置"""
    top_n: int = Field(default=5, ge=1, description="最终入选 topic 数")
    window_days: int = Field(default=7, ge=1, description="覆盖的时间窗口(天)")

    class Config:
        env_prefix = "DIGEST_"


class StorageSettings(BaseSettings):
    """存储配置"""
    provider: str = Field(default="file", description="主存储: file, memory")
    data_dir: str = Field(default="./data/digests", description="主存储目录")
    fallback_dir: str = Field(default="./data/fallback", description="备用文件存储目录")

    class Config:
        env_prefix = "STORAGE_"


class GeneralSettings(BaseSettings):
    """通用设置"""
    max_retries: int = Field(default=3, description="后端调用最大重试次数")
    log_level: str = Field(default="INFO", description="日志级别")


class Settings(BaseSettings):
    """主配置类 - 聚合所有子配置"""

    deep_research: DeepResearchSettings = Field(default_factory=DeepResearchSettings)
    social_search: SocialSearchSettings = Field(default_factory=SocialSearchSettings)
    verifier: VerifierSettings = Field(default_factory=VerifierSettings)
    social: SocialSettings = Field(default_factory=SocialSettings)
    digest: DigestSettings = Field(default_factory=DigestSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    general: GeneralSettings = Field(default_factory=GeneralSettings)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @classmethod
    def load_from_env_file(cls, env_path: Optional[Path] = None) -> "Settings":
        """从指定的 .env 文件加载配置"""
        if env_path is None:
            # 默认查找 config/.env
            env_path = Path(__file__).parent / ".env"

        if env_path.exists():
            from dotenv import load_dotenv
            load_dotenv(env_path)

        return cls(
            deep_research=DeepResearchSettings(),
            social_search=SocialSearchSettings(),
            verifier=VerifierSettings(),
            social=SocialSettings(),
            digest=DigestSettings(),
            storage=StorageSettings(),
            general=GeneralSettings(),
        )


@lru_cache()
def get_settings() -> Settings:
    """获取全局配置单例"""
    return Settings.load_from_env_file()
