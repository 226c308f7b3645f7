"""
Configuration Management Module
统一配置管理，实现后端/存储配置解耦
"""
from .settings import (
    DEFAULT_TRUSTED_DOMAINS,
    DeepResearchSettings,
    DigestSettings,
    GeneralSettings,
    Settings,
    SocialSearchSettings,
    SocialSettings,
    StorageSettings,
    VerifierSettings,
    get_settings,
)

__all__ = [
    "DEFAULT_TRUSTED_DOMAINS",
    "Settings",
    "DeepResearchSettings",
    "SocialSearchSettings",
    "VerifierSettings",
    "SocialSettings",
    "DigestSettings",
    "StorageSettings",
    "GeneralSettings",
    "get_settings",
]
