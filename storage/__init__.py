"""
Storage Module
存储模块 - digest 持久化
"""
from .digest_store import (
    BACKUP_SUFFIX,
    LATEST_KEY,
    BaseDigestStore,
    FallbackDigestStore,
    FileDigestStore,
    MemoryDigestStore,
    get_digest_store,
)

__all__ = [
    "BACKUP_SUFFIX",
    "LATEST_KEY",
    "BaseDigestStore",
    "MemoryDigestStore",
    "FileDigestStore",
    "FallbackDigestStore",
    "get_digest_store",
]
