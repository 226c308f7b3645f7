"""
Custom Exceptions
自定义异常类
"""
from typing import List, Optional


class DigestError(Exception):
    """Digest 流水线基础异常类"""

    def __init__(self, message: str, details: dict = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self):
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(DigestError):
    """配置错误"""
    pass


class MissingCredentialError(ConfigurationError):
    """研究后端未配置访问凭证"""

    def __init__(self, message: str, backend: str = None, **kwargs):
        super().__init__(message, kwargs)
        self.backend = backend


class BackendError(DigestError):
    """研究后端调用失败 (重试后仍失败)"""

    def __init__(self, message: str, backend: str = None, **kwargs):
        super().__init__(message, kwargs)
        self.backend = backend


class EmptyOrMalformedResponseError(DigestError):
    """后端响应未解析出任何 topic"""

    def __init__(self, message: str, backend: str = None, block_errors: Optional[List] = None, **kwargs):
        super().__init__(message, kwargs)
        self.backend = backend
        self.block_errors = list(block_errors or [])


class ParseError(DigestError):
    """单个 topic 块解析失败"""

    def __init__(self, message: str, index: int = -1, missing_fields: Optional[List[str]] = None, **kwargs):
        super().__init__(message, kwargs)
        self.index = index
        self.missing_fields = list(missing_fields or [])


class StorageError(DigestError):
    """存储错误"""
    pass


class PersistenceError(StorageError):
    """主存储与备用存储均写入失败"""
    pass
