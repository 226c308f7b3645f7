"""
Utils Module
通用工具函数
"""
from .logger import configure_package_logging, setup_logger
from .exceptions import (
    BackendError,
    ConfigurationError,
    DigestError,
    EmptyOrMalformedResponseError,
    MissingCredentialError,
    ParseError,
    PersistenceError,
    StorageError,
)

__all__ = [
    "setup_logger",
    "configure_package_logging",
    "DigestError",
    "ConfigurationError",
    "MissingCredentialError",
    "BackendError",
    "EmptyOrMalformedResponseError",
    "ParseError",
    "StorageError",
    "PersistenceError",
]
