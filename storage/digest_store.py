"""
Digest Store
Digest 持久化模块 - 内存 / 文件 / 主备存储
"""
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from fnmatch import fnmatch
from pathlib import Path
from typing import Any, Dict, List, Optional
import json
import logging
import os
import re
import tempfile

from pydantic import ValidationError

from core import Digest
from utils.exceptions import PersistenceError, StorageError


logger = logging.getLogger(__name__)

LATEST_KEY = "latest"
BACKUP_SUFFIX = ".backup"


class BaseDigestStore(ABC):
    """
    Digest 存储抽象基类

    生命周期: open() -> write/read/invalidate -> close()，也可作为 context manager 使用。
    """

    def __init__(self):
        self._opened = False

    @property
    def is_open(self) -> bool:
        return self._opened

    def open(self) -> "BaseDigestStore":
        """打开存储"""
        self._open()
        self._opened = True
        return self

    def close(self) -> None:
        """关闭存储"""
        if self._opened:
            self._close()
        self._opened = False

    def __enter__(self) -> "BaseDigestStore":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @staticmethod
    def backup_key(key: str) -> str:
        """备份键: <key>.backup"""
        return f"{key}{BACKUP_SUFFIX}"

    def _require_open(self) -> None:
        if not self._opened:
            raise StorageError(
                "store is not open",
                {"store": type(self).__name__},
            )

    def write(self, digest: Digest, key: str = LATEST_KEY, keep_backup: bool = True) -> None:
        """
        写入 digest

        Args:
            digest: 待写入的 digest
            key: 存储键
            keep_backup: 覆盖前是否把旧值保存为 <key>.backup
        """
        self._require_open()
        payload = digest.to_payload()
        if keep_backup:
            previous = self._load(key)
            if previous is not None:
                self._save(self.backup_key(key), previous)
        self._save(key, payload)
        logger.debug("store_write store=%s key=%s", type(self).__name__, key)

    def read(self, key: str = LATEST_KEY) -> Optional[Digest]:
        """读取 digest，不存在返回 None"""
        self._require_open()
        payload = self._load(key)
        if payload is None:
            return None
        try:
            return Digest.model_validate(payload)
        except ValidationError as exc:
            logger.error("store_read_invalid store=%s key=%s error=%s", type(self).__name__, key, exc)
            return None

    def exists(self, key: str = LATEST_KEY) -> bool:
        """检查键是否存在"""
        self._require_open()
        return key in self.keys()

    def invalidate(self, pattern: str = "*") -> int:
        """
        删除匹配 glob 模式的键

        Returns:
            删除的键数量
        """
        self._require_open()
        matched = [key for key in self.keys() if fnmatch(key, pattern)]
        for key in matched:
            self._delete(key)
        if matched:
            logger.info("store_invalidate pattern=%s removed=%s", pattern, len(matched))
        return len(matched)

    def _open(self) -> None:
        pass

    def _close(self) -> None:
        pass

    @abstractmethod
    def keys(self) -> List[str]:
        """列出全部键"""
        pass

    @abstractmethod
    def _load(self, key: str) -> Optional[Dict[str, Any]]:
        pass

    @abstractmethod
    def _save(self, key: str, payload: Dict[str, Any]) -> None:
        pass

    @abstractmethod
    def _delete(self, key: str) -> None:
        pass


class MemoryDigestStore(BaseDigestStore):
    """
    内存存储
    适合开发和测试，进程结束即丢失
    """

    def __init__(self):
        super().__init__()
        self._data: Dict[str, str] = {}

    def keys(self) -> List[str]:
        return list(self._data.keys())

    def _load(self, key: str) -> Optional[Dict[str, Any]]:
        raw = self._data.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    def _save(self, key: str, payload: Dict[str, Any]) -> None:
        # 以 JSON 文本保存，读写互不共享可变对象
        self._data[key] = json.dumps(payload, ensure_ascii=False)

    def _delete(self, key: str) -> None:
        self._data.pop(key, None)


class FileDigestStore(BaseDigestStore):
    """
    文件存储
    每个键一个 JSON 文件，写入先落临时文件再原子替换
    """

    def __init__(self, data_dir: str = "./data/digests"):
        """
        Args:
            data_dir: 存储目录
        """
        super().__init__()
        self.data_dir = Path(data_dir)

    def _open(self) -> None:
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageError(
                f"cannot create storage dir: {self.data_dir}",
                {"error": str(exc)},
            ) from exc

    def _get_path(self, key: str) -> Path:
        """获取存储文件路径"""
        safe = re.sub(r"[^A-Za-z0-9._-]+", "_", key)
        return self.data_dir / f"{safe}.json"

    def _iter_envelopes(self):
        for path in sorted(self.data_dir.glob("*.json")):
            try:
                with open(path, "r", encoding="utf-8") as f:
                    envelope = json.load(f)
            except (OSError, json.JSONDecodeError) as exc:
                logger.warning("store_file_unreadable path=%s error=%s", path, exc)
                continue
            if isinstance(envelope, dict) and "key" in envelope:
                yield path, envelope

    def keys(self) -> List[str]:
        return [envelope["key"] for _, envelope in self._iter_envelopes()]

    def _load(self, key: str) -> Optional[Dict[str, Any]]:
        path = self._get_path(key)
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                envelope = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            logger.error("store_load_failed key=%s error=%s", key, exc)
            return None
        return envelope.get("digest")

    def _save(self, key: str, payload: Dict[str, Any]) -> None:
        path = self._get_path(key)
        envelope = {
            "key": key,
            "stored_at": datetime.now(timezone.utc).isoformat(),
            "digest": payload,
        }
        try:
            fd, tmp_name = tempfile.mkstemp(dir=str(self.data_dir), prefix=".tmp-", suffix=".json")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(envelope, f, ensure_ascii=False, indent=2)
            os.replace(tmp_name, path)
        except OSError as exc:
            raise StorageError(
                f"failed to write digest key={key}",
                {"path": str(path), "error": str(exc)},
            ) from exc

    def _delete(self, key: str) -> None:
        path = self._get_path(key)
        if path.exists():
            path.unlink()


class FallbackDigestStore(BaseDigestStore):
    """
    主备存储
    主存储写入失败时写入备用 (文件) 存储；两者都失败则抛出 PersistenceError
    """

    def __init__(self, primary: BaseDigestStore, secondary: BaseDigestStore):
        super().__init__()
        self.primary = primary
        self.secondary = secondary

    def _stores(self) -> List[BaseDigestStore]:
        return [store for store in (self.primary, self.secondary) if store.is_open]

    def _open(self) -> None:
        errors = []
        for store in (self.primary, self.secondary):
            try:
                store.open()
            except (StorageError, OSError) as exc:
                logger.warning("store_open_failed store=%s error=%s", type(store).__name__, exc)
                errors.append(str(exc))
        if not self._stores():
            raise PersistenceError("no storage backend could be opened", {"errors": errors})

    def _close(self) -> None:
        for store in (self.primary, self.secondary):
            store.close()

    def write(self, digest: Digest, key: str = LATEST_KEY, keep_backup: bool = True) -> None:
        """
        写入第一个可用的存储

        备份取自被替换的那份 (主备中最新的一份)，而不是目标存储自己的旧值。
        """
        self._require_open()
        previous = self.read(key) if keep_backup else None
        errors = []
        for store in self._stores():
            try:
                if previous is not None:
                    store.write(previous, key=self.backup_key(key), keep_backup=False)
                store.write(digest, key=key, keep_backup=False)
            except (StorageError, OSError) as exc:
                logger.warning("store_write_failed store=%s key=%s error=%s", type(store).__name__, key, exc)
                errors.append(f"{type(store).__name__}: {exc}")
                continue
            if store is not self.primary:
                logger.warning("store_fallback_used key=%s store=%s", key, type(store).__name__)
            return
        raise PersistenceError(f"failed to persist digest key={key}", {"errors": errors})

    def read(self, key: str = LATEST_KEY) -> Optional[Digest]:
        """返回主备中 published_at 最新的一份；相同时优先主存储"""
        self._require_open()
        newest: Optional[Digest] = None
        for store in self._stores():
            try:
                digest = store.read(key)
            except (StorageError, OSError) as exc:
                logger.warning("store_read_failed store=%s key=%s error=%s", type(store).__name__, key, exc)
                continue
            if digest is not None and (newest is None or digest.published_at > newest.published_at):
                newest = digest
        return newest

    def keys(self) -> List[str]:
        seen: List[str] = []
        for store in self._stores():
            for key in store.keys():
                if key not in seen:
                    seen.append(key)
        return seen

    def invalidate(self, pattern: str = "*") -> int:
        self._require_open()
        return sum(store.invalidate(pattern) for store in self._stores())

    def _load(self, key: str) -> Optional[Dict[str, Any]]:
        digest = self.read(key)
        return digest.to_payload() if digest is not None else None

    def _save(self, key: str, payload: Dict[str, Any]) -> None:
        self.primary._save(key, payload)

    def _delete(self, key: str) -> None:
        for store in self._stores():
            store._delete(key)


def get_digest_store(settings=None) -> BaseDigestStore:
    """
    按配置构造 digest 存储 (每次调用返回新实例，调用方负责 open/close)

    Args:
        settings: Settings 实例，默认读取全局配置

    Returns:
        主存储 + 文件备用存储
    """
    if settings is None:
        from config import get_settings
        settings = get_settings()

    storage = settings.storage
    provider = str(storage.provider or "file").strip().lower()

    if provider == "memory":
        primary: BaseDigestStore = MemoryDigestStore()
    elif provider == "file":
        primary = FileDigestStore(data_dir=storage.data_dir)
    else:
        raise ValueError(f"Unknown storage provider: {provider}")

    if not storage.fallback_dir:
        return primary
    return FallbackDigestStore(primary, FileDigestStore(data_dir=storage.fallback_dir))
