"""带过期时间的接口响应缓存"""

import json
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, TypedDict, TypeVar

from loguru import logger

T = TypeVar("T")


@dataclass
class CacheEntry:
    """缓存条目"""
    value: Any
    stored_at: float
    expires_at: float


class CacheStats(TypedDict):
    """缓存统计信息类型"""
    size: int
    oldest_timestamp: Optional[float]


class TTLCache:
    """按条目过期的缓存

    过期条目在读取时惰性淘汰，也可以调用 clear_expired 手动清理。
    with_cache 不合并并发的相同请求：两个同时未命中的调用都会执行计算，后写入者生效。
    """

    def __init__(
        self,
        default_ttl: float = 600,
        prefix: str = "docker-registry:",
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        初始化缓存

        Args:
            default_ttl: 默认过期时间（秒）
            prefix: 缓存键前缀
            clock: 时间函数，返回秒
        """
        self.default_ttl = default_ttl
        self.prefix = prefix
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}

    def make_key(self, path: str, params: Optional[Dict[str, Any]] = None) -> str:
        """
        根据资源路径和参数生成缓存键

        Args:
            path: 资源路径
            params: 区分请求的参数

        Returns:
            str: 缓存键
        """
        key = f"{self.prefix}{path}"
        if params:
            key += f":{json.dumps(params, sort_keys=True, separators=(',', ':'))}"
        return key

    def get(self, key: str) -> Optional[Any]:
        """获取未过期的缓存值，不存在或已过期时返回None"""
        entry = self._entries.get(key)
        if entry is None:
            return None

        if self._clock() > entry.expires_at:
            del self._entries[key]
            return None

        return entry.value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        now = self._clock()
        self._entries[key] = CacheEntry(
            value=value,
            stored_at=now,
            expires_at=now + (self.default_ttl if ttl is None else ttl),
        )

    def remove(self, key: str) -> None:
        self._entries.pop(key, None)

    def remove_prefix(self, path: str) -> int:
        """
        删除资源路径下的所有缓存（包括带参数的条目）

        Args:
            path: 资源路径

        Returns:
            int: 删除的条目数量
        """
        key_prefix = self.make_key(path)
        keys = [key for key in self._entries if key == key_prefix or key.startswith(key_prefix + ":")]
        for key in keys:
            del self._entries[key]
        return len(keys)

    def clear(self) -> None:
        """清空所有缓存"""
        self._entries.clear()
        logger.debug("缓存已清空")

    def clear_expired(self) -> int:
        """
        清理所有过期条目

        Returns:
            int: 清理的条目数量
        """
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if now > entry.expires_at]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def stats(self) -> CacheStats:
        oldest = min((entry.stored_at for entry in self._entries.values()), default=None)
        return {"size": len(self._entries), "oldest_timestamp": oldest}

    async def with_cache(
        self, compute: Callable[[], Awaitable[T]], key: str, ttl: Optional[float] = None
    ) -> T:
        """
        优先返回缓存值，未命中时执行计算并写入缓存

        Args:
            compute: 无参数的异步计算函数
            key: 缓存键
            ttl: 过期时间（秒），默认使用 default_ttl

        Returns:
            计算结果或缓存值
        """
        cached = self.get(key)
        if cached is not None:
            logger.debug(f"命中缓存: {key}")
            return cached

        value = await compute()
        self.set(key, value, ttl)
        return value
