"""镜像大小计算相关功能"""

import asyncio
from typing import Dict, List, Optional, Tuple

from loguru import logger

from ...constants import CACHE_TTL, CacheTTL
from .base import CumulativeSizeResult, Manifest, OperationCancelled
from .cache import TTLCache
from .cancel import CancelToken
from .catalog import CatalogFetcher
from .utils import cumulative_size_path


def size_of(manifest: Manifest) -> int:
    """
    根据清单计算镜像大小

    清单没有layers数组但直接提供了size时（部分仓库会预先计算总大小），直接返回size；
    否则返回config大小与所有层大小之和，缺失的大小按0计算。

    Args:
        manifest: 镜像清单

    Returns:
        int: 镜像大小（字节）
    """
    if manifest.layers is None and manifest.size is not None:
        return manifest.size

    total = manifest.config.size if manifest.config is not None else 0
    for layer in manifest.layers or ():
        total += layer.size
    return total


class CumulativeSizer:
    """镜像累计大小计算器类"""

    def __init__(
        self, fetcher: CatalogFetcher, cache: TTLCache, ttl: Optional[CacheTTL] = None
    ) -> None:
        """
        初始化累计大小计算器

        Args:
            fetcher: 清单获取器
            cache: 共享缓存
            ttl: 各类资源的缓存时间
        """
        self.fetcher = fetcher
        self.cache = cache
        self.ttl = ttl or CACHE_TTL

    async def calculate(
        self,
        repository: str,
        tags: List[str],
        account_for_shared_layers: bool = True,
        cancel_token: Optional[CancelToken] = None,
    ) -> CumulativeSizeResult:
        """
        计算镜像所有标签的累计大小

        Args:
            repository: 镜像名称
            tags: 要统计的标签
            account_for_shared_layers: 是否按层digest去重计算实际占用
            cancel_token: 取消令牌

        Returns:
            CumulativeSizeResult: total_size为各标签大小之和（共享层重复计算），
                unique_size为去重后的层大小之和
        """
        token = cancel_token or CancelToken()
        token.raise_if_cancelled()

        key = self.cache.make_key(
            cumulative_size_path(repository),
            {"tags": ",".join(tags), "accountForSharedLayers": account_for_shared_layers},
        )

        async def compute() -> CumulativeSizeResult:
            manifests = await asyncio.gather(
                *(self._fetch_manifest(repository, tag, token) for tag in tags)
            )
            token.raise_if_cancelled()
            return self._summarize(manifests, account_for_shared_layers)

        try:
            return await self.cache.with_cache(compute, key, self.ttl["cumulative"])
        except OperationCancelled:
            logger.debug(f"{repository} 的累计大小计算已取消")
            raise

    async def _fetch_manifest(
        self, repository: str, tag: str, parent: CancelToken
    ) -> Tuple[str, Optional[Manifest]]:
        """获取单个标签的清单，失败时返回None"""
        scope = parent.child()
        try:
            return tag, await self.fetcher.fetch_manifest(repository, tag, scope)
        except OperationCancelled:
            raise
        except Exception as e:
            logger.warning(f"获取 {repository}:{tag} 的清单失败: {e}")
            return tag, None
        finally:
            scope.detach()

    @staticmethod
    def _summarize(
        manifests: List[Tuple[str, Optional[Manifest]]], account_for_shared_layers: bool
    ) -> CumulativeSizeResult:
        tag_sizes: Dict[str, int] = {}
        layers: Dict[str, int] = {}
        total_size = 0

        for tag, manifest in manifests:
            if manifest is None:
                continue

            size = size_of(manifest)
            tag_sizes[tag] = size
            total_size += size

            if account_for_shared_layers:
                for layer in manifest.layers or ():
                    # 相同digest的层内容相同，后出现的直接覆盖
                    if layer.digest and layer.size:
                        layers[layer.digest] = layer.size

        return {
            "total_size": total_size,
            "unique_size": sum(layers.values()) if account_for_shared_layers else total_size,
            "tag_sizes": tag_sizes,
            "layer_digests": set(layers),
        }
