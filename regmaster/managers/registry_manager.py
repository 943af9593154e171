"""镜像仓库管理器类 - 门面模式实现"""

from typing import Dict, List, Optional

from loguru import logger

from ..constants import CACHE_KEY_PREFIX, CACHE_TTL, CacheTTL
from .base_manager import BaseManager
from .registry.base import CumulativeSizeResult, Image, Manifest
from .registry.cache import CacheStats, TTLCache
from .registry.cancel import CancelToken
from .registry.catalog import CatalogFetcher
from .registry.delete import TagDeleter
from .registry.size import CumulativeSizer, size_of
from .registry.transport import RegistryTransport


class RegistryManager(BaseManager):
    """镜像仓库管理器类，用于浏览镜像、统计大小和删除标签

    未传入取消令牌时，同一资源的新请求会取消该资源上一个仍在进行的请求，
    保证同一时刻只有最新的请求结果有效。
    """

    def __init__(
        self,
        registry_url: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        timeout: float = 30.0,
        api_prefix: str = "",
        ttl: Optional[CacheTTL] = None,
        cache: Optional[TTLCache] = None,
        transport: Optional[RegistryTransport] = None,
    ) -> None:
        """
        初始化镜像仓库管理器

        Args:
            registry_url: 仓库地址
            username: 仓库用户名
            password: 仓库密码
            timeout: 请求超时（秒）
            api_prefix: 仓库API前缀
            ttl: 各类资源的缓存时间（秒）
            cache: 共享缓存，默认新建
            transport: 已创建的传输层，测试时注入
        """
        super().__init__(registry_url, username, password, timeout, api_prefix, transport)
        self.ttl = ttl or CACHE_TTL
        self.cache = cache or TTLCache(default_ttl=self.ttl["default"], prefix=CACHE_KEY_PREFIX)
        self._active_tokens: Dict[str, CancelToken] = {}

        # 初始化子组件
        self.fetcher = CatalogFetcher(self.transport, self.cache, self.ttl)
        self.sizer = CumulativeSizer(self.fetcher, self.cache, self.ttl)
        self.deleter = TagDeleter(self.transport, self.fetcher, self.cache)

    def _supersede(self, resource: str) -> CancelToken:
        """取消该资源上一个请求的令牌，并返回新令牌"""
        previous = self._active_tokens.get(resource)
        if previous is not None and not previous.cancelled:
            logger.debug(f"取消 {resource} 上一个未完成的请求")
            previous.cancel()
        token = CancelToken()
        self._active_tokens[resource] = token
        return token

    def _release(self, resource: str, token: CancelToken) -> None:
        if self._active_tokens.get(resource) is token:
            del self._active_tokens[resource]

    def cancel_all(self) -> None:
        """取消所有进行中的请求"""
        tokens, self._active_tokens = self._active_tokens, {}
        for token in tokens.values():
            token.cancel()

    async def fetch_image_catalog(self, cancel_token: Optional[CancelToken] = None) -> List[str]:
        """
        获取仓库中的所有镜像名称

        Returns:
            List[str]: 镜像名称列表

        Raises:
            RegistryApiError: 仓库返回错误状态码
            OperationCancelled: 请求被取消
        """
        if cancel_token is not None:
            return await self.fetcher.fetch_catalog(cancel_token)

        token = self._supersede("catalog")
        try:
            return await self.fetcher.fetch_catalog(token)
        finally:
            self._release("catalog", token)

    async def fetch_image_tags(
        self, repository: str, cancel_token: Optional[CancelToken] = None
    ) -> List[str]:
        """获取镜像的标签列表（仓库返回的原始顺序）"""
        if cancel_token is not None:
            return await self.fetcher.fetch_tags(repository, cancel_token)

        resource = f"tags:{repository}"
        token = self._supersede(resource)
        try:
            return await self.fetcher.fetch_tags(repository, token)
        finally:
            self._release(resource, token)

    async def fetch_all_images(self, cancel_token: Optional[CancelToken] = None) -> List[Image]:
        """
        获取所有镜像及其标签

        Returns:
            List[Image]: 按名称升序排列的镜像列表，标签已按展示顺序排列
                - name: 镜像名称
                - tags: 标签列表，获取失败的镜像为空列表

        Raises:
            RegistryApiError: 获取镜像目录失败
            OperationCancelled: 请求被取消
        """
        if cancel_token is not None:
            return await self.fetcher.fetch_all_images(cancel_token)

        token = self._supersede("images")
        try:
            return await self.fetcher.fetch_all_images(token)
        finally:
            self._release("images", token)

    async def fetch_image_manifest(
        self, repository: str, tag: str, cancel_token: Optional[CancelToken] = None
    ) -> Manifest:
        """
        获取镜像标签的清单

        Args:
            repository: 镜像名称
            tag: 标签
            cancel_token: 取消令牌，默认取消该镜像上一个清单请求

        Returns:
            Manifest: 镜像清单
        """
        if cancel_token is not None:
            return await self.fetcher.fetch_manifest(repository, tag, cancel_token)

        resource = f"manifest:{repository}"
        token = self._supersede(resource)
        try:
            return await self.fetcher.fetch_manifest(repository, tag, token)
        finally:
            self._release(resource, token)

    @staticmethod
    def calculate_image_size(manifest: Manifest) -> int:
        """根据清单计算镜像大小（字节）"""
        return size_of(manifest)

    async def calculate_cumulative_image_size(
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
            account_for_shared_layers: 是否按层digest去重
            cancel_token: 取消令牌，默认取消该镜像上一个累计大小请求

        Returns:
            CumulativeSizeResult: 包含总大小、去重大小、各标签大小和层digest集合
        """
        if cancel_token is not None:
            return await self.sizer.calculate(repository, tags, account_for_shared_layers, cancel_token)

        resource = f"cumulative:{repository}"
        token = self._supersede(resource)
        try:
            return await self.sizer.calculate(repository, tags, account_for_shared_layers, token)
        finally:
            self._release(resource, token)

    async def delete_image_tag(self, repository: str, tag: str, force_remove: bool = False) -> bool:
        """
        删除镜像标签

        Args:
            repository: 镜像名称
            tag: 标签
            force_remove: 清单获取或删除失败时是否仍视为成功

        Returns:
            bool: 是否删除成功

        Raises:
            DeletionDisabledError: 仓库未开启删除功能
            RegistryApiError: 删除失败
        """
        return await self.deleter.delete(repository, tag, force_remove)

    async def run_garbage_collection(self) -> bool:
        """触发仓库垃圾回收（仅部分仓库支持）"""
        return await self.deleter.run_garbage_collection()

    def clear_cache(self) -> None:
        """清空所有缓存，用于刷新数据"""
        self.cache.clear()

    def cache_stats(self) -> CacheStats:
        return self.cache.stats()

    async def aclose(self) -> None:
        self.cancel_all()
        await super().aclose()

    async def __aenter__(self) -> "RegistryManager":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
