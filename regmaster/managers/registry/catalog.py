"""镜像目录、标签和清单获取相关功能"""

import asyncio
from typing import Any, List, Optional

import httpx
from loguru import logger

from ...constants import CACHE_TTL, DIGEST_HEADER, MANIFEST_ACCEPT, CacheTTL
from .base import Image, Manifest, OperationCancelled, RegistryApiError
from .cache import TTLCache
from .cancel import CancelToken
from .transport import RegistryTransport
from .utils import catalog_path, manifest_path, sort_tags, tags_path


def _json_body(response: httpx.Response, what: str) -> Any:
    """解析响应JSON，非2xx状态码抛出 RegistryApiError"""
    if not response.is_success:
        raise RegistryApiError(f"获取{what}失败: {response.reason_phrase}", response.status_code)
    try:
        return response.json()
    except ValueError as e:
        raise RegistryApiError(f"{what}响应不是有效的JSON: {e}", 500) from e


def _string_list(data: Any, field: str) -> List[str]:
    """取出字符串列表字段，缺失或格式错误时返回空列表"""
    if not isinstance(data, dict):
        return []
    values = data.get(field)
    if not isinstance(values, list):
        return []
    return [value for value in values if isinstance(value, str)]


class CatalogFetcher:
    """镜像目录获取器类

    负责 目录 -> 标签 -> 清单 的获取和聚合，所有请求都经过缓存并支持取消。
    """

    def __init__(
        self,
        transport: RegistryTransport,
        cache: TTLCache,
        ttl: Optional[CacheTTL] = None,
    ) -> None:
        """
        初始化镜像目录获取器

        Args:
            transport: 仓库传输层
            cache: 共享缓存
            ttl: 各类资源的缓存时间
        """
        self.transport = transport
        self.cache = cache
        self.ttl = ttl or CACHE_TTL

    async def fetch_catalog(self, cancel_token: Optional[CancelToken] = None) -> List[str]:
        """
        获取仓库中的所有镜像名称

        Returns:
            List[str]: 镜像名称列表

        Raises:
            RegistryApiError: 仓库返回错误状态码
            OperationCancelled: 请求被取消
        """
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()

        path = catalog_path()

        async def compute() -> List[str]:
            response = await self.transport.request(
                "GET", path, headers={"Accept": "application/json"}, cancel_token=cancel_token
            )
            repositories = _string_list(_json_body(response, "镜像目录"), "repositories")
            logger.debug(f"发现 {len(repositories)} 个镜像仓库")
            return repositories

        try:
            return await self.cache.with_cache(compute, self.cache.make_key(path), self.ttl["catalog"])
        except OperationCancelled:
            logger.debug("获取镜像目录的请求已取消")
            raise

    async def fetch_tags(self, repository: str, cancel_token: Optional[CancelToken] = None) -> List[str]:
        """
        获取镜像的标签列表

        Args:
            repository: 镜像名称

        Returns:
            List[str]: 标签列表（仓库返回的原始顺序）
        """
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()

        path = tags_path(repository)

        async def compute() -> List[str]:
            response = await self.transport.request(
                "GET", path, headers={"Accept": "application/json"}, cancel_token=cancel_token
            )
            return _string_list(_json_body(response, f" {repository} 的标签"), "tags")

        try:
            return await self.cache.with_cache(compute, self.cache.make_key(path), self.ttl["tags"])
        except OperationCancelled:
            logger.debug(f"获取 {repository} 标签的请求已取消")
            raise

    async def fetch_manifest(
        self, repository: str, reference: str, cancel_token: Optional[CancelToken] = None
    ) -> Manifest:
        """
        获取镜像清单

        Args:
            repository: 镜像名称
            reference: 标签或digest

        Returns:
            Manifest: 镜像清单，digest取自清单本身或 Docker-Content-Digest 响应头
        """
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()

        path = manifest_path(repository, reference)

        async def compute() -> Manifest:
            response = await self.transport.request(
                "GET", path, headers={"Accept": MANIFEST_ACCEPT}, cancel_token=cancel_token
            )
            data = _json_body(response, f" {repository}:{reference} 的清单")
            return Manifest.from_dict(data, digest=response.headers.get(DIGEST_HEADER))

        try:
            return await self.cache.with_cache(compute, self.cache.make_key(path), self.ttl["manifest"])
        except OperationCancelled:
            logger.debug(f"获取 {repository}:{reference} 清单的请求已取消")
            raise

    async def fetch_all_images(self, cancel_token: Optional[CancelToken] = None) -> List[Image]:
        """
        获取所有镜像及其标签

        目录获取失败时整体失败；单个镜像的标签获取失败只记录日志，该镜像以空标签列表返回。
        令牌取消时整体抛出 OperationCancelled，不返回部分结果。

        Returns:
            List[Image]: 按名称升序排列的镜像列表
        """
        token = cancel_token or CancelToken()
        token.raise_if_cancelled()

        names = await self.fetch_catalog(token)
        images = await asyncio.gather(*(self._fetch_image(name, token) for name in names))

        # 缓存命中时不会经过传输层，这里再检查一次
        token.raise_if_cancelled()
        return sorted(images, key=lambda image: image["name"])

    async def _fetch_image(self, name: str, parent: CancelToken) -> Image:
        """获取单个镜像的标签，失败时降级为空标签列表"""
        scope = parent.child()
        try:
            tags = await self.fetch_tags(name, scope)
        except OperationCancelled:
            raise
        except Exception as e:
            logger.warning(f"获取 {name} 的标签失败: {e}")
            tags = []
        finally:
            scope.detach()

        return {"name": name, "tags": sort_tags(tags)}

    def invalidate(self, repository: str, reference: Optional[str] = None) -> None:
        """删除镜像标签列表缓存，指定reference时同时删除对应清单缓存"""
        self.cache.remove(self.cache.make_key(tags_path(repository)))
        if reference is not None:
            self.cache.remove(self.cache.make_key(manifest_path(repository, reference)))
