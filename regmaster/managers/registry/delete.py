"""镜像标签删除相关功能"""

from typing import Optional

from loguru import logger

from ...constants import MANIFEST_ACCEPT
from .base import DeletionDisabledError, RegistryApiError, RegistryError
from .cache import TTLCache
from .catalog import CatalogFetcher
from .transport import RegistryTransport
from .utils import cumulative_size_path, gc_path, manifest_path


class TagDeleter:
    """镜像标签删除器类"""

    def __init__(self, transport: RegistryTransport, fetcher: CatalogFetcher, cache: TTLCache) -> None:
        """
        初始化标签删除器

        Args:
            transport: 仓库传输层
            fetcher: 清单获取器，用于解析digest
            cache: 共享缓存，删除成功后失效相关条目
        """
        self.transport = transport
        self.fetcher = fetcher
        self.cache = cache

    async def delete(self, repository: str, tag: str, force_remove: bool = False) -> bool:
        """
        删除镜像标签

        先通过清单解析内容digest，再按digest删除清单。
        force_remove为True时，清单获取失败或删除请求失败都只记录警告，操作仍视为成功，
        用于清理仓库中已经损坏的标签引用。

        Args:
            repository: 镜像名称
            tag: 标签
            force_remove: 是否强制删除

        Returns:
            bool: 是否删除成功

        Raises:
            DeletionDisabledError: 仓库未开启删除功能
            RegistryApiError: 获取清单失败、清单缺少digest或删除失败
        """
        digest = await self._resolve_digest(repository, tag, force_remove)

        if digest:
            try:
                await self._delete_manifest(repository, tag, digest)
            except RegistryApiError as e:
                if not force_remove:
                    raise
                logger.warning(f"删除 {repository}:{tag} 的清单失败，已启用强制删除，继续执行: {e}")

        self._invalidate(repository, tag, digest)
        logger.success(f"已删除标签 {repository}:{tag}")
        return True

    async def _resolve_digest(self, repository: str, tag: str, force_remove: bool) -> Optional[str]:
        """解析标签对应清单的内容digest（不是config.digest）"""
        try:
            manifest = await self.fetcher.fetch_manifest(repository, tag)
        except RegistryError as e:
            if not force_remove:
                if isinstance(e, RegistryApiError) and e.status == 405:
                    raise DeletionDisabledError(repository, tag) from e
                raise
            logger.warning(f"无法获取 {repository}:{tag} 的清单，已启用强制删除，继续执行: {e}")
            return None

        if not manifest.digest:
            if not force_remove:
                raise RegistryApiError(f"{repository}:{tag} 的清单缺少digest，无法删除", 500)
            logger.warning(f"{repository}:{tag} 的清单缺少digest，已启用强制删除，跳过删除请求")
        return manifest.digest

    async def _delete_manifest(self, repository: str, tag: str, digest: str) -> None:
        response = await self.transport.request(
            "DELETE", manifest_path(repository, digest), headers={"Accept": MANIFEST_ACCEPT}
        )
        if response.status_code == 405:
            raise DeletionDisabledError(repository, tag)
        if not response.is_success:
            raise RegistryApiError(f"删除清单失败: {response.reason_phrase}", response.status_code)

    def _invalidate(self, repository: str, tag: str, digest: Optional[str]) -> None:
        self.fetcher.invalidate(repository, tag)
        if digest:
            self.cache.remove(self.cache.make_key(manifest_path(repository, digest)))
        self.cache.remove_prefix(cumulative_size_path(repository))
        logger.debug(f"已清除 {repository} 的相关缓存")

    async def run_garbage_collection(self) -> bool:
        """
        触发仓库垃圾回收（仅部分仓库支持）

        Returns:
            bool: 是否成功

        Raises:
            RegistryApiError: 仓库不支持或执行失败
        """
        response = await self.transport.request("POST", gc_path())
        if not response.is_success:
            raise RegistryApiError(f"执行垃圾回收失败: {response.reason_phrase}", response.status_code)
        logger.success("仓库垃圾回收已完成")
        return True
