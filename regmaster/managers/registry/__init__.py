"""镜像仓库数据聚合相关功能模块

该子包包含仓库访问的各个功能模块，如缓存、取消、目录聚合、大小统计、标签删除等。
"""

from .base import (
    CumulativeSizeResult,
    DeletionDisabledError,
    Descriptor,
    HistoryEntry,
    Image,
    Manifest,
    OperationCancelled,
    RegistryApiError,
    RegistryConnectionError,
    RegistryError,
)
from .cache import CacheEntry, TTLCache
from .cancel import CancelToken
from .catalog import CatalogFetcher
from .delete import TagDeleter
from .size import CumulativeSizer, size_of
from .transport import RegistryTransport
from .utils import filter_images, sort_tags

__all__ = [
    "RegistryError",
    "RegistryApiError",
    "RegistryConnectionError",
    "DeletionDisabledError",
    "OperationCancelled",
    "Image",
    "Manifest",
    "Descriptor",
    "HistoryEntry",
    "CumulativeSizeResult",
    "CacheEntry",
    "TTLCache",
    "CancelToken",
    "RegistryTransport",
    "CatalogFetcher",
    "CumulativeSizer",
    "TagDeleter",
    "size_of",
    "sort_tags",
    "filter_images",
]
