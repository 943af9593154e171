"""镜像仓库基础类型定义"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Set, Tuple, TypedDict


class RegistryError(Exception):
    """镜像仓库错误"""
    pass


class RegistryApiError(RegistryError):
    """仓库API返回非2xx状态码时抛出，保留HTTP状态码"""

    def __init__(self, message: str, status: int) -> None:
        super().__init__(message)
        self.message = message
        self.status = status

    def __str__(self) -> str:
        return f"{self.message} (HTTP {self.status})"


class RegistryConnectionError(RegistryApiError):
    """网络或协议层错误，没有收到仓库响应"""

    def __init__(self, message: str) -> None:
        super().__init__(message, 500)


class DeletionDisabledError(RegistryApiError):
    """仓库服务端未开启删除功能（HTTP 405）"""

    def __init__(self, repository: str, tag: str) -> None:
        super().__init__(
            f"仓库服务端不允许删除 {repository}:{tag}。"
            "请管理员在仓库配置中设置 REGISTRY_STORAGE_DELETE_ENABLED=true 后重试",
            405,
        )


class OperationCancelled(Exception):
    """操作已被取消

    这不是错误：表示结果已过期，调用方直接丢弃即可，不应记录为错误或展示给用户。
    """
    pass


class Image(TypedDict):
    """镜像信息类型"""
    name: str
    tags: List[str]


class CumulativeSizeResult(TypedDict):
    """镜像累计大小类型"""
    total_size: int
    unique_size: int
    tag_sizes: Dict[str, int]
    layer_digests: Set[str]


def _as_int(value: Any) -> int:
    """把仓库返回的数值字段转换为整数，无法解析时返回0"""
    if isinstance(value, bool):
        return 0
    if isinstance(value, str):
        try:
            value = float(value)
        except ValueError:
            return 0
    if isinstance(value, float) and not math.isfinite(value):
        return 0
    if isinstance(value, (int, float)):
        return int(value)
    return 0


def _as_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


@dataclass(frozen=True)
class Descriptor:
    """内容描述符（config或layer）"""
    digest: Optional[str] = None
    size: int = 0
    media_type: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> "Descriptor":
        if not isinstance(data, Mapping):
            return cls()
        return cls(
            digest=_as_str(data.get("digest")),
            size=_as_int(data.get("size")),
            media_type=_as_str(data.get("mediaType")),
        )


@dataclass(frozen=True)
class HistoryEntry:
    """镜像构建历史记录"""
    created: Optional[str] = None
    created_by: Optional[str] = None
    comment: Optional[str] = None
    empty_layer: bool = False

    @classmethod
    def from_dict(cls, data: Any) -> "HistoryEntry":
        if not isinstance(data, Mapping):
            return cls()
        return cls(
            created=_as_str(data.get("created")),
            created_by=_as_str(data.get("created_by")),
            comment=_as_str(data.get("comment")),
            empty_layer=bool(data.get("empty_layer", False)),
        )


_KNOWN_MANIFEST_FIELDS = {
    "schemaVersion",
    "mediaType",
    "config",
    "layers",
    "history",
    "annotations",
    "digest",
    "size",
}


@dataclass(frozen=True)
class Manifest:
    """镜像清单

    按获取时使用的 (仓库, 标签) 标识，而不是按自身digest标识。
    ``layers`` 为 None 表示仓库返回的清单中没有layers数组。
    未识别的字段保存在 ``extra`` 中。
    """
    schema_version: int = 0
    media_type: Optional[str] = None
    config: Optional[Descriptor] = None
    layers: Optional[Tuple[Descriptor, ...]] = None
    history: Tuple[HistoryEntry, ...] = ()
    annotations: Dict[str, str] = field(default_factory=dict)
    digest: Optional[str] = None
    size: Optional[int] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any, digest: Optional[str] = None) -> "Manifest":
        """
        从仓库返回的JSON构建清单

        Args:
            data: 清单JSON
            digest: 响应头 Docker-Content-Digest 中的digest，清单本身没有digest字段时使用

        Returns:
            Manifest: 解析后的清单，缺失或格式错误的字段使用默认值
        """
        if not isinstance(data, Mapping):
            data = {}

        layers = data.get("layers")
        history = data.get("history")
        annotations = data.get("annotations")
        size = data.get("size")

        return cls(
            schema_version=_as_int(data.get("schemaVersion")),
            media_type=_as_str(data.get("mediaType")),
            config=Descriptor.from_dict(data["config"]) if isinstance(data.get("config"), Mapping) else None,
            layers=tuple(Descriptor.from_dict(layer) for layer in layers) if isinstance(layers, list) else None,
            history=tuple(HistoryEntry.from_dict(entry) for entry in history) if isinstance(history, list) else (),
            annotations={str(k): str(v) for k, v in annotations.items()} if isinstance(annotations, Mapping) else {},
            digest=_as_str(data.get("digest")) or digest,
            size=_as_int(size) if size is not None else None,
            extra={k: v for k, v in data.items() if k not in _KNOWN_MANIFEST_FIELDS},
        )
