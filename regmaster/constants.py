"""常量配置模块"""

from typing import List, TypedDict

# 文件相关
CONFIG_DIR_NAME: str = ".regmaster"
CONFIG_FILE_NAME: str = "config.json"

# 环境变量
ENV_CONFIG_DIR: str = "REGMASTER_CONFIG_DIR"
ENV_REGISTRY_URL: str = "REGMASTER_URL"
ENV_USERNAME: str = "REGMASTER_USERNAME"
ENV_PASSWORD: str = "REGMASTER_PASSWORD"


# 缓存过期时间（秒），按资源类型固定
class CacheTTL(TypedDict):
    catalog: int
    tags: int
    manifest: int
    cumulative: int
    default: int


CACHE_TTL: CacheTTL = {
    "catalog": 5 * 60,
    "tags": 2 * 60,
    "manifest": 10 * 60,
    "cumulative": 15 * 60,
    "default": 10 * 60,
}

CACHE_KEY_PREFIX: str = "docker-registry:"


# 仓库默认配置
class RegistryConfig(TypedDict):
    url: str
    username: str
    api_prefix: str
    timeout: int


class DefaultRegistryConfig(TypedDict):
    registry: RegistryConfig
    cache: CacheTTL


DEFAULT_REGISTRY_CONFIG: DefaultRegistryConfig = {
    "registry": {
        "url": "http://localhost:5000",
        "username": "",
        "api_prefix": "",  # 通过反向代理访问时填写，例如 /api
        "timeout": 30,
    },
    "cache": {
        "catalog": CACHE_TTL["catalog"],
        "tags": CACHE_TTL["tags"],
        "manifest": CACHE_TTL["manifest"],
        "cumulative": CACHE_TTL["cumulative"],
        "default": CACHE_TTL["default"],
    },
}

# 清单媒体类型
MANIFEST_MEDIA_TYPES: List[str] = [
    "application/vnd.docker.distribution.manifest.v2+json",
    "application/vnd.oci.image.manifest.v1+json",
]
MANIFEST_ACCEPT: str = ", ".join(MANIFEST_MEDIA_TYPES)
DIGEST_HEADER: str = "Docker-Content-Digest"

# 仓库地址验证
REGISTRY_URL_PATTERN: str = r"^https?://[^\s/]+(/[^\s]*)?$"


# 错误消息
class ErrorMessages(TypedDict):
    registry_url_empty: str
    registry_url_invalid: str
    registry_connection: str
    config_validation: str
    config_not_found: str


ERROR_MESSAGES: ErrorMessages = {
    "registry_url_empty": "仓库地址不能为空",
    "registry_url_invalid": "仓库地址必须以 http:// 或 https:// 开头",
    "registry_connection": "无法连接到镜像仓库: {}",
    "config_validation": "配置验证失败: {}",
    "config_not_found": "配置文件不存在: {}",
}

# 手动垃圾回收说明，仓库不支持 /v2/_gc 时展示
GC_INSTRUCTIONS: List[str] = [
    "该仓库不支持通过API触发垃圾回收，请在仓库服务器上手动执行：",
    "  docker exec -it registry registry garbage-collect /etc/docker/registry/config.yml",
    "同时删除未打标签的清单：",
    "  docker exec -it registry registry garbage-collect --delete-untagged /etc/docker/registry/config.yml",
    "注意：删除功能需要在仓库配置中设置 REGISTRY_STORAGE_DELETE_ENABLED=true",
]


# 颜色配置
class Colors(TypedDict):
    success: str
    warning: str
    error: str
    info: str


COLORS: Colors = {"success": "green", "warning": "yellow", "error": "red", "info": "blue"}
