"""镜像仓库管理器模块

该模块包含各种管理器类，用于访问镜像仓库和管理本地配置。
"""

from .base_manager import BaseManager
from .config_manager import ConfigError, ConfigManager
from .registry_manager import RegistryManager

__all__ = [
    "BaseManager",
    "RegistryManager",
    "ConfigManager",
    "ConfigError",
]
