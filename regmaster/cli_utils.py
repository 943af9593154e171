"""CLI工具模块，包含CLI命令行接口的辅助函数和类"""

import asyncio
import sys
from functools import wraps
from threading import Lock
from typing import Any, Awaitable, Callable, Optional, TypeVar

from loguru import logger

from .constants import ERROR_MESSAGES
from .managers.config_manager import ConfigError, ConfigManager
from .managers.registry.base import (
    DeletionDisabledError,
    OperationCancelled,
    RegistryConnectionError,
    RegistryError,
)
from .managers.registry_manager import RegistryManager

F = TypeVar('F', bound=Callable[..., Awaitable[Any]])


# 命令行上下文管理
class RegistryContext:
    """命令行上下文管理类"""

    _instance: Optional['RegistryContext'] = None
    _lock: Lock = Lock()

    def __init__(self) -> None:
        """初始化命令行上下文"""
        if RegistryContext._instance is not None:
            raise RuntimeError("RegistryContext是单例类，请使用get_instance()获取实例")
        RegistryContext._instance = self
        self.config_dir: Optional[str] = None
        self.registry_url: Optional[str] = None
        self.username: Optional[str] = None

    @classmethod
    def get_instance(cls) -> 'RegistryContext':
        """获取RegistryContext单例实例"""
        with cls._lock:
            if cls._instance is None:
                cls._instance = RegistryContext()
            return cls._instance

    @classmethod
    def reset(cls) -> None:
        with cls._lock:
            cls._instance = None


def get_config_manager() -> ConfigManager:
    """
    获取配置管理器实例并加载配置

    Returns:
        ConfigManager: 已加载配置的配置管理器

    Raises:
        ConfigError: 配置文件无效时抛出
    """
    ctx = RegistryContext.get_instance()
    config_manager = ConfigManager(ctx.config_dir)
    config_manager.load_config()
    return config_manager


def get_registry_manager() -> RegistryManager:
    """
    根据配置和命令行参数创建仓库管理器

    命令行参数优先于环境变量，环境变量优先于配置文件。

    Returns:
        RegistryManager: 仓库管理器实例
    """
    ctx = RegistryContext.get_instance()
    config_manager = get_config_manager()
    config = config_manager.get_config()

    registry_url = ctx.registry_url or config_manager.get_registry_url()
    username = ctx.username or config_manager.get_username()
    password = config_manager.get_password(username)

    return RegistryManager(
        registry_url,
        username=username,
        password=password,
        timeout=config["registry"]["timeout"],
        api_prefix=config["registry"]["api_prefix"],
        ttl=config["cache"],
    )


def registry_command(func: F) -> Callable[..., Any]:
    """
    把异步命令包装为同步typer命令的装饰器

    统一处理仓库错误：取消静默退出，其他错误记录日志后以状态码1退出。

    Args:
        func: 被装饰的异步函数

    Returns:
        Callable: 装饰后的函数
    """

    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return asyncio.run(func(*args, **kwargs))
        except OperationCancelled:
            logger.debug("操作已取消")
        except DeletionDisabledError as e:
            logger.error(e.message)
            sys.exit(1)
        except ConfigError as e:
            logger.error(f"错误：{e}")
            logger.info("请使用 'rgm config' 命令配置镜像仓库")
            sys.exit(1)
        except RegistryConnectionError as e:
            logger.error(ERROR_MESSAGES["registry_connection"].format(e.message))
            logger.error("请检查网络连接和仓库地址是否正确")
            sys.exit(1)
        except RegistryError as e:
            logger.error(f"错误：{e}")
            sys.exit(1)

    return wrapper

