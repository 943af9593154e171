"""基础管理器类"""

from typing import Optional

from loguru import logger

from .registry.base import RegistryError
from .registry.transport import RegistryTransport


class BaseManager:
    """所有管理器类的基类，包含共享的属性和方法"""

    transport: RegistryTransport

    def __init__(
        self,
        registry_url: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        timeout: float = 30.0,
        api_prefix: str = "",
        transport: Optional[RegistryTransport] = None,
    ) -> None:
        """
        初始化基础管理器

        Args:
            registry_url: 仓库地址
            username: 仓库用户名
            password: 仓库密码
            timeout: 请求超时（秒）
            api_prefix: 仓库API前缀
            transport: 已创建的传输层，测试时注入
        """
        self.registry_url = registry_url
        if transport is not None:
            self.transport = transport
        else:
            self.transport = RegistryTransport(
                registry_url,
                username=username,
                password=password,
                timeout=timeout,
                api_prefix=api_prefix,
            )
        logger.debug(f"仓库客户端初始化成功: {registry_url}")

    async def _check_registry_connection(self) -> bool:
        """
        检查仓库API是否可访问

        Returns:
            bool: 连接是否正常
        """
        try:
            response = await self.transport.request("GET", "/v2/")
        except RegistryError as e:
            logger.error(f"仓库连接检查失败: {e}")
            return False

        if response.status_code == 401:
            logger.error("仓库认证失败，请检查用户名和密码")
            return False
        if not response.is_success:
            logger.error(f"仓库连接检查失败: HTTP {response.status_code}")
            return False
        return True

    async def aclose(self) -> None:
        """关闭仓库连接"""
        await self.transport.aclose()
