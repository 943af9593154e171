"""镜像仓库HTTP传输层"""

import asyncio
from typing import Any, Dict, Optional

import httpx
from loguru import logger

from .base import OperationCancelled, RegistryConnectionError
from .cancel import CancelToken


class RegistryTransport:
    """基于 httpx.AsyncClient 的仓库请求封装

    只负责发送请求和取消：非2xx状态码由调用方转换为 RegistryApiError。
    """

    def __init__(
        self,
        base_url: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        timeout: float = 30.0,
        api_prefix: str = "",
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """
        初始化传输层

        Args:
            base_url: 仓库地址，例如 https://registry.example.com
            username: 仓库用户名
            password: 仓库密码
            timeout: 请求超时（秒）
            api_prefix: 仓库API前缀，通过反向代理访问时使用，例如 /api
            client: 已创建的httpx客户端，测试时注入
        """
        self.base_url = base_url.rstrip("/")
        self.api_prefix = api_prefix.rstrip("/")
        self.username = username

        if client is not None:
            self._client = client
        else:
            auth = httpx.BasicAuth(username, password or "") if username else None
            self._client = httpx.AsyncClient(base_url=self.base_url, auth=auth, timeout=timeout)

    def url_for(self, path: str) -> str:
        return f"{self.api_prefix}{path}"

    async def request(
        self,
        method: str,
        path: str,
        headers: Optional[Dict[str, str]] = None,
        cancel_token: Optional[CancelToken] = None,
        **kwargs: Any,
    ) -> httpx.Response:
        """
        发送请求

        Args:
            method: HTTP方法
            path: 仓库API路径，例如 /v2/_catalog
            headers: 请求头
            cancel_token: 取消令牌，取消时中止进行中的请求

        Returns:
            httpx.Response: 响应（任意状态码）

        Raises:
            OperationCancelled: 请求被取消
            RegistryConnectionError: 网络或协议层错误
        """
        url = self.url_for(path)
        logger.debug(f"{method} {url}")

        if cancel_token is None:
            return await self._send(method, url, headers, **kwargs)

        cancel_token.raise_if_cancelled()
        task = asyncio.ensure_future(self._send(method, url, headers, **kwargs))
        cancel_token.add_callback(task.cancel)
        try:
            return await task
        except asyncio.CancelledError:
            if cancel_token.cancelled:
                raise OperationCancelled(f"请求已取消: {method} {url}") from None
            raise
        finally:
            cancel_token.remove_callback(task.cancel)

    async def _send(
        self, method: str, url: str, headers: Optional[Dict[str, str]], **kwargs: Any
    ) -> httpx.Response:
        try:
            return await self._client.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            raise RegistryConnectionError(f"请求 {method} {url} 失败: {e}") from e

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "RegistryTransport":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
