"""协作式取消令牌"""

from typing import Callable, List, Optional

from .base import OperationCancelled


class CancelToken:
    """取消令牌

    取消会向下传播到所有子令牌，子令牌取消不会影响父令牌。
    回调在 cancel() 调用时同步执行。
    """

    def __init__(self, parent: Optional["CancelToken"] = None) -> None:
        self._cancelled = False
        self._callbacks: List[Callable[[], None]] = []
        self._parent = parent
        if parent is not None:
            parent.add_callback(self.cancel)

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        """取消令牌并触发所有回调"""
        if self._cancelled:
            return
        self._cancelled = True
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()

    def add_callback(self, callback: Callable[[], None]) -> None:
        """注册取消回调，令牌已取消时立即执行"""
        if self._cancelled:
            callback()
            return
        self._callbacks.append(callback)

    def remove_callback(self, callback: Callable[[], None]) -> None:
        try:
            self._callbacks.remove(callback)
        except ValueError:
            pass

    def child(self) -> "CancelToken":
        """创建子令牌，父令牌取消时子令牌随之取消"""
        return CancelToken(parent=self)

    def detach(self) -> None:
        """从父令牌解除注册"""
        if self._parent is not None:
            self._parent.remove_callback(self.cancel)
            self._parent = None

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise OperationCancelled("操作已取消")
