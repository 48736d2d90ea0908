"""
StoreScope：Store 的執行上下文。

Scope 擁有事件迴圈參照、由它啟動的任務，以及 Store 註冊的清理動作。
取消 scope 會關閉所有建立在它之上的 Store，但不會影響外部生產者擁有的任務或來源。
"""

import asyncio
from typing import Any, Coroutine, Optional, Set

from reactivex.abc import DisposableBase
from reactivex.disposable import CompositeDisposable

from .errors import ConfigurationError


class StoreScope:
    """
    由呼叫端提供、控制 Store 任務生命週期的執行上下文。

    範例:
        ```python
        scope = StoreScope()
        store = create_store(CounterState(), counter_reducer, scope=scope)
        ...
        scope.cancel()  # store 隨之關閉
        ```
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        """
        初始化 StoreScope。

        Args:
            loop: 使用的事件迴圈，預設在第一次需要時取目前正在執行的迴圈
        """
        self._loop = loop
        self._tasks: Set[asyncio.Task] = set()
        self._disposables = CompositeDisposable()
        self._cancelled = False

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        """Scope 綁定的事件迴圈。"""
        if self._loop is None:
            try:
                self._loop = asyncio.get_running_loop()
            except RuntimeError:
                raise ConfigurationError(
                    "StoreScope requires a running event loop or an explicit loop",
                    component="StoreScope", config_key="loop",
                ) from None
        return self._loop

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    def launch(self, coro: Coroutine[Any, Any, Any]) -> Optional[asyncio.Task]:
        """
        在 scope 中啟動一個受追蹤的任務。

        Args:
            coro: 要執行的協程

        Returns:
            建立的任務；scope 已取消時返回 None 並關閉協程
        """
        if self._cancelled:
            coro.close()
            return None
        task = self.loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def add(self, disposable: DisposableBase) -> None:
        """
        註冊 scope 取消時要執行的清理動作。

        Args:
            disposable: reactivex Disposable；scope 已取消時立即執行
        """
        self._disposables.add(disposable)

    def remove(self, disposable: DisposableBase) -> None:
        """移除清理動作並立即執行它（Disposable 只會執行一次）。"""
        self._disposables.remove(disposable)

    def cancel(self) -> None:
        """
        取消 scope：執行所有清理動作並取消 scope 啟動的任務。重複呼叫無副作用。
        """
        if self._cancelled:
            return
        self._cancelled = True
        self._disposables.dispose()
        for task in list(self._tasks):
            task.cancel()
