"""
StoreFlow 的非同步 Action 流工具模組。

Middleware 處理器、FlowHolderAction 與 ErrorProcessor 可以用多種形式產生 Action：
單一 Action、同步可迭代物件、非同步生成器、awaitable 或 reactivex 的 Observable。
此模組把這些來源統一轉換為非同步迭代器，並提供合併、映射等組合工具。
"""

import asyncio
import inspect
from typing import Any, AsyncIterable, AsyncIterator, Callable, Optional

from reactivex import Observable
from reactivex.abc import DisposableBase

from .actions import Action
from .types import FlowSource, T


_NEXT = "next"
_ERROR = "error"
_COMPLETED = "completed"


class ObservableIterator(AsyncIterator[T]):
    """
    將 reactivex Observable 轉換為非同步迭代器。

    建立時立即訂閱（BehaviorSubject 的當前值因此不會遺失），
    每個 on_next 都會被緩衝直到被讀取；on_error 會在讀取時重新拋出，
    on_completed 則結束迭代。dispose() 只取消本身的訂閱，不會影響來源。

    範例:
        ```python
        subject = Subject()
        values = ObservableIterator(subject)
        subject.on_next(1)
        assert await values.__anext__() == 1
        ```
    """

    def __init__(self, source: Observable, loop: Optional[asyncio.AbstractEventLoop] = None):
        """
        初始化並訂閱來源。

        Args:
            source: 要轉換的 Observable
            loop: 接收事件的事件迴圈，預設為目前正在執行的迴圈
        """
        self._loop = loop or asyncio.get_running_loop()
        self._queue: asyncio.Queue = asyncio.Queue()
        self._finished = False
        self._subscription: Optional[DisposableBase] = None
        self._subscription = source.subscribe(
            on_next=lambda value: self._push(_NEXT, value),
            on_error=lambda error: self._push(_ERROR, error),
            on_completed=lambda: self._push(_COMPLETED, None),
        )

    def _push(self, kind: str, value: Any) -> None:
        # Observable 可能在其他執行緒發出事件
        try:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, (kind, value))
        except RuntimeError:
            # 事件迴圈已關閉，沒有人會再讀取
            pass

    def __aiter__(self) -> "ObservableIterator[T]":
        return self

    async def __anext__(self) -> T:
        if self._finished:
            raise StopAsyncIteration
        kind, value = await self._queue.get()
        if kind == _NEXT:
            return value
        self.dispose()
        if kind == _ERROR:
            raise value
        raise StopAsyncIteration

    def dispose(self) -> None:
        """取消訂閱並結束迭代。"""
        self._finished = True
        if self._subscription is not None:
            self._subscription.dispose()
            self._subscription = None

    async def aclose(self) -> None:
        self.dispose()

    async def __aenter__(self) -> "ObservableIterator[T]":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.dispose()


async def to_flow(source: FlowSource) -> AsyncIterator[Any]:
    """
    將任意來源轉換為非同步 Action 流。

    Args:
        source: None、單一值、可迭代物件、非同步可迭代物件、awaitable 或 Observable

    Yields:
        來源中的每個項目
    """
    if source is None:
        return
    # Observable 本身也是 awaitable，必須先於 awaitable 判斷
    if isinstance(source, Observable):
        iterator = ObservableIterator(source)
        try:
            async for item in iterator:
                yield item
        finally:
            iterator.dispose()
        return
    if inspect.isawaitable(source):
        source = await source
        async for item in to_flow(source):
            yield item
        return
    if isinstance(source, AsyncIterable):
        # 不主動關閉外部來源，只停止讀取
        async for item in source:
            yield item
        return
    if isinstance(source, Action) or isinstance(source, (str, bytes)) or not _is_iterable(source):
        yield source
        return
    for item in source:
        yield item


def _is_iterable(obj: Any) -> bool:
    try:
        iter(obj)
    except TypeError:
        return False
    return True


async def flow_of(*items: Any) -> AsyncIterator[Any]:
    """依序產生給定的項目。"""
    for item in items:
        yield item


async def empty_flow() -> AsyncIterator[Any]:
    """不產生任何項目的流。"""
    return
    yield  # pragma: no cover


async def map_flow(source: FlowSource, fn: Callable[[Any], Any]) -> AsyncIterator[Any]:
    """
    對來源中的每個項目套用 fn。

    Args:
        source: 任意可被 to_flow 接受的來源
        fn: 映射函數，例如 Action 生成器

    Yields:
        映射後的項目
    """
    async for item in to_flow(source):
        yield fn(item)


async def merge_flows(*sources: FlowSource) -> AsyncIterator[Any]:
    """
    並行讀取多個來源，依到達順序交錯產生項目。

    任何一個來源失敗時，其餘來源的讀取會被取消，錯誤向上拋出。

    Args:
        *sources: 任意可被 to_flow 接受的來源

    Yields:
        所有來源的項目
    """
    if not sources:
        return

    queue: asyncio.Queue = asyncio.Queue()

    async def pump(source: FlowSource) -> None:
        try:
            async for item in to_flow(source):
                await queue.put((_NEXT, item))
        except asyncio.CancelledError:
            raise
        except Exception as err:
            await queue.put((_ERROR, err))
        else:
            await queue.put((_COMPLETED, None))

    tasks = [asyncio.ensure_future(pump(source)) for source in sources]
    remaining = len(tasks)
    try:
        while remaining:
            kind, value = await queue.get()
            if kind == _NEXT:
                yield value
            elif kind == _ERROR:
                raise value
            else:
                remaining -= 1
    finally:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)


async def from_queue(queue: asyncio.Queue, sentinel: Any = None) -> AsyncIterator[Any]:
    """
    讀取外部擁有的 asyncio.Queue，直到讀到 sentinel。

    佇列的生命週期屬於生產者；停止讀取不會關閉或清空佇列。

    Args:
        queue: 外部生產者寫入的佇列
        sentinel: 表示流結束的值，預設為 None

    Yields:
        佇列中的項目
    """
    while True:
        item = await queue.get()
        if item is sentinel:
            return
        yield item
