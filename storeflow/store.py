"""
基於 StoreFlow 的 Store 模組。

Store 擁有當前狀態、dispatch 管線與狀態發布流：

    dispatch(action) → 入口佇列 → 中介鏈（逐段串接）→ FlowHolderAction 展開（並行合併）
    → reducer（互斥鎖序列化）→ 狀態發布 → 觀察者

每個被取出的 Action 在自己的任務中處理（下稱「處理流程」）。不同處理流程之間並行執行，
只有 reducer 這一步被序列化，因此不同 Action 的完成順序不保證與 dispatch 順序一致。
處理流程中任何位置的錯誤都只會影響該流程，並交給 ErrorProcessor 轉換為替代 Action。
"""

import asyncio
import contextlib
import logging
from typing import Any, AsyncIterator, Callable, Generic, Iterable, Optional, Set

import reactivex
from reactivex import Observable, operators as ops
from reactivex.disposable import Disposable
from reactivex.subject import BehaviorSubject

from .actions import Action
from .config import StoreConfig
from .error_processor import ErrorProcessor, as_error_processor
from .errors import (
    ActionError, ConfigurationError, ErrorProcessorError, MiddlewareError,
    ReducerError, StoreError, global_error_handler
)
from .flows import ObservableIterator, flow_of, to_flow
from .middleware import middleware_name
from .scope import StoreScope
from .store_logger import StoreLogger
from .types import S, Middleware, ReducerFunction, StateSelector


_logger = logging.getLogger(__name__)


class Store(Generic[S]):
    """
    狀態容器，管理應用狀態並通知訂閱者狀態變更。

    Store 建立後即處於開啟狀態；close() 之後進入終止狀態，不再接受 dispatch，
    也不再發布狀態。
    """

    def __init__(self,
                 initial_state: S,
                 reducer: ReducerFunction,
                 middlewares: Optional[Iterable[Middleware]] = None,
                 error_processor: Optional[ErrorProcessor] = None,
                 scope: Optional[StoreScope] = None,
                 logger: Optional[StoreLogger] = None,
                 config: Optional[StoreConfig] = None):
        """
        初始化 Store，並在 scope 中啟動入口佇列的消費任務。

        Args:
            initial_state: 初始狀態
            reducer: 純函數 (state, action) -> state
            middlewares: 依順序串接的中介列表
            error_processor: 錯誤處理器或函數，預設靜默吞掉錯誤
            scope: 執行上下文，預設建立一個由 Store 擁有的 scope
            logger: 診斷鉤子，預設為空操作
            config: Store 配置
        """
        self._config = config or StoreConfig()
        self._reducer = reducer
        self._middlewares = list(middlewares or [])
        self._error_processor = as_error_processor(error_processor)
        self._store_logger = logger or StoreLogger()

        # 未提供 scope 時，scope 由 Store 擁有，關閉時一併取消
        self._owns_scope = scope is None
        self._scope = scope or StoreScope()
        if self._scope.is_cancelled:
            raise StoreError("cannot create a store on a cancelled scope", operation="create_store")
        self._loop = self._scope.loop

        self._state = initial_state
        self._state_subject = BehaviorSubject(initial_state)
        self._queue: asyncio.Queue = asyncio.Queue()
        self._lock = asyncio.Lock()
        limit = self._config.max_concurrent_actions
        self._admission = asyncio.Semaphore(limit) if limit else None
        self._tasks: Set[asyncio.Task] = set()
        self._closed = False

        # scope 被取消時關閉此 Store
        self._registration = Disposable(self.close)
        self._scope.add(self._registration)
        self._launch(self._consume())

    # ———— 公開 API ————

    @property
    def name(self) -> str:
        return self._config.name

    @property
    def current_state(self) -> S:
        """
        獲取最新發布的狀態快照。不加鎖、不會失敗。

        Returns:
            當前狀態。
        """
        return self._state

    @property
    def is_closed(self) -> bool:
        return self._closed

    def dispatch(self, action: Action[Any]) -> None:
        """
        分發一個動作。立即返回、不阻塞、不拋出異常。

        可以在事件迴圈的執行緒或其他執行緒呼叫；Store 關閉後為空操作。

        Args:
            action: 要分發的 Action 物件。
        """
        if self._closed:
            return
        try:
            running_loop = asyncio.get_running_loop()
        except RuntimeError:
            running_loop = None

        if running_loop is self._loop:
            self._queue.put_nowait(action)
            return
        try:
            self._loop.call_soon_threadsafe(self._enqueue, action)
        except RuntimeError:
            # 事件迴圈已關閉，等同於 Store 已關閉
            _logger.debug("dropping %r: event loop is closed", action)

    def as_observable(self) -> Observable:
        """
        以 reactivex Observable 觀察狀態。

        訂閱時立即收到當前狀態，之後收到每個發布的狀態；Store 關閉時完成。
        訂閱者在 on_next 中拋出的異常會回報給 global_error_handler，
        不影響其他訂閱者，也不會被當作 Action 處理失敗。

        Returns:
            狀態的 Observable
        """

        def subscribe(observer, scheduler=None):
            def on_next(state: S) -> None:
                try:
                    observer.on_next(state)
                except Exception as err:
                    failure = StoreError(f"state observer failed: {err}", operation="publish")
                    failure.__cause__ = err
                    global_error_handler.handle(failure)

            return self._state_subject.subscribe(
                on_next=on_next,
                on_error=observer.on_error,
                on_completed=observer.on_completed,
                scheduler=scheduler,
            )

        source = reactivex.create(subscribe)
        if self._config.distinct_states:
            return source.pipe(ops.distinct_until_changed())
        return source

    def select(self, selector: StateSelector) -> Observable:
        """
        選擇狀態的一部分進行觀察，只有選出的值改變時才發出。

        Args:
            selector: 一個函數，接收整個狀態並返回希望觀察的部分。

        Returns:
            一個可觀察對象，發送選定的狀態部分。
        """
        return self.as_observable().pipe(
            ops.map(selector),
            ops.distinct_until_changed(),
        )

    def observe_state(self) -> ObservableIterator[S]:
        """
        以非同步迭代器觀察狀態。

        立即產生當前狀態，之後產生每個發布的狀態，直到 Store 關閉或呼叫端停止迭代。
        每個觀察者獨立收到相同的狀態序列。

        Returns:
            可用於 `async for` 的迭代器，也可以用 `async with` 確保取消訂閱

        範例:
            ```python
            async with store.observe_state() as states:
                async for state in states:
                    render(state)
            ```
        """
        return ObservableIterator(self.as_observable(), loop=self._loop)

    def close(self) -> None:
        """
        關閉 Store：取消 Store 擁有的任務、清理中介並完成狀態流。重複呼叫無副作用。

        外部 FlowHolderAction 的來源不會被關閉，只是不再被讀取。
        """
        if self._closed:
            return
        self._closed = True

        for task in list(self._tasks):
            task.cancel()

        for middleware in self._middlewares:
            teardown = getattr(middleware, "teardown", None)
            if teardown is None:
                continue
            try:
                teardown()
            except Exception:
                _logger.exception("teardown of middleware %s failed", middleware_name(middleware))

        self._state_subject.on_completed()
        self._scope.remove(self._registration)
        if self._owns_scope:
            self._scope.cancel()

    async def aclose(self) -> None:
        """關閉 Store 並等待被取消的任務結束。"""
        tasks = [task for task in self._tasks if task is not asyncio.current_task()]
        self.close()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def __enter__(self) -> "Store[S]":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    async def __aenter__(self) -> "Store[S]":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    # ———— 管線 ————

    def _launch(self, coro) -> None:
        if self._closed:
            coro.close()
            return
        task = self._scope.launch(coro)
        if task is None:
            return
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _enqueue(self, action: Action[Any]) -> None:
        if not self._closed:
            self._queue.put_nowait(action)

    def _get_state(self) -> S:
        return self._state

    async def _consume(self) -> None:
        """從入口佇列取出 Action，每個 Action 啟動一個獨立的處理流程。"""
        while True:
            action = await self._queue.get()
            self._notify("on_action_dispatched", action)
            self._launch(self._process_action(action))

    async def _process_action(self, action: Action[Any]) -> None:
        """
        單一 Action 的處理流程：中介鏈 → 展開 → reducer。

        流程中的第一個錯誤會取消同一流程內其餘的展開任務，然後交給 ErrorProcessor。
        """
        admission = self._admission or contextlib.nullcontext()
        async with admission:
            try:
                async with asyncio.TaskGroup() as group:
                    async with contextlib.aclosing(self._run_middlewares(action)) as outputs:
                        async for output in outputs:
                            if output.is_flow_holder:
                                # 每個 FlowHolderAction 在獨立任務中展開，依到達順序交錯
                                group.create_task(self._collect_flow(output))
                            else:
                                await self._reduce(output)
                    self._notify("on_middlewares_completed", action)
            except ExceptionGroup as failures:
                await self._recover(failures.exceptions[0])

    async def _run_middlewares(self, action: Any) -> AsyncIterator[Action[Any]]:
        if not isinstance(action, Action):
            raise ActionError(f"dispatched value is not an Action: {action!r}", payload=action)

        stream: AsyncIterator[Action[Any]] = flow_of(action)
        for middleware in self._middlewares:
            stream = self._through(middleware, stream)
        async for output in stream:
            yield output

    async def _through(self, middleware: Middleware,
                       upstream: AsyncIterator[Action[Any]]) -> AsyncIterator[Action[Any]]:
        """將上游的每個 Action 依序送入一個中介，並串接其輸出。"""
        name = middleware_name(middleware)
        async for action in upstream:
            self._notify("on_middleware_processing", name, action)
            async for output in to_flow(middleware.process(self._get_state, action)):
                if not isinstance(output, Action):
                    raise MiddlewareError(f"middleware emitted a non-Action value: {output!r}",
                                          middleware_name=name, action_type=action.type)
                yield output

    async def _collect_flow(self, holder: Action[Any]) -> None:
        """展開 FlowHolderAction，把流中的每個 Action 送往 reducer。"""
        async for action in to_flow(holder.to_flow_action()):
            if not isinstance(action, Action):
                raise ActionError(f"flow emitted a non-Action value: {action!r}",
                                  action_type=holder.type, payload=action)
            self._notify("on_flow_holder_action_emitted", action)
            await self._reduce(action)

    async def _reduce(self, action: Action[Any]) -> None:
        async with self._lock:
            if self._closed:
                return
            previous_state = self._state
            try:
                new_state = self._reducer(previous_state, action)
            except Exception as err:
                raise ReducerError(f"reducer failed on {action.type}: {err}",
                                   reducer_name=_callable_name(self._reducer),
                                   action_type=action.type, state=previous_state) from err
            self._state = new_state
            self._state_subject.on_next(new_state)
        self._notify("on_state_reduced", action, previous_state, new_state)

    async def _recover(self, error: Exception) -> None:
        """
        將錯誤交給 ErrorProcessor，並把替代 Action 展開後送往 reducer。

        替代 Action 與中介鏈的輸出一樣處理：FlowHolderAction 在獨立任務中展開，
        一般 Action 直接 reduce。恢復過程中的失敗（ErrorProcessor 本身、替代流或 reducer）
        不會再被轉換：回報給 global_error_handler，放棄此流程剩餘的恢復工作，
        其他流程不受影響。
        """
        self._notify("on_error_occurred", error)
        try:
            async with asyncio.TaskGroup() as group:
                async with contextlib.aclosing(self._replacements(error)) as replacements:
                    async for replacement in replacements:
                        if not isinstance(replacement, Action):
                            raise ActionError(f"error processor emitted a non-Action value: {replacement!r}",
                                              payload=replacement)
                        self._notify("on_error_handled", replacement)
                        if replacement.is_flow_holder:
                            group.create_task(self._collect_flow(replacement))
                        else:
                            await self._reduce(replacement)
        except ExceptionGroup as failures:
            global_error_handler.handle(failures.exceptions[0])

    async def _replacements(self, error: Exception) -> AsyncIterator[Any]:
        """讀取 ErrorProcessor 的輸出；只有 ErrorProcessor 自己的失敗會包裝為 ErrorProcessorError。"""
        try:
            async for replacement in to_flow(self._error_processor(error)):
                yield replacement
        except Exception as err:
            raise ErrorProcessorError(f"error processor failed: {err}",
                                      processor_name=self._error_processor.name,
                                      original_error=error) from err

    def _notify(self, hook: str, *args: Any) -> None:
        try:
            getattr(self._store_logger, hook)(*args)
        except Exception:
            _logger.exception("store logger hook %s failed", hook)


def _callable_name(fn: Callable) -> str:
    return getattr(fn, "__name__", None) or type(fn).__name__


def create_store(initial_state: Optional[S] = None,
                 reducer: Optional[ReducerFunction] = None,
                 middlewares: Optional[Iterable[Middleware]] = None,
                 error_processor: Any = None,
                 scope: Optional[StoreScope] = None,
                 *,
                 logger: Optional[StoreLogger] = None,
                 config: Optional[StoreConfig] = None) -> Store[S]:
    """
    創建一個新的 Store 實例。

    Args:
        initial_state: 初始狀態；省略時使用 reducer.initial_state（create_reducer 會設置）
        reducer: 純函數 (state, action) -> state
        middlewares: 依順序串接的中介列表，預設為空
        error_processor: ErrorProcessor 或函數 (error) -> Action 來源，預設靜默吞掉錯誤
        scope: 執行上下文，預設由 Store 自行建立並擁有
        logger: 診斷鉤子
        config: Store 配置

    Returns:
        Store: 新創建的 Store 實例。

    範例:
        ```python
        store = create_store(CounterState(), counter_reducer, [FetchMiddleware()])
        store.dispatch(increment())
        ```
    """
    if reducer is None:
        raise ConfigurationError("a reducer is required", component="create_store", config_key="reducer")
    if initial_state is None:
        initial_state = getattr(reducer, "initial_state", None)
        if initial_state is None:
            raise ConfigurationError("an initial state is required", component="create_store",
                                     config_key="initial_state")

    return Store(
        initial_state,
        reducer,
        middlewares=middlewares,
        error_processor=error_processor,
        scope=scope,
        logger=logger,
        config=config,
    )
