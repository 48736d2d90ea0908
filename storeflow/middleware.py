"""
基於 StoreFlow 的中介軟體定義模組。

中介軟體是 dispatch 管線中的一個轉換階段：每收到一個 Action，
就產生零到多個 Action 的非同步流。多個中介軟體依註冊順序串接，
前一個階段產生的每個 Action 都會依序送入下一個階段。
"""

from typing import Any, AsyncIterator, Callable, Optional

from .actions import Action, action_type_of
from .flows import to_flow
from .reducers import merge_handlers
from .types import GetState, HandlerMap


def on_action(*action_creators_or_types: Any) -> Callable[[Callable], Callable]:
    """
    方法裝飾器：將 BaseMiddleware 子類的方法註冊為特定 Action 類型的處理器。

    處理器接收 (state, action)，可以是非同步生成器（yield 多個 Action）、
    協程或普通函數（返回 Action、Action 列表或 None）。

    Args:
        *action_creators_or_types: Action 生成器或類型字串

    Returns:
        裝飾器函數

    範例:
        ```python
        class FetchMiddleware(BaseMiddleware):
            @on_action(fetch_data)
            async def fetch(self, state, action):
                value = await api.load(action.payload)
                yield fetch_success(value)
        ```
    """
    def decorator(fn: Callable) -> Callable:
        action_types = tuple(action_type_of(a) for a in action_creators_or_types)
        # 標記這個方法處理哪些 Action 類型
        fn.action_types = getattr(fn, "action_types", ()) + action_types
        return fn
    return decorator


# ———— Base Middleware ————
class BaseMiddleware:
    """
    基礎中介類，以 Action 類型查表分派處理器。

    未註冊的 Action 類型會原樣輸出一次（pass-through），不會被丟棄。
    處理器表可以透過 @on_action 裝飾方法宣告，也可以直接指定 `processors`。
    需要在長時間等待後讀取最新狀態的中介，可以覆寫 process 並自行呼叫 get_state()。
    """

    @property
    def name(self) -> str:
        """中介名稱，用於診斷日誌。"""
        return type(self).__name__

    @property
    def processors(self) -> HandlerMap:
        """Action 類型到處理器的映射表。"""
        processors = self.__dict__.get("_processors")
        if processors is None:
            processors = self._collect_processors()
            self.__dict__["_processors"] = processors
        return processors

    @processors.setter
    def processors(self, value: HandlerMap) -> None:
        self.__dict__["_processors"] = dict(value)

    def _collect_processors(self) -> HandlerMap:
        """
        收集以 @on_action 標記的方法。

        依 MRO 由基類到子類、依定義順序掃描，同類型後註冊者覆蓋先註冊者。
        """
        processors: HandlerMap = {}
        for cls in reversed(type(self).__mro__):
            for attr_name, member in vars(cls).items():
                for action_type in getattr(member, "action_types", ()):
                    processors[action_type] = getattr(self, attr_name)
        return processors

    async def process(self, get_state: GetState, action: Action[Any]) -> AsyncIterator[Action[Any]]:
        """
        處理一個 Action。

        Args:
            get_state: 返回 Store 最新狀態的函數（呼叫時取值，而非快照）
            action: 進入此階段的 Action

        Yields:
            處理器產生的 Action；沒有處理器時原樣輸出傳入的 Action
        """
        processor = self.processors.get(action.type)
        if processor is None:
            yield action
            return

        async for output in to_flow(processor(get_state(), action)):
            yield output

    def teardown(self) -> None:
        """
        當 Store 關閉時調用，用於清理中間件持有的資源。
        """
        pass


class FunctionMiddleware(BaseMiddleware):
    """
    以處理器表直接建立的中介，用於不需要自訂類別的場景。
    """

    def __init__(self, name: str, processors: HandlerMap,
                 on_teardown: Optional[Callable[[], None]] = None) -> None:
        """
        初始化 FunctionMiddleware。

        Args:
            name: 中介名稱
            processors: Action 類型到處理器的映射表
            on_teardown: Store 關閉時呼叫的清理函數
        """
        self._name = name
        self._on_teardown = on_teardown
        self.processors = processors

    @property
    def name(self) -> str:
        return self._name

    def teardown(self) -> None:
        if self._on_teardown is not None:
            self._on_teardown()


def create_middleware(name: str, *handlers: Any) -> FunctionMiddleware:
    """
    以 on(...) 映射或 (action_type, handler) 元組創建中介。

    Args:
        name: 中介名稱
        *handlers: 處理器映射，後出現的同類型處理器覆蓋先前的

    Returns:
        FunctionMiddleware 實例

    範例:
        >>> double_add = create_middleware(
        ...     "DoubleAdd",
        ...     on(add, lambda state, action: [action, action]),
        ... )
    """
    return FunctionMiddleware(name, merge_handlers(handlers))


def middleware_name(middleware: Any) -> str:
    """取得任意中介的名稱，缺少 name 屬性時使用類別名稱。"""
    return getattr(middleware, "name", None) or type(middleware).__name__
