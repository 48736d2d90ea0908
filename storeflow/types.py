"""
StoreFlow 共用類型定義。
"""

from typing import Any, AsyncIterable, Awaitable, Callable, Dict, Iterable, TypeVar, Union

from reactivex import Observable
from typing_extensions import Protocol, TypeAlias


S = TypeVar("S")  # 狀態類型
P = TypeVar("P")  # 負載類型
T = TypeVar("T")

# 可被轉換為 Action 流的來源：單一值、同步/非同步可迭代物件、awaitable 或 Observable
FlowSource: TypeAlias = Union[
    None,
    Any,
    Iterable[Any],
    AsyncIterable[Any],
    Awaitable[Any],
    Observable,
]

GetState = Callable[[], Any]
ReducerFunction = Callable[[Any, Any], Any]
ActionHandler = Callable[[Any, Any], Any]
HandlerMap = Dict[str, ActionHandler]
ErrorProcessorFunction = Callable[[Exception], FlowSource]
StateSelector = Callable[[Any], Any]


class ActionCreator(Protocol):
    """Action 生成器：呼叫後產生同一種類的 Action，並透過 `type` 暴露種類標籤。"""

    type: str

    def __call__(self, *args: Any, **kwargs: Any) -> Any: ...


class Middleware(Protocol):
    """Middleware 協議：接收一個 Action，產生零到多個 Action 的非同步流。"""

    @property
    def name(self) -> str: ...

    def process(self, get_state: GetState, action: Any) -> AsyncIterable[Any]: ...
