"""
基於 StoreFlow 的 Action 定義模組。

此模組提供 Action 類別以及創建 Action 的功能。
Actions 是描述狀態變更意圖的不可變對象，以 `type` 字串作為種類標籤。
FlowHolderAction 是一種特殊的 Action，持有一條由外部驅動的非同步 Action 流，
Store 會把它展開並把流中的每個 Action 送往 reducer。
"""

from typing import Any, Callable, Dict, Generic, Optional, Union, overload

from immutables import Map

from .types import P, ActionCreator, FlowSource


class Action(Generic[P]):
    """
    表示一個有類型和可選負載的動作。

    泛型參數:
        P: 負載的類型

    屬性:
        type: 動作的類型字符串（種類標籤）
        payload: 動作的負載數據（可選）
    """
    __slots__ = ('type', 'payload')

    # 種類判別：一般 Action 不持有 Action 流
    is_flow_holder = False

    def __init__(self, type: str, payload: Optional[P] = None):
        object.__setattr__(self, 'type', type)
        object.__setattr__(self, 'payload', payload)

    def __setattr__(self, name, value):
        raise AttributeError(f"Cannot modify immutable instance attribute '{name}'")

    def __delattr__(self, name):
        raise AttributeError(f"Cannot delete immutable instance attribute '{name}'")

    def __eq__(self, other):
        if not isinstance(other, Action):
            return False
        return (
            self.is_flow_holder == other.is_flow_holder
            and self.type == other.type
            and self.payload == other.payload
        )

    def __hash__(self):
        return hash((self.type, self.payload))

    def __repr__(self):
        return f"Action(type='{self.type}', payload={repr(self.payload)})"


class FlowHolderAction(Action[P]):
    """
    持有一條外部非同步 Action 流的 Action。

    流的生命週期屬於建立它的外部生產者（socket、計時器、repository 呼叫等）；
    Store 只負責消費，關閉 Store 不會關閉來源。

    屬性:
        type: 動作的類型字符串
        payload: 傳給 to_flow 的負載，一般就是外部來源本身
    """
    __slots__ = ('_to_flow',)

    is_flow_holder = True

    def __init__(self, type: str, payload: Optional[P] = None,
                 to_flow: Optional[Callable[[Any], FlowSource]] = None):
        super().__init__(type, payload)
        object.__setattr__(self, '_to_flow', to_flow)

    def to_flow_action(self) -> FlowSource:
        """
        將自身轉換為 Action 流。

        Returns:
            可被 `storeflow.flows.to_flow` 接受的來源；沒有轉換函數時直接返回負載
        """
        if self._to_flow is None:
            return self.payload
        return self._to_flow(self.payload)

    def __repr__(self):
        return f"FlowHolderAction(type='{self.type}', payload={repr(self.payload)})"


def _process_payload(payload: Any) -> Any:
    """
    處理 payload，將字典轉換為不可變結構。

    Args:
        payload: 原始 payload

    Returns:
        處理後的 payload
    """
    if isinstance(payload, dict):
        return Map(payload)
    return payload


def _build_payload(prepare_fn: Optional[Callable[..., Any]], args: tuple, kwargs: dict) -> Any:
    if prepare_fn:
        return _process_payload(prepare_fn(*args, **kwargs))
    if len(args) == 1 and not kwargs:
        return _process_payload(args[0])
    if args or kwargs:
        payload: Dict[Union[int, str], Any] = dict(zip(range(len(args)), args))
        payload.update(kwargs)
        return _process_payload(payload)
    # 無參數，無負載
    return None


@overload
def create_action(action_type: str) -> ActionCreator:
    ...


@overload
def create_action(action_type: str, prepare_fn: Callable[..., P]) -> ActionCreator:
    ...


def create_action(action_type: str, prepare_fn: Optional[Callable[..., Any]] = None) -> ActionCreator:
    """
    創建一個 Action 生成器函數。

    Args:
        action_type: Action 的類型標識符
        prepare_fn: 可選的預處理函數，用於在創建 Action 前處理輸入參數

    Returns:
        一個可調用的函數，用於生成指定類型的 Action

    範例:
        >>> increment = create_action("[Counter] Increment")
        >>> increment()  # 返回 Action(type="[Counter] Increment", payload=None)
        >>>
        >>> add = create_action("[Counter] Add", lambda amount: amount)
        >>> add(5)  # 返回 Action(type="[Counter] Add", payload=5)
    """
    def action_creator(*args: Any, **kwargs: Any) -> Action[Any]:
        return Action(action_type, _build_payload(prepare_fn, args, kwargs))

    # 添加 type 屬性以便於識別
    action_creator.type = action_type  # type: ignore
    return action_creator  # type: ignore[return-value]


def create_flow_action(action_type: str,
                       to_flow: Optional[Callable[[Any], FlowSource]] = None,
                       prepare_fn: Optional[Callable[..., Any]] = None) -> ActionCreator:
    """
    創建一個 FlowHolderAction 生成器函數。

    Args:
        action_type: Action 的類型標識符
        to_flow: 將負載轉換為 Action 流的函數；省略時負載本身即為 Action 流
        prepare_fn: 可選的預處理函數

    Returns:
        一個可調用的函數，用於生成指定類型的 FlowHolderAction

    範例:
        >>> add = create_action("[Counter] Add", lambda amount: amount)
        >>> stream_connected = create_flow_action(
        ...     "[Counter] StreamConnected",
        ...     lambda values: map_flow(values, add),
        ... )
        >>> store.dispatch(stream_connected(from_queue(queue)))
    """
    def action_creator(*args: Any, **kwargs: Any) -> FlowHolderAction[Any]:
        return FlowHolderAction(action_type, _build_payload(prepare_fn, args, kwargs), to_flow)

    action_creator.type = action_type  # type: ignore
    return action_creator  # type: ignore[return-value]


def action_type_of(action_creator_or_type: Union[ActionCreator, str]) -> str:
    """
    取得 Action 生成器或類型字串對應的種類標籤。

    Args:
        action_creator_or_type: Action 生成器或類型字串

    Returns:
        Action 的類型字串
    """
    if callable(action_creator_or_type) and hasattr(action_creator_or_type, 'type'):
        return action_creator_or_type.type
    return str(action_creator_or_type)
