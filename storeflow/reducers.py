from typing import Any, Callable, Dict, Union

from .actions import Action, action_type_of
from .immutable_utils import to_immutable
from .types import S, ActionCreator, ActionHandler, HandlerMap

Reducer = Callable[[S, Action[Any]], S]


def create_reducer(initial_state: S, *handlers) -> Reducer[S]:
    """
    創建一個 reducer 函式，用於處理狀態變更。

    Reducer 以 action.type 查表，找不到處理器時原樣返回狀態；
    同一種 action 重複註冊時，以最後一個處理器為準。

    Args:
        initial_state: 初始狀態，建立 Store 時若未指定初始狀態則使用它。
        *handlers: 一系列 (action_type, handler_fn) 元組或使用 on 函式創建的處理器。

    Returns:
        一個 reducer 函式，根據 action 的類型執行對應的處理邏輯。
    """
    action_handlers = merge_handlers(handlers)  # 儲存 action 類型與處理函式的對應關係

    def reducer(state: S, action: Action) -> S:
        """
        Reducer 函式，根據 action 處理狀態變更。

        Args:
            state: 當前狀態。
            action: 要處理的 action。

        Returns:
            新的狀態，如果沒有對應的處理器則返回原狀態。
        """
        handler = action_handlers.get(action.type)  # 根據 action 類型查找處理函式
        if handler is None:
            return state

        result = handler(state, action)
        # 處理函式返回普通 dict 時凍結為 Map
        if result is state or not isinstance(result, (dict, list, set)):
            return result
        return to_immutable(result)

    # 設置 reducer 的初始狀態和處理器映射
    reducer.initial_state = initial_state
    reducer.handlers = dict(action_handlers)

    return reducer


def on(action_creator_or_type: Union[ActionCreator, str], handler: ActionHandler) -> Dict[str, ActionHandler]:
    """
    創建一個 action 類型與處理函式的映射。

    Reducer 與 Middleware 都使用同樣的映射格式。

    Args:
        action_creator_or_type: Action 創建器函式或 Action 類型字串。
        handler: 處理該 Action 的函式，接收 (state, action)。

    Returns:
        一個包含 {action_type: handler} 的字典。
    """
    return {action_type_of(action_creator_or_type): handler}


def merge_handlers(handlers) -> HandlerMap:
    """
    將 (action_type, handler_fn) 元組與 on 產生的字典合併為一張處理表。

    Args:
        handlers: 元組或字典的序列，後出現的同類型處理器覆蓋先前的。

    Returns:
        {action_type: handler} 字典
    """
    action_handlers: HandlerMap = {}
    for handler in handlers:
        if isinstance(handler, tuple) and len(handler) == 2:
            # 如果 handler 是元組，則解構為 action 類型與處理函式
            action_type, handler_fn = handler
            action_handlers[action_type_of(action_type)] = handler_fn
        else:
            # 如果 handler 是字典，則直接更新到 action_handlers
            action_handlers.update(handler)
    return action_handlers
