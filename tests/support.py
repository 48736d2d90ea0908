"""測試輔助工具：計數器領域的狀態與 Action，以及等待、記錄狀態的工具。"""

import asyncio
from typing import Any, AsyncIterable, Callable, List, Optional

from pydantic import BaseModel, ConfigDict

from storeflow import (
    Store, create_action, create_flow_action, create_reducer, from_queue, map_flow, on
)


class CounterState(BaseModel):
    """測試用的計數器狀態。"""
    model_config = ConfigDict(frozen=True)

    count: int = 0
    error: Optional[str] = None


increment = create_action("[Counter] Increment")
decrement = create_action("[Counter] Decrement")
add = create_action("[Counter] Add", lambda amount: amount)
set_value = create_action("[Counter] SetValue", lambda value: value)
fetch_data = create_action("[Counter] FetchData")
fetch_success = create_action("[Counter] FetchSuccess", lambda value: value)
show_error = create_action("[Counter] ShowError", lambda message: message)
connect = create_action("[Counter] Connect")
unknown = create_action("[Counter] Unknown")

# 外部佇列中的每個數字都會變成一個 add Action
stream_connected = create_flow_action(
    "[Counter] StreamConnected",
    lambda queue: map_flow(from_queue(queue), add),
)


def _with_count(state: CounterState, count: int) -> CounterState:
    return state.model_copy(update={"count": count})


counter_reducer = create_reducer(
    CounterState(),
    on(increment, lambda state, action: _with_count(state, state.count + 1)),
    on(decrement, lambda state, action: _with_count(state, state.count - 1)),
    on(add, lambda state, action: _with_count(state, state.count + action.payload)),
    on(set_value, lambda state, action: _with_count(state, action.payload)),
    on(fetch_success, lambda state, action: _with_count(state, action.payload)),
    on(show_error, lambda state, action: state.model_copy(update={"error": action.payload})),
)


async def wait_for_state(store: Store, predicate: Callable[[Any], bool], timeout: float = 1.0) -> Any:
    """等待直到 Store 發布符合條件的狀態，逾時則拋出 TimeoutError。"""

    async def _wait() -> Any:
        async with store.observe_state() as states:
            async for state in states:
                if predicate(state):
                    return state
        raise AssertionError("store closed before the expected state was published")

    return await asyncio.wait_for(_wait(), timeout)


async def collect(source: AsyncIterable[Any]) -> List[Any]:
    """讀完一個非同步流並返回所有項目。"""
    return [item async for item in source]


class StateRecorder:
    """同步訂閱 Store 的狀態流，依發布順序記錄每個狀態。"""

    def __init__(self, store: Store) -> None:
        self.states: List[Any] = []
        self.completed = False
        self._subscription = store.as_observable().subscribe(
            on_next=self.states.append,
            on_completed=self._on_completed,
        )

    def _on_completed(self) -> None:
        self.completed = True

    @property
    def counts(self) -> List[int]:
        return [state.count for state in self.states]

    def dispose(self) -> None:
        self._subscription.dispose()
