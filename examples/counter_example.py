"""
StoreFlow 範例：計數器應用，展示中介、FlowHolderAction 與錯誤處理。
"""

import asyncio
import logging
import random
from typing import Optional

from pydantic import BaseModel, ConfigDict

from storeflow import (
    BaseMiddleware,
    LoggingStoreLogger,
    create_action,
    create_flow_action,
    create_reducer,
    create_store,
    on,
    on_action,
)


# ====== 1. 定義狀態模型 ======
class CounterState(BaseModel):
    model_config = ConfigDict(frozen=True)

    count: int = 0
    loading: bool = False
    error: Optional[str] = None


# ====== 2. 定義 Actions ======
increment = create_action("[Counter] Increment")
increment_by = create_action("[Counter] IncrementBy", lambda amount: amount)
reset = create_action("[Counter] Reset", lambda value=0: value)
load_count_request = create_action("[Counter] LoadCountRequest")
load_count_success = create_action("[Counter] LoadCountSuccess", lambda value: value)
load_count_failure = create_action("[Counter] LoadCountFailure", lambda message: message)


async def ticks(interval: float, times: int):
    """模擬外部計時器：每隔 interval 秒產生一次 increment。"""
    for _ in range(times):
        await asyncio.sleep(interval)
        yield increment()


ticker_started = create_flow_action(
    "[Counter] TickerStarted",
    lambda options: ticks(options["interval"], options["times"]),
)


# ====== 3. 定義 Reducer ======
counter_reducer = create_reducer(
    CounterState(),
    on(increment, lambda state, action: state.model_copy(update={"count": state.count + 1})),
    on(increment_by, lambda state, action: state.model_copy(update={"count": state.count + action.payload})),
    on(reset, lambda state, action: state.model_copy(update={"count": action.payload})),
    on(load_count_request, lambda state, action: state.model_copy(update={"loading": True, "error": None})),
    on(load_count_success, lambda state, action: state.model_copy(
        update={"count": action.payload, "loading": False})),
    on(load_count_failure, lambda state, action: state.model_copy(
        update={"loading": False, "error": action.payload})),
)


# ====== 4. 定義 Middleware ======
class CounterApiMiddleware(BaseMiddleware):
    """模擬從 API 載入數據，完成後產生 load_count_success。"""

    @on_action(load_count_request)
    async def load_count(self, state, action):
        # 先讓 loading 狀態進入 reducer
        yield action
        await asyncio.sleep(0.5)
        if random.random() < 0.3:
            raise ConnectionError("counter api unavailable")
        yield load_count_success(42)


def counter_error_processor(error: Exception):
    """把載入失敗轉換為 load_count_failure。"""
    return load_count_failure(str(error))


async def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s: %(message)s")

    store = create_store(
        CounterState(),
        counter_reducer,
        [CounterApiMiddleware()],
        counter_error_processor,
        logger=LoggingStoreLogger(level=logging.INFO),
    )

    async def render() -> None:
        async with store.observe_state() as states:
            async for state in states:
                print(f"計數器狀態: {state.model_dump()}")

    renderer = asyncio.create_task(render())

    print("\n==== 開始測試基本操作 ====")
    store.dispatch(increment())
    store.dispatch(increment_by(5))
    store.dispatch(reset(10))

    print("\n==== 開始測試異步操作 ====")
    store.dispatch(load_count_request())
    store.dispatch(ticker_started({"interval": 0.2, "times": 5}))

    # 保持程序運行，以便觀察異步效果
    await asyncio.sleep(1.5)

    print("\n==== 最終狀態 ====")
    print(store.current_state)
    await store.aclose()
    await renderer


if __name__ == "__main__":
    asyncio.run(main())
