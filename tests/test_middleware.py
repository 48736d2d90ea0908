"""Middleware 基礎類與處理器分派的測試。"""

import pytest

from storeflow import (
    BaseMiddleware, FunctionMiddleware, create_middleware, flow_of, on, on_action
)
from storeflow.middleware import middleware_name
from support import CounterState, add, collect, decrement, fetch_data, fetch_success, increment


def get_state() -> CounterState:
    return CounterState(count=7)


class CounterMiddleware(BaseMiddleware):
    """以不同形式的處理器回應不同 Action。"""

    @on_action(increment)
    def double(self, state, action):
        return [action, action]

    @on_action(decrement)
    def drop(self, state, action):
        return None

    @on_action(fetch_data)
    async def fetch(self, state, action):
        yield fetch_success(state.count)

    @on_action(add)
    async def add_state(self, state, action):
        return add(action.payload + state.count)


class TestBaseMiddleware:
    """BaseMiddleware 的測試。"""

    @pytest.mark.asyncio
    async def test_unhandled_action_passes_through(self) -> None:
        """沒有處理器的 Action 原樣輸出一次。"""
        outputs = await collect(BaseMiddleware().process(get_state, increment()))
        assert outputs == [increment()]

    @pytest.mark.asyncio
    async def test_sync_handler_returning_list(self) -> None:
        outputs = await collect(CounterMiddleware().process(get_state, increment()))
        assert outputs == [increment(), increment()]

    @pytest.mark.asyncio
    async def test_handler_returning_none_filters_action(self) -> None:
        outputs = await collect(CounterMiddleware().process(get_state, decrement()))
        assert outputs == []

    @pytest.mark.asyncio
    async def test_async_generator_handler_receives_state(self) -> None:
        """處理器收到呼叫當下的狀態。"""
        outputs = await collect(CounterMiddleware().process(get_state, fetch_data()))
        assert outputs == [fetch_success(7)]

    @pytest.mark.asyncio
    async def test_coroutine_handler(self) -> None:
        outputs = await collect(CounterMiddleware().process(get_state, add(1)))
        assert outputs == [add(8)]

    def test_processors_are_collected_from_decorated_methods(self) -> None:
        processors = CounterMiddleware().processors
        assert set(processors) == {increment.type, decrement.type, fetch_data.type, add.type}

    def test_subclass_overrides_handler(self) -> None:
        """子類別以相同 Action 類型覆蓋父類別的處理器。"""

        class Override(CounterMiddleware):
            @on_action(increment)
            def single(self, state, action):
                return action

        middleware = Override()
        assert middleware.processors[increment.type] == middleware.single
        assert decrement.type in middleware.processors

    def test_one_method_for_several_actions(self) -> None:

        class Shared(BaseMiddleware):
            @on_action(increment, decrement)
            def either(self, state, action):
                return action

        assert set(Shared().processors) == {increment.type, decrement.type}

    def test_name_defaults_to_class_name(self) -> None:
        assert CounterMiddleware().name == "CounterMiddleware"
        assert middleware_name(CounterMiddleware()) == "CounterMiddleware"


class TestFunctionMiddleware:
    """以處理器表建立的中介測試。"""

    @pytest.mark.asyncio
    async def test_create_middleware_dispatches_by_type(self) -> None:
        middleware = create_middleware(
            "Doubler",
            on(add, lambda state, action: flow_of(action, action)),
        )
        assert middleware.name == "Doubler"
        assert await collect(middleware.process(get_state, add(2))) == [add(2), add(2)]
        assert await collect(middleware.process(get_state, increment())) == [increment()]

    @pytest.mark.asyncio
    async def test_later_handler_wins(self) -> None:
        middleware = create_middleware(
            "Last",
            on(increment, lambda state, action: None),
            (increment, lambda state, action: decrement()),
        )
        assert await collect(middleware.process(get_state, increment())) == [decrement()]

    def test_teardown_calls_callback(self) -> None:
        calls = []
        middleware = FunctionMiddleware("Cleanup", {}, on_teardown=lambda: calls.append(True))
        middleware.teardown()
        assert calls == [True]
