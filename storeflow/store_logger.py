"""
Store 的診斷鉤子。

StoreLogger 定義 dispatch 管線中每個觀察點的回調，預設全部為空操作。
鉤子只用於通知，不能改變管線行為，也不保證與狀態發布同步執行；
鉤子拋出的異常會被記錄並忽略。
"""

import logging
from typing import Any, Optional

from .immutable_utils import to_dict


class StoreLogger:
    """
    診斷鉤子基礎類，所有方法預設不做任何事。
    """

    def on_action_dispatched(self, action: Any) -> None:
        """Action 從入口佇列被取出、開始處理時調用。"""
        pass

    def on_middleware_processing(self, middleware_name: str, action: Any) -> None:
        """Action 進入某個中介階段時調用。"""
        pass

    def on_middlewares_completed(self, action: Any) -> None:
        """某個被 dispatch 的 Action 走完整條中介鏈時調用。"""
        pass

    def on_flow_holder_action_emitted(self, action: Any) -> None:
        """FlowHolderAction 展開的流產生一個 Action 時調用。"""
        pass

    def on_error_occurred(self, error: BaseException) -> None:
        """Action 的處理流程捕獲到錯誤時調用。"""
        pass

    def on_error_handled(self, action: Any) -> None:
        """ErrorProcessor 產生一個替代 Action 時調用。"""
        pass

    def on_state_reduced(self, action: Any, previous_state: Any, new_state: Any) -> None:
        """Reducer 完成一次狀態計算時調用。"""
        pass


class LoggingStoreLogger(StoreLogger):
    """
    將每個鉤子寫入標準 logging 的日誌記錄器。

    使用場景:
    - 偵錯時需要觀察每個 action 經過的中介與狀態變化。
    - 確保 action 的執行順序正確。
    """

    def __init__(self, logger: Optional[logging.Logger] = None,
                 level: int = logging.DEBUG, error_level: int = logging.ERROR) -> None:
        """
        初始化 LoggingStoreLogger。

        Args:
            logger: 使用的 Logger，預設為 `storeflow.store`
            level: 一般事件的日誌等級
            error_level: 錯誤事件的日誌等級
        """
        self.logger = logger or logging.getLogger("storeflow.store")
        self.level = level
        self.error_level = error_level

    def on_action_dispatched(self, action: Any) -> None:
        self.logger.log(self.level, "▶️ dispatching %s", _action_label(action))

    def on_middleware_processing(self, middleware_name: str, action: Any) -> None:
        self.logger.log(self.level, "🔄 %s processing %s", middleware_name, _action_label(action))

    def on_middlewares_completed(self, action: Any) -> None:
        self.logger.log(self.level, "⏭️ middlewares completed for %s", _action_label(action))

    def on_flow_holder_action_emitted(self, action: Any) -> None:
        self.logger.log(self.level, "🌊 flow emitted %s", _action_label(action))

    def on_error_occurred(self, error: BaseException) -> None:
        self.logger.log(self.error_level, "❌ error: %s", error,
                        exc_info=(type(error), error, error.__traceback__))

    def on_error_handled(self, action: Any) -> None:
        self.logger.log(self.level, "🩹 error handled with %s", _action_label(action))

    def on_state_reduced(self, action: Any, previous_state: Any, new_state: Any) -> None:
        self.logger.log(self.level, "✅ state after %s: %s -> %s",
                        _action_label(action), to_dict(previous_state), to_dict(new_state))


def _action_label(action: Any) -> str:
    return getattr(action, "type", None) or repr(action)
