"""
StoreFlow 錯誤處理模組。

此模組定義 StoreFlow 所有的異常類型，以及集中式錯誤處理器。
在 dispatch 流程內發生的錯誤會交給 ErrorProcessor 轉換為替代 Action；
無法再被轉換的錯誤（例如 ErrorProcessor 本身失敗）則回報給 global_error_handler。
"""

import logging
import traceback
from typing import Any, Callable, Dict, List, Optional, Union


class StoreFlowError(Exception):
    """所有 StoreFlow 異常的基礎類。"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        """
        初始化異常。

        Args:
            message: 錯誤訊息
            details: 附加的結構化錯誤資訊
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.traceback = traceback.format_exc()

    def to_dict(self) -> Dict[str, Any]:
        """
        將異常轉換為字典，方便記錄或上報。

        Returns:
            包含錯誤類型、訊息與細節的字典
        """
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": dict(self.details),
            "traceback": self.traceback,
        }

    def __str__(self) -> str:
        if not self.details:
            return self.message
        details = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
        return f"{self.message} ({details})"


class ActionError(StoreFlowError):
    """與 Action 相關的錯誤，例如非 Action 的值進入了管線。"""

    def __init__(self, message: str, action_type: Optional[str] = None, payload: Any = None, **kwargs: Any) -> None:
        details = {"action_type": action_type, "payload": payload}
        details.update(kwargs)
        super().__init__(message, details)
        self.action_type = action_type
        self.payload = payload


class ReducerError(StoreFlowError):
    """Reducer 執行時拋出的錯誤。"""

    def __init__(self, message: str, reducer_name: str, action_type: Optional[str], state: Any = None, **kwargs: Any) -> None:
        details = {"reducer_name": reducer_name, "action_type": action_type}
        details.update(kwargs)
        super().__init__(message, details)
        self.reducer_name = reducer_name
        self.action_type = action_type
        self.state = state


class MiddlewareError(StoreFlowError):
    """與 Middleware 相關的錯誤。"""

    def __init__(self, message: str, middleware_name: str, action_type: Optional[str] = None, **kwargs: Any) -> None:
        details = {"middleware_name": middleware_name, "action_type": action_type}
        details.update(kwargs)
        super().__init__(message, details)
        self.middleware_name = middleware_name
        self.action_type = action_type


class ErrorProcessorError(StoreFlowError):
    """ErrorProcessor 本身失敗。屬於呼叫端的缺陷，不會再被轉換。"""

    def __init__(self, message: str, processor_name: str, original_error: Optional[BaseException] = None, **kwargs: Any) -> None:
        details = {"processor_name": processor_name, "original_error": repr(original_error)}
        details.update(kwargs)
        super().__init__(message, details)
        self.processor_name = processor_name
        self.original_error = original_error


class StoreError(StoreFlowError):
    """與 Store 操作相關的錯誤。"""

    def __init__(self, message: str, operation: str, **kwargs: Any) -> None:
        details = {"operation": operation}
        details.update(kwargs)
        super().__init__(message, details)
        self.operation = operation


class ConfigurationError(StoreFlowError):
    """配置相關的錯誤。"""

    def __init__(self, message: str, component: str, config_key: Optional[str] = None, **kwargs: Any) -> None:
        details = {"component": component, "config_key": config_key}
        details.update(kwargs)
        super().__init__(message, details)
        self.component = component
        self.config_key = config_key


class ErrorHandler:
    """
    集中式錯誤處理器，用於記錄與回報無法被 ErrorProcessor 吸收的錯誤。

    錯誤會先寫入 `storeflow.errors` 日誌，再依序交給已註冊的處理函數。
    """

    def __init__(self, log_to_console: bool = True, log_to_file: bool = False, log_file: Optional[str] = None) -> None:
        """
        初始化錯誤處理器。

        Args:
            log_to_console: 是否輸出到主控台
            log_to_file: 是否寫入檔案
            log_file: 日誌檔案路徑，log_to_file 為 True 時必須提供
        """
        self.log_to_console = log_to_console
        self.log_to_file = log_to_file
        self.log_file = log_file
        self.handlers: List[Callable[[StoreFlowError], None]] = []
        self._logger = logging.getLogger("storeflow.errors")

        if log_to_file:
            if not log_file:
                raise ConfigurationError("log_file is required when log_to_file is enabled",
                                         component="ErrorHandler", config_key="log_file")
            file_handler = logging.FileHandler(log_file, encoding="utf-8")
            file_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
            self._logger.addHandler(file_handler)

    def register_handler(self, handler: Callable[[StoreFlowError], None]) -> None:
        """
        註冊一個錯誤處理函數。

        Args:
            handler: 接收 StoreFlowError 的回調
        """
        self.handlers.append(handler)

    def handle(self, error: Union[StoreFlowError, Exception]) -> None:
        """
        處理錯誤：記錄日誌並通知所有處理函數。

        Args:
            error: 要處理的錯誤，一般異常會被包裝為 StoreFlowError
        """
        if not isinstance(error, StoreFlowError):
            wrapped = StoreFlowError(str(error), {"error_type": error.__class__.__name__})
            wrapped.__cause__ = error
            error = wrapped

        if self.log_to_console or self.log_to_file:
            self._logger.error("%s: %s", error.__class__.__name__, error,
                               exc_info=(type(error), error, error.__traceback__))

        for handler in list(self.handlers):
            try:
                handler(error)
            except Exception:
                self._logger.exception("error handler %r failed", handler)


# 單例錯誤處理器
global_error_handler = ErrorHandler()
