"""
ErrorProcessor：把單一 Action 處理過程中的錯誤轉換為替代 Action 流。
"""

from typing import Any, Callable, Union

from .types import ErrorProcessorFunction, FlowSource


class ErrorProcessor:
    """
    錯誤處理器基礎類。

    Store 在某個 Action 的處理流程失敗時呼叫 process 一次，
    返回的 Action 會像 middleware 的輸出一樣被展開並送往 reducer。
    process 本身不應該拋出異常。

    範例:
        ```python
        class ShowErrorProcessor(ErrorProcessor):
            def process(self, error):
                return show_error(str(error))
        ```
    """

    @property
    def name(self) -> str:
        return type(self).__name__

    def process(self, error: Exception) -> FlowSource:
        """
        將錯誤轉換為替代 Action。

        Args:
            error: 捕獲到的異常

        Returns:
            任意可被 to_flow 接受的來源；None 表示不產生任何 Action。
            預設不產生任何 Action，子類覆寫此方法提供替代 Action。
        """
        return None

    def __call__(self, error: Exception) -> FlowSource:
        return self.process(error)


class DefaultErrorProcessor(ErrorProcessor):
    """預設處理器：靜默吞掉錯誤，不產生任何 Action。"""
    pass


class FunctionErrorProcessor(ErrorProcessor):
    """將普通函數包裝為 ErrorProcessor。"""

    def __init__(self, fn: ErrorProcessorFunction):
        self._fn = fn

    @property
    def name(self) -> str:
        return getattr(self._fn, "__name__", repr(self._fn))

    def process(self, error: Exception) -> FlowSource:
        return self._fn(error)


def as_error_processor(processor: Union[ErrorProcessor, Callable[[Exception], Any], None]) -> ErrorProcessor:
    """
    將 None、函數或 ErrorProcessor 統一為 ErrorProcessor 實例。

    Args:
        processor: 使用者提供的錯誤處理器

    Returns:
        ErrorProcessor 實例
    """
    if processor is None:
        return DefaultErrorProcessor()
    if isinstance(processor, ErrorProcessor):
        return processor
    return FunctionErrorProcessor(processor)
