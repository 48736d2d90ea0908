"""
StoreFlow 庫的主要入口點。

以非同步流驅動的單向資料流狀態容器：
dispatch → middleware 鏈 → FlowHolderAction 展開 → reducer → 狀態發布。
"""

from .errors import (
    StoreFlowError, ActionError, ReducerError, MiddlewareError,
    ErrorProcessorError, StoreError, ConfigurationError,
    ErrorHandler, global_error_handler
)
from .actions import (
    Action, FlowHolderAction, create_action, create_flow_action, action_type_of
)
from .reducers import create_reducer, on
from .middleware import BaseMiddleware, FunctionMiddleware, create_middleware, on_action
from .error_processor import (
    ErrorProcessor, DefaultErrorProcessor, FunctionErrorProcessor, as_error_processor
)
from .store_logger import StoreLogger, LoggingStoreLogger
from .scope import StoreScope
from .config import StoreConfig
from .store import Store, create_store
from .flows import (
    ObservableIterator, to_flow, flow_of, empty_flow, map_flow, merge_flows, from_queue
)
from .immutable_utils import to_immutable, to_dict

# 匯出所有公開 API
__all__ = [
    # Errors
    "StoreFlowError", "ActionError", "ReducerError", "MiddlewareError",
    "ErrorProcessorError", "StoreError", "ConfigurationError",
    "ErrorHandler", "global_error_handler",

    # Actions
    "Action", "FlowHolderAction", "create_action", "create_flow_action", "action_type_of",

    # Reducers
    "create_reducer", "on",

    # Middleware
    "BaseMiddleware", "FunctionMiddleware", "create_middleware", "on_action",

    # Error processing
    "ErrorProcessor", "DefaultErrorProcessor", "FunctionErrorProcessor", "as_error_processor",

    # Diagnostics
    "StoreLogger", "LoggingStoreLogger",

    # Store
    "Store", "create_store", "StoreScope", "StoreConfig",

    # Flows
    "ObservableIterator", "to_flow", "flow_of", "empty_flow", "map_flow", "merge_flows", "from_queue",

    # Immutable Utils
    "to_immutable", "to_dict",
]
