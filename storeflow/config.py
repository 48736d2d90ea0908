"""
Store 配置模型。
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class StoreConfig(BaseModel):
    """
    Store 的可調整選項。

    屬性:
        name: Store 名稱，用於日誌與錯誤細節
        distinct_states: 是否對觀察者合併相等的連續狀態
        max_concurrent_actions: 同時處理中的 Action 數量上限，None 表示不限制
    """
    model_config = ConfigDict(frozen=True)

    name: str = "store"
    distinct_states: bool = True
    max_concurrent_actions: Optional[int] = Field(default=None, ge=1)
