# storeflow/immutable_utils.py
from typing import Any

from immutables import Map
from pydantic import BaseModel


def to_immutable(obj: Any) -> Any:
    """將 reducer 產生的可變結構凍結為不可變形式（dict → Map、list → tuple、set → frozenset）"""
    if isinstance(obj, Map):
        # 已是 Map，但內部值仍可能是可變結構
        return Map({k: to_immutable(v) for k, v in obj.items()})
    if isinstance(obj, dict):
        return Map({k: to_immutable(v) for k, v in obj.items()})
    if isinstance(obj, list):
        return tuple(to_immutable(i) for i in obj)
    if isinstance(obj, set):
        return frozenset(to_immutable(i) for i in obj)
    # Pydantic 模型、tuple 與其他值保持原樣
    return obj


def to_dict(obj: Any) -> Any:
    """將狀態轉換為可讀的普通結構，用於日誌輸出"""
    if isinstance(obj, BaseModel):
        return obj.model_dump()
    if isinstance(obj, Map):
        return {k: to_dict(v) for k, v in obj.items()}
    if isinstance(obj, (tuple, frozenset)):
        return [to_dict(i) for i in obj]
    return obj
