"""Pytest 共用 fixtures。"""

import pytest

from storeflow import ErrorHandler


@pytest.fixture
def error_reports(monkeypatch: pytest.MonkeyPatch) -> list:
    """以獨立的 ErrorHandler 取代全域處理器，收集回報的錯誤。"""
    handler = ErrorHandler(log_to_console=False)
    reports: list = []
    handler.register_handler(reports.append)
    monkeypatch.setattr("storeflow.store.global_error_handler", handler)
    return reports
