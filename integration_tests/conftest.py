"""Shared helpers for integration tests against a real cargo toolchain."""

from __future__ import annotations

import os
import shutil

import pytest

from ptx_builder.guard import FRONTEND_VARIABLE, RECURSION_MARKER


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    if os.environ.get("PTX_BUILDER_INTEGRATION") == "1" and shutil.which("cargo"):
        return
    skip = pytest.mark.skip(
        reason="Set PTX_BUILDER_INTEGRATION=1 with a nightly nvptx64 toolchain to run.",
    )
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip)


@pytest.fixture(autouse=True)
def clean_markers(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(RECURSION_MARKER, raising=False)
    monkeypatch.delenv(FRONTEND_VARIABLE, raising=False)
